"""Walk Binary - positional binary codec for walk plans."""
from .errors import WalkBinaryError, StreamError, FormatError, TruncatedError
from .io import BinaryReader, BinaryWriter, load, dump, locate_fields

__all__ = [
    "WalkBinaryError",
    "StreamError",
    "FormatError",
    "TruncatedError",
    "BinaryReader",
    "BinaryWriter",
    "load",
    "dump",
    "locate_fields",
]

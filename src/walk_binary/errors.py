"""Errors raised by the walk binary codec."""


class WalkBinaryError(Exception):
    """Base class for every codec failure."""


class StreamError(WalkBinaryError):
    """Stream not open, or not usable in the requested direction."""


class FormatError(WalkBinaryError, ValueError):
    """Bytes were read but do not form a valid plan file."""


class TruncatedError(WalkBinaryError, OSError):
    """Short read or write, or the stream failed mid-field."""

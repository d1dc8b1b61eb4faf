import struct
import sys
from pathlib import Path

from walk_binary import locate_fields
from walk_core.protocol import SIZE_FMT


def inflate(p: Path, extra: int = 1) -> int:
    """Add `extra` to the stored footprint count, leaving every other byte alone."""
    _, offsets = locate_fields(p)
    idx = offsets["footprints"]
    b = bytearray(p.read_bytes())
    (count,) = struct.unpack_from(SIZE_FMT, b, idx)
    struct.pack_into(SIZE_FMT, b, idx, count + extra)
    p.write_bytes(bytes(b))
    return idx


def main():
    if len(sys.argv) not in (2, 3):
        print("Usage: inflate_footprint_count.py <file> [extra]")
        raise SystemExit(2)

    p = Path(sys.argv[1])
    extra = int(sys.argv[2]) if len(sys.argv) == 3 else 1
    idx = inflate(p, extra)
    print(f"Inflated footprint count by {extra} at offset {idx} in {p}")

if __name__ == "__main__":
    main()

"""Walk binary format protocol constants.

Single source of truth for the on-disk magic values and field layouts.
Keep this file stable. Reader and Writer must remain synchronized.
"""
import struct

# File preamble, terminator included
MAGIC_NUMBER = b"HWBF\x00"
FORMAT_VERSION = b"1.0.0\x00"

MAGIC_LEN = len(MAGIC_NUMBER)  # 5
VERSION_LEN = len(FORMAT_VERSION)  # 6
HEADER_LEN = MAGIC_LEN + VERSION_LEN

# Host-native byte order and word width. The format is not portable across
# hosts with differing endianness or size_t.
DOUBLE_FMT = "@d"
SIZE_FMT = "@N"
BOOL_FMT = "@?"

DOUBLE_LEN = struct.calcsize(DOUBLE_FMT)  # 8
SIZE_LEN = struct.calcsize(SIZE_FMT)  # 8 on 64-bit hosts
BOOL_LEN = struct.calcsize(BOOL_FMT)  # 1

# Matrix entries are packed as one native float64 buffer
MATRIX_DTYPE = "=f8"

# Timestamps: ISO-8601 basic format, e.g. 20240101T000000 or 20240101T000000.500000
TIMESTAMP_FMT = "%Y%m%dT%H%M%S"
TIMESTAMP_TERMINATOR = b"\x00"

# Safety bounds
DEFAULT_MAX_TIMESTAMP_LEN = 256

FILE_EXTENSION = ".hwbf"

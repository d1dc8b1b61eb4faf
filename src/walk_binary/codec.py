"""Positional binary codec for walk plans.

Every field is written and read in a fixed order with no tags. PLAN_FIELDS
is the one ordered list both directions walk; changing it changes the wire
format.

Layout:
    magic "HWBF\\0" | version "1.0.0\\0" | bool start_with_left_foot
    | 12 x matrix | footprints | 7 x trajectory

    matrix     = double cols | double rows | rows*cols doubles, row-major
    footprints = size_t count | count x (timestamp | duration | matrix)
    timestamp  = size_t len | len bytes, NUL terminated ISO-8601 basic
    duration   = double seconds
    trajectory = size_t count | count x (duration | matrix)
"""
from __future__ import annotations

import io
import math
import re
import struct
from datetime import datetime, timedelta, timezone
from typing import BinaryIO, Callable, NamedTuple
from warnings import warn

import numpy as np

from walk_core.protocol import (
    MAGIC_NUMBER,
    FORMAT_VERSION,
    MAGIC_LEN,
    VERSION_LEN,
    DOUBLE_FMT,
    SIZE_FMT,
    BOOL_FMT,
    DOUBLE_LEN,
    SIZE_LEN,
    BOOL_LEN,
    MATRIX_DTYPE,
    TIMESTAMP_FMT,
    TIMESTAMP_TERMINATOR,
    DEFAULT_MAX_TIMESTAMP_LEN,
)
from walk_core.types import (
    POSE_FIELDS,
    TRAJECTORY_FIELDS,
    DiscretizedTrajectory,
    PlanLike,
    StampedFootprint,
    StampedPosition,
    as_matrix,
)

from .errors import FormatError, StreamError, TruncatedError

READ_CHUNK_SIZE = 64 * 1024  # 64KB

# Largest dimension or byte count numpy can index
MAX_INDEX = int(np.iinfo(np.intp).max)

_ISO_BASIC_RE = re.compile(r"(\d{8}T\d{6})(?:[.,](\d{1,9}))?")

# Smallest encodings: 1-byte timestamp, empty matrix
MIN_MATRIX_LEN = 2 * DOUBLE_LEN
MIN_FOOTPRINT_LEN = SIZE_LEN + 1 + DOUBLE_LEN + MIN_MATRIX_LEN
MIN_SAMPLE_LEN = DOUBLE_LEN + MIN_MATRIX_LEN


# ---------------------------------------------------------------------------
# Stream primitives
# ---------------------------------------------------------------------------

def _check_readable(stream: BinaryIO) -> None:
    if stream is None or getattr(stream, "closed", False):
        raise StreamError("failed to read: stream is closed")
    readable = getattr(stream, "readable", None)
    if readable is not None and not readable():
        raise StreamError("failed to read: stream is not readable")


def _check_writable(stream: BinaryIO) -> None:
    if stream is None or getattr(stream, "closed", False):
        raise StreamError("failed to write: stream is closed")
    writable = getattr(stream, "writable", None)
    if writable is not None and not writable():
        raise StreamError("failed to write: stream is not writable")


def _read_exact(stream: BinaryIO, size: int, what: str) -> bytes:
    """Read exactly `size` bytes or raise TruncatedError."""
    parts = []
    remaining = size
    while remaining > 0:
        try:
            chunk = stream.read(min(remaining, READ_CHUNK_SIZE))
        except OSError as e:
            raise TruncatedError(f"failed to read {what}: {e}") from e
        if not chunk:
            got = size - remaining
            raise TruncatedError(f"failed to read {what}: expected {size} bytes, got {got}")
        parts.append(chunk)
        remaining -= len(chunk)
    return b"".join(parts)


def _write_all(stream: BinaryIO, data: bytes, what: str) -> None:
    try:
        written = stream.write(data)
    except OSError as e:
        raise TruncatedError(f"failed to write {what}: {e}") from e
    if written is not None and written != len(data):
        raise TruncatedError(f"failed to write {what}: wrote {written} of {len(data)} bytes")


def _remaining(stream: BinaryIO) -> int | None:
    """Bytes left in a seekable stream, None when the stream cannot tell."""
    seekable = getattr(stream, "seekable", None)
    if seekable is None or not seekable():
        return None
    pos = stream.tell()
    end = stream.seek(0, io.SEEK_END)
    stream.seek(pos)
    return end - pos


def _check_count(stream: BinaryIO, count: int, min_size: int, what: str) -> None:
    """Reject a count that cannot fit in what is left of the stream."""
    remaining = _remaining(stream)
    if remaining is not None and count * min_size > remaining:
        raise TruncatedError(
            f"failed to read {what}: {count} elements need at least "
            f"{count * min_size} bytes, {remaining} left"
        )


def write_double(stream: BinaryIO, value: float) -> None:
    _write_all(stream, struct.pack(DOUBLE_FMT, value), "double")


def read_double(stream: BinaryIO) -> float:
    return struct.unpack(DOUBLE_FMT, _read_exact(stream, DOUBLE_LEN, "double"))[0]


def write_size(stream: BinaryIO, value: int) -> None:
    _write_all(stream, struct.pack(SIZE_FMT, value), "count")


def read_size(stream: BinaryIO) -> int:
    return struct.unpack(SIZE_FMT, _read_exact(stream, SIZE_LEN, "count"))[0]


def write_bool(stream: BinaryIO, value: bool) -> None:
    _check_writable(stream)
    _write_all(stream, struct.pack(BOOL_FMT, bool(value)), "flag")


def read_bool(stream: BinaryIO) -> bool:
    _check_readable(stream)
    return struct.unpack(BOOL_FMT, _read_exact(stream, BOOL_LEN, "flag"))[0]


# ---------------------------------------------------------------------------
# Header
# ---------------------------------------------------------------------------

def write_header(stream: BinaryIO) -> None:
    _check_writable(stream)
    _write_all(stream, MAGIC_NUMBER, "magic number")
    _write_all(stream, FORMAT_VERSION, "format version")


def read_header(stream: BinaryIO) -> None:
    """Consume and check the preamble. Only exact matches are accepted."""
    _check_readable(stream)
    try:
        magic = _read_exact(stream, MAGIC_LEN, "magic number")
    except TruncatedError as e:
        raise FormatError("invalid magic number") from e
    if magic != MAGIC_NUMBER:
        raise FormatError("invalid magic number")

    try:
        version = _read_exact(stream, VERSION_LEN, "format version")
    except TruncatedError as e:
        raise FormatError("invalid format version") from e
    if version != FORMAT_VERSION:
        raise FormatError("invalid format version")


# ---------------------------------------------------------------------------
# Matrix
# ---------------------------------------------------------------------------

def write_matrix(stream: BinaryIO, matrix) -> None:
    _check_writable(stream)
    m = as_matrix(matrix)
    rows, cols = m.shape
    write_double(stream, float(cols))
    write_double(stream, float(rows))
    _write_all(stream, np.ascontiguousarray(m, dtype=MATRIX_DTYPE).tobytes(order="C"), "matrix data")


def _dimension(value: float, what: str) -> int:
    if not math.isfinite(value) or value < 0:
        raise FormatError(f"invalid matrix {what}: {value!r}")
    count = int(value)
    if count > MAX_INDEX:
        raise FormatError(f"invalid matrix {what}: {value!r} exceeds {MAX_INDEX}")
    if count != value:
        warn(f"Fractional matrix {what} {value!r} truncated to {count}")
    return count


def read_matrix(stream: BinaryIO) -> np.ndarray:
    _check_readable(stream)
    cols = _dimension(read_double(stream), "column count")
    rows = _dimension(read_double(stream), "row count")
    if rows * cols * DOUBLE_LEN > MAX_INDEX:
        raise FormatError(f"invalid matrix size: {rows} x {cols}")
    data = _read_exact(stream, rows * cols * DOUBLE_LEN, "matrix data")
    return np.frombuffer(data, dtype=MATRIX_DTYPE).reshape(rows, cols).astype(np.float64)


# ---------------------------------------------------------------------------
# Timestamps and durations
# ---------------------------------------------------------------------------

def format_timestamp(value: datetime) -> str:
    """ISO-8601 basic format, microseconds after a comma when non-zero."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    # strftime does not zero-pad years below 1000 on every platform
    text = (
        f"{value.year:04d}{value.month:02d}{value.day:02d}"
        f"T{value.hour:02d}{value.minute:02d}{value.second:02d}"
    )
    if value.microsecond:
        text += f",{value.microsecond:06d}"
    return text


def parse_timestamp(text: str) -> datetime:
    """Inverse of format_timestamp. Fraction digits past microseconds are dropped."""
    match = _ISO_BASIC_RE.fullmatch(text)
    if match is None:
        raise FormatError(f"unparsable timestamp {text!r}")
    try:
        value = datetime.strptime(match.group(1), TIMESTAMP_FMT)
    except ValueError as e:
        raise FormatError(f"unparsable timestamp {text!r}") from e
    fraction = match.group(2)
    if fraction:
        value = value.replace(microsecond=int(fraction[:6].ljust(6, "0")))
    return value


def write_timestamp(stream: BinaryIO, value: datetime) -> None:
    _check_writable(stream)
    payload = format_timestamp(value).encode("ascii") + TIMESTAMP_TERMINATOR
    write_size(stream, len(payload))
    _write_all(stream, payload, "timestamp")


def read_timestamp(stream: BinaryIO) -> datetime:
    _check_readable(stream)
    size = read_size(stream)
    if size > DEFAULT_MAX_TIMESTAMP_LEN:
        raise FormatError(f"timestamp length {size} exceeds limit {DEFAULT_MAX_TIMESTAMP_LEN}")
    raw = _read_exact(stream, size, "timestamp")
    end = raw.find(TIMESTAMP_TERMINATOR)
    if end == -1:
        raise FormatError("unterminated timestamp")
    try:
        text = raw[:end].decode("ascii")
    except UnicodeDecodeError as e:
        raise FormatError(f"unparsable timestamp {raw[:end]!r}") from e
    return parse_timestamp(text)


def duration_to_seconds(value: timedelta) -> float:
    nanoseconds = (value.days * 86400 + value.seconds) * 10**9 + value.microseconds * 1000
    return nanoseconds / 1e9


def seconds_to_duration(seconds: float) -> timedelta:
    """Rebuild a duration at millisecond granularity.

    Anything below one millisecond is discarded (truncated toward zero).
    """
    if not math.isfinite(seconds):
        raise FormatError(f"invalid duration {seconds!r}")
    try:
        return timedelta(milliseconds=int(seconds * 1e3))
    except OverflowError as e:
        raise FormatError(f"invalid duration {seconds!r}") from e


def write_duration(stream: BinaryIO, value: timedelta) -> None:
    _check_writable(stream)
    write_double(stream, duration_to_seconds(value))


def read_duration(stream: BinaryIO) -> timedelta:
    _check_readable(stream)
    return seconds_to_duration(read_double(stream))


# ---------------------------------------------------------------------------
# Footprints and trajectories
# ---------------------------------------------------------------------------

def write_footprint(stream: BinaryIO, footprint: StampedFootprint) -> None:
    _check_writable(stream)
    write_timestamp(stream, footprint.begin_time)
    write_duration(stream, footprint.duration)
    write_matrix(stream, footprint.position)


def read_footprint(stream: BinaryIO) -> StampedFootprint:
    _check_readable(stream)
    begin_time = read_timestamp(stream)
    duration = read_duration(stream)
    position = read_matrix(stream)
    return StampedFootprint(begin_time=begin_time, duration=duration, position=position)


def write_footprints(stream: BinaryIO, footprints) -> None:
    _check_writable(stream)
    footprints = list(footprints)
    write_size(stream, len(footprints))
    for footprint in footprints:
        write_footprint(stream, footprint)


def read_footprints(stream: BinaryIO) -> list[StampedFootprint]:
    _check_readable(stream)
    count = read_size(stream)
    _check_count(stream, count, MIN_FOOTPRINT_LEN, "footprints")
    return [read_footprint(stream) for _ in range(count)]


def write_stamped_position(stream: BinaryIO, sample: StampedPosition) -> None:
    _check_writable(stream)
    write_duration(stream, sample.duration)
    write_matrix(stream, sample.position)


def read_stamped_position(stream: BinaryIO) -> StampedPosition:
    _check_readable(stream)
    duration = read_duration(stream)
    return StampedPosition(duration=duration, position=read_matrix(stream))


def write_trajectory(stream: BinaryIO, trajectory: DiscretizedTrajectory) -> None:
    _check_writable(stream)
    write_size(stream, len(trajectory.data))
    for sample in trajectory.data:
        write_stamped_position(stream, sample)


def read_trajectory(stream: BinaryIO) -> DiscretizedTrajectory:
    _check_readable(stream)
    count = read_size(stream)
    _check_count(stream, count, MIN_SAMPLE_LEN, "trajectory")
    trajectory = DiscretizedTrajectory()
    for _ in range(count):
        trajectory.append(read_stamped_position(stream))
    return trajectory


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------

class FieldCodec(NamedTuple):
    write: Callable[[BinaryIO, object], None]
    read: Callable[[BinaryIO], object]


FLAG = FieldCodec(write_bool, read_bool)
MATRIX = FieldCodec(write_matrix, read_matrix)
FOOTPRINTS = FieldCodec(write_footprints, read_footprints)
TRAJECTORY = FieldCodec(write_trajectory, read_trajectory)

# Wire order. Both encode_plan and decode_plan walk this list.
PLAN_FIELDS: tuple[tuple[str, FieldCodec], ...] = (
    ("start_with_left_foot", FLAG),
    *((name, MATRIX) for name in POSE_FIELDS),
    ("footprints", FOOTPRINTS),
    *((name, TRAJECTORY) for name in TRAJECTORY_FIELDS),
)


def encode_plan(stream: BinaryIO, plan: PlanLike) -> None:
    """Write header and every plan field. The plan is only read."""
    _check_writable(stream)
    write_header(stream)
    for name, codec in PLAN_FIELDS:
        codec.write(stream, getattr(plan, name))


def decode_fields(
    stream: BinaryIO,
    on_field: Callable[[str], None] | None = None,
) -> dict[str, object]:
    """Decode header and fields into a fresh staging dict.

    on_field(name) is called before each field is read.
    """
    _check_readable(stream)
    read_header(stream)
    staged: dict[str, object] = {}
    for name, codec in PLAN_FIELDS:
        if on_field is not None:
            on_field(name)
        staged[name] = codec.read(stream)
    return staged


def publish(plan: PlanLike, staged: dict[str, object]) -> PlanLike:
    """Copy a complete staging dict onto a plan.

    Footprints and the starting foot go through the single combined setter,
    last, since the support foot of each footprint depends on both.
    """
    for name in POSE_FIELDS:
        setattr(plan, name, staged[name])
    for name in TRAJECTORY_FIELDS:
        setattr(plan, name, staged[name])
    plan.set_footprints(staged["footprints"], staged["start_with_left_foot"])
    return plan


def decode_plan(stream: BinaryIO, plan: PlanLike) -> PlanLike:
    """Decode into `plan`. On failure `plan` is left untouched."""
    return publish(plan, decode_fields(stream))

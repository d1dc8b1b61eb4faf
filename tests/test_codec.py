"""Tests for the field codecs: header, matrix, timestamp, duration, sequences."""
import io
import struct
from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from walk_binary import codec
from walk_binary.errors import FormatError, StreamError, TruncatedError
from walk_core.protocol import DOUBLE_FMT, FORMAT_VERSION, HEADER_LEN, MAGIC_NUMBER, SIZE_FMT
from walk_core.types import DiscretizedTrajectory, StampedFootprint, StampedPosition


def _d(*values):
    return b"".join(struct.pack(DOUBLE_FMT, v) for v in values)


def _n(value):
    return struct.pack(SIZE_FMT, value)


# ---------------------------------------------------------------------------
# Header
# ---------------------------------------------------------------------------

def test_header_bytes():
    buf = io.BytesIO()
    codec.write_header(buf)
    assert buf.getvalue() == b"HWBF\x00" + b"1.0.0\x00"
    assert len(buf.getvalue()) == HEADER_LEN


def test_header_accepts_exact_preamble():
    buf = io.BytesIO(MAGIC_NUMBER + FORMAT_VERSION + b"rest")
    codec.read_header(buf)
    assert buf.tell() == HEADER_LEN


@pytest.mark.parametrize(
    "data",
    [b"HWBX\x00" + FORMAT_VERSION, b"HWBF1" + FORMAT_VERSION, b"hwbf\x00" + FORMAT_VERSION, b"", b"HW"],
)
def test_header_rejects_bad_magic(data):
    with pytest.raises(FormatError, match="invalid magic number"):
        codec.read_header(io.BytesIO(data))


@pytest.mark.parametrize("version", [b"1.0.1\x00", b"1.0.0 ", b"2.0.0\x00", b"1.0"])
def test_header_rejects_other_versions(version):
    with pytest.raises(FormatError, match="invalid format version"):
        codec.read_header(io.BytesIO(MAGIC_NUMBER + version))


# ---------------------------------------------------------------------------
# Matrix
# ---------------------------------------------------------------------------

def test_matrix_layout_is_cols_rows_then_row_major():
    m = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
    buf = io.BytesIO()
    codec.write_matrix(buf, m)
    assert buf.getvalue() == _d(3.0, 2.0, 1.0, 2.0, 3.0, 4.0, 5.0, 6.0)


def test_matrix_4x4_mixed_values_round_trip():
    m = np.array(
        [
            [-1.5, 0.0, 2.25, -0.0],
            [1e-300, -7.0, 0.125, 3.0],
            [0.1, 0.2, -0.3, 1e300],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )
    buf = io.BytesIO()
    codec.write_matrix(buf, m)
    buf.seek(0)
    out = codec.read_matrix(buf)
    assert out.shape == (4, 4)
    assert out.dtype == np.float64
    assert out.tobytes() == m.tobytes()


def test_matrix_fortran_ordered_input_still_row_major():
    m = np.asfortranarray(np.arange(6, dtype=float).reshape(2, 3))
    buf = io.BytesIO()
    codec.write_matrix(buf, m)
    assert buf.getvalue()[16:] == _d(0, 1, 2, 3, 4, 5)


def test_vector_is_written_as_column():
    buf = io.BytesIO()
    codec.write_matrix(buf, [1.0, 2.0, 3.0])
    buf.seek(0)
    assert codec.read_matrix(buf).shape == (3, 1)


def test_empty_matrix_round_trip():
    buf = io.BytesIO()
    codec.write_matrix(buf, np.zeros((0, 4)))
    assert len(buf.getvalue()) == 16
    buf.seek(0)
    assert codec.read_matrix(buf).shape == (0, 4)


@pytest.mark.parametrize(
    "cols,rows",
    [
        (-1.0, 2.0),
        (2.0, -3.0),
        (float("nan"), 1.0),
        (1.0, float("inf")),
        (1e300, 0.0),
        (0.0, 1e20),
        (2.0**63, 0.0),
        (2.0**40, 2.0**40),
    ],
)
def test_matrix_rejects_invalid_dimensions(cols, rows):
    with pytest.raises(FormatError, match="invalid matrix"):
        codec.read_matrix(io.BytesIO(_d(cols, rows)))


def test_fractional_dimension_truncated_with_warning():
    buf = io.BytesIO(_d(2.0, 1.5, 7.0, 8.0))
    with pytest.warns(UserWarning, match="truncated"):
        m = codec.read_matrix(buf)
    assert m.shape == (1, 2)
    assert m.tolist() == [[7.0, 8.0]]


def test_matrix_short_data():
    with pytest.raises(TruncatedError):
        codec.read_matrix(io.BytesIO(_d(2.0, 2.0, 1.0, 2.0, 3.0)))


def test_matrix_missing_dimensions():
    with pytest.raises(TruncatedError):
        codec.read_matrix(io.BytesIO(_d(2.0)))


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------

def test_timestamp_text():
    assert codec.format_timestamp(datetime(2024, 1, 1)) == "20240101T000000"
    assert codec.format_timestamp(datetime(2024, 1, 1, 12, 30, 5, 500000)) == "20240101T123005,500000"
    assert codec.format_timestamp(datetime(5, 6, 7)) == "00050607T000000"


def test_timestamp_aware_converted_to_utc():
    tz = timezone(timedelta(hours=2))
    assert codec.format_timestamp(datetime(2024, 1, 1, 2, 0, tzinfo=tz)) == "20240101T000000"


def test_timestamp_wire_form():
    buf = io.BytesIO()
    codec.write_timestamp(buf, datetime(2024, 1, 1))
    text = b"20240101T000000"
    assert buf.getvalue() == _n(len(text) + 1) + text + b"\x00"


def test_timestamp_round_trip_keeps_microseconds():
    t = datetime(2023, 12, 31, 23, 59, 59, 123456)
    buf = io.BytesIO()
    codec.write_timestamp(buf, t)
    buf.seek(0)
    assert codec.read_timestamp(buf) == t


@pytest.mark.parametrize(
    "text,expected",
    [
        ("20240101T000000", datetime(2024, 1, 1)),
        ("20240101T000000.25", datetime(2024, 1, 1, 0, 0, 0, 250000)),
        ("20240101T000000,123456789", datetime(2024, 1, 1, 0, 0, 0, 123456)),
    ],
)
def test_parse_timestamp(text, expected):
    assert codec.parse_timestamp(text) == expected


@pytest.mark.parametrize("text", ["", "not-a-date-time", "2024-01-01T00:00:00", "20241301T000000", "20240101T000000,"])
def test_parse_timestamp_rejects(text):
    with pytest.raises(FormatError, match="unparsable timestamp"):
        codec.parse_timestamp(text)


def test_read_timestamp_unparsable():
    payload = b"garbage\x00"
    with pytest.raises(FormatError):
        codec.read_timestamp(io.BytesIO(_n(len(payload)) + payload))


def test_read_timestamp_unterminated():
    payload = b"20240101T000000"
    with pytest.raises(FormatError, match="unterminated"):
        codec.read_timestamp(io.BytesIO(_n(len(payload)) + payload))


def test_read_timestamp_length_limit():
    with pytest.raises(FormatError, match="exceeds limit"):
        codec.read_timestamp(io.BytesIO(_n(10**6)))


def test_read_timestamp_short():
    with pytest.raises(TruncatedError):
        codec.read_timestamp(io.BytesIO(_n(16) + b"2024"))


# ---------------------------------------------------------------------------
# Durations
# ---------------------------------------------------------------------------

def test_duration_written_as_seconds():
    buf = io.BytesIO()
    codec.write_duration(buf, timedelta(milliseconds=500))
    assert buf.getvalue() == _d(0.5)


def test_duration_keeps_microseconds_on_the_wire():
    assert codec.duration_to_seconds(timedelta(microseconds=1500)) == 0.0015
    assert codec.duration_to_seconds(timedelta(milliseconds=-5)) == -0.005


def test_duration_read_drops_sub_millisecond():
    # Lossy by format: encoded at microsecond precision, decoded at milliseconds
    buf = io.BytesIO()
    codec.write_duration(buf, timedelta(microseconds=1500))
    buf.seek(0)
    assert codec.read_duration(buf) == timedelta(milliseconds=1)


@pytest.mark.parametrize(
    "seconds,expected",
    [
        (0.5, timedelta(milliseconds=500)),
        (0.0109, timedelta(milliseconds=10)),
        (2.0, timedelta(seconds=2)),
        (-0.0049, timedelta(milliseconds=-4)),
        (0.0, timedelta()),
    ],
)
def test_seconds_to_duration_truncates(seconds, expected):
    assert codec.seconds_to_duration(seconds) == expected


@pytest.mark.parametrize("seconds", [float("nan"), float("inf"), 1e300])
def test_seconds_to_duration_rejects(seconds):
    with pytest.raises(FormatError, match="invalid duration"):
        codec.seconds_to_duration(seconds)


# ---------------------------------------------------------------------------
# Footprints and trajectories
# ---------------------------------------------------------------------------

def test_footprint_wire_order():
    fp = StampedFootprint(datetime(2024, 1, 1), timedelta(seconds=0.5), np.eye(2))
    buf = io.BytesIO()
    codec.write_footprint(buf, fp)
    text = b"20240101T000000\x00"
    assert buf.getvalue() == _n(len(text)) + text + _d(0.5) + _d(2.0, 2.0, 1.0, 0.0, 0.0, 1.0)


def test_footprints_round_trip_in_order():
    fps = [
        StampedFootprint(datetime(2024, 1, 1, 0, 0, i), timedelta(milliseconds=250 * i), np.full((4, 4), i))
        for i in range(5)
    ]
    buf = io.BytesIO()
    codec.write_footprints(buf, fps)
    buf.seek(0)
    assert codec.read_footprints(buf) == fps


def test_empty_footprints():
    buf = io.BytesIO()
    codec.write_footprints(buf, [])
    assert buf.getvalue() == _n(0)
    buf.seek(0)
    assert codec.read_footprints(buf) == []


def test_trajectory_round_trip_in_order():
    traj = DiscretizedTrajectory(
        [StampedPosition(timedelta(milliseconds=125 * k), np.array([[k], [-k]])) for k in range(10)]
    )
    buf = io.BytesIO()
    codec.write_trajectory(buf, traj)
    buf.seek(0)
    out = codec.read_trajectory(buf)
    assert out == traj
    assert [s.position[0, 0] for s in out] == list(range(10))


def test_empty_trajectory():
    buf = io.BytesIO()
    codec.write_trajectory(buf, DiscretizedTrajectory())
    assert buf.getvalue() == _n(0)
    buf.seek(0)
    assert len(codec.read_trajectory(buf)) == 0


def test_trajectory_count_beyond_stream():
    sample = _d(0.5) + _d(1.0, 1.0, 3.0)
    with pytest.raises(TruncatedError, match="need at least"):
        codec.read_trajectory(io.BytesIO(_n(1000) + sample))


class _Unseekable(io.RawIOBase):
    def __init__(self, data):
        self._buf = io.BytesIO(data)

    def readable(self):
        return True

    def readinto(self, b):
        chunk = self._buf.read(len(b))
        b[: len(chunk)] = chunk
        return len(chunk)


def test_trajectory_count_beyond_unseekable_stream():
    sample = _d(0.5) + _d(1.0, 1.0, 3.0)
    with pytest.raises(TruncatedError):
        codec.read_trajectory(_Unseekable(_n(2) + sample))


# ---------------------------------------------------------------------------
# Stream health
# ---------------------------------------------------------------------------

def test_closed_stream_rejected():
    buf = io.BytesIO()
    buf.close()
    with pytest.raises(StreamError):
        codec.write_matrix(buf, np.eye(2))
    with pytest.raises(StreamError):
        codec.read_matrix(buf)


def test_wrong_direction_rejected(tmp_path):
    p = tmp_path / "x.bin"
    p.write_bytes(b"")
    with open(p, "rb") as f:
        with pytest.raises(StreamError, match="not writable"):
            codec.write_header(f)
    with open(p, "wb") as f:
        with pytest.raises(StreamError, match="not readable"):
            codec.read_header(f)


class _FailingWriter(io.RawIOBase):
    def writable(self):
        return True

    def write(self, b):
        raise OSError("disk full")


class _ShortWriter(io.RawIOBase):
    def writable(self):
        return True

    def write(self, b):
        return max(len(b) - 1, 0)


def test_write_faults_become_truncated_error():
    with pytest.raises(TruncatedError, match="disk full"):
        codec.write_matrix(_FailingWriter(), np.eye(2))
    with pytest.raises(TruncatedError, match="wrote"):
        codec.write_matrix(_ShortWriter(), np.eye(2))


def test_truncated_error_is_os_error():
    assert issubclass(TruncatedError, OSError)
    assert issubclass(FormatError, ValueError)

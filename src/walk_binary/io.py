"""Reader and writer: own the file or stream for exactly one codec pass."""
from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, Iterator, Union
from warnings import warn

from walk_core.types import PlanLike, WalkPlan

from .codec import decode_fields, encode_plan, publish
from .errors import StreamError

Source = Union[str, os.PathLike, BinaryIO]


def _is_path(obj) -> bool:
    return isinstance(obj, (str, os.PathLike))


@contextmanager
def _open_for_read(source: Source) -> Iterator[BinaryIO]:
    if not _is_path(source):
        yield source
        return
    try:
        f = open(source, "rb")
    except OSError as e:
        raise StreamError(f"failed to open {source}: {e}") from e
    with f:
        yield f
        _warn_trailing(f, source)


def _warn_trailing(f: BinaryIO, source) -> None:
    end = os.fstat(f.fileno()).st_size
    extra = end - f.tell()
    if extra > 0:
        warn(f"{extra} trailing bytes after plan payload in {source}")


class BinaryReader:
    """Decode one plan file.

    The target plan is built with plan_type(*args, **kwargs); the extra
    arguments let plan types that need setup data (robot model, posture
    size, ...) be used as decode targets. The decoded plan is available as
    `.plan`.
    """

    def __init__(self, source: Source, plan_type=WalkPlan, *args, **kwargs):
        self.plan = plan_type(*args, **kwargs)
        self.load(source)

    def load(self, source: Source) -> PlanLike:
        """Decode `source` into self.plan.

        All fields are decoded before any is applied; if decoding fails the
        plan keeps its previous contents.
        """
        with _open_for_read(source) as stream:
            staged = decode_fields(stream)
        return publish(self.plan, staged)


class BinaryWriter:
    """Encode a plan to a path or a writable binary stream."""

    def __init__(self, plan: PlanLike):
        self.plan = plan

    def write(self, target: Source) -> None:
        if not _is_path(target):
            encode_plan(target, self.plan)
            return

        # Write next to the target and swap in on success
        path = Path(target)
        tmp = path.with_name(path.name + ".tmp")
        try:
            f = open(tmp, "wb")
        except OSError as e:
            raise StreamError(f"failed to open {path}: {e}") from e
        try:
            with f:
                encode_plan(f, self.plan)
            tmp.replace(path)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise


def load(source: Source, plan_type=WalkPlan, *args, **kwargs) -> PlanLike:
    """Read a plan from a path or stream."""
    return BinaryReader(source, plan_type, *args, **kwargs).plan


def dump(plan: PlanLike, target: Source) -> None:
    """Write a plan to a path or stream."""
    BinaryWriter(plan).write(target)


def locate_fields(source: Source, plan_type=WalkPlan) -> tuple[PlanLike, dict[str, int]]:
    """Decode a plan and report the byte offset at which each field starts.

    The stream must support tell().
    """
    offsets: dict[str, int] = {}
    with _open_for_read(source) as stream:
        start = stream.tell()
        offsets["header"] = 0

        def record(name: str) -> None:
            offsets[name] = stream.tell() - start

        staged = decode_fields(stream, on_field=record)
        offsets["end"] = stream.tell() - start
    return publish(plan_type(), staged), offsets

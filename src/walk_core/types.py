"""Walk plan data model.

A plan is the output of a walking pattern generator: boundary poses,
footprints and time-sampled trajectories. Poses are float64 numpy arrays
(4x4 homogeneous transforms, or column vectors for postures).
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Iterator, Protocol, Sequence

import numpy as np

# Boundary poses, in wire order
POSE_FIELDS = (
    "initial_left_foot",
    "initial_right_foot",
    "initial_center_of_mass",
    "initial_posture",
    "initial_left_hand",
    "initial_right_hand",
    "final_left_foot",
    "final_right_foot",
    "final_center_of_mass",
    "final_posture",
    "final_left_hand",
    "final_right_hand",
)

# Trajectories, in wire order
TRAJECTORY_FIELDS = (
    "left_foot_trajectory",
    "right_foot_trajectory",
    "center_of_mass_trajectory",
    "zmp_trajectory",
    "posture_trajectory",
    "left_hand_trajectory",
    "right_hand_trajectory",
)


def as_matrix(value) -> np.ndarray:
    """Coerce to a 2-D float64 array. 1-D input becomes a column vector."""
    m = np.asarray(value, dtype=np.float64)
    if m.ndim == 1:
        m = m.reshape(-1, 1)
    if m.ndim != 2:
        raise ValueError(f"Expected a 2-D matrix, got {m.ndim} dimensions")
    return m


def _same_matrix(a: np.ndarray, b: np.ndarray) -> bool:
    return a.shape == b.shape and bool(np.array_equal(a, b))


class Foot(enum.Enum):
    LEFT = "left"
    RIGHT = "right"

    @property
    def other(self) -> Foot:
        return Foot.RIGHT if self is Foot.LEFT else Foot.LEFT


@dataclass(eq=False)
class StampedPosition:
    """One sample of a trajectory: how long the pose is held, and the pose."""
    duration: timedelta
    position: np.ndarray

    def __eq__(self, other):
        if not isinstance(other, StampedPosition):
            return NotImplemented
        return self.duration == other.duration and _same_matrix(
            as_matrix(self.position), as_matrix(other.position)
        )


@dataclass(eq=False)
class StampedFootprint:
    """A planted-foot event."""
    begin_time: datetime
    duration: timedelta
    position: np.ndarray

    def __eq__(self, other):
        if not isinstance(other, StampedFootprint):
            return NotImplemented
        return (
            self.begin_time == other.begin_time
            and self.duration == other.duration
            and _same_matrix(as_matrix(self.position), as_matrix(other.position))
        )


@dataclass(eq=False)
class DiscretizedTrajectory:
    """Ordered samples of one tracked quantity.

    The sampling interval is known to the producer and is not stored.
    """
    data: list[StampedPosition] = field(default_factory=list)

    def append(self, sample: StampedPosition) -> None:
        self.data.append(sample)

    def clear(self) -> None:
        self.data.clear()

    def __len__(self) -> int:
        return len(self.data)

    def __iter__(self) -> Iterator[StampedPosition]:
        return iter(self.data)

    def __getitem__(self, index):
        return self.data[index]

    def __eq__(self, other):
        if not isinstance(other, DiscretizedTrajectory):
            return NotImplemented
        return self.data == other.data

    def total_duration(self) -> timedelta:
        return sum((s.duration for s in self.data), timedelta())


class PlanLike(Protocol):
    """What the binary codec needs from a plan.

    The 12 pose attributes named in POSE_FIELDS and the 7 trajectory
    attributes named in TRAJECTORY_FIELDS must be readable and assignable.
    Footprints are only ever set together with the starting foot.
    """

    initial_left_foot: np.ndarray
    initial_right_foot: np.ndarray
    initial_center_of_mass: np.ndarray
    initial_posture: np.ndarray
    initial_left_hand: np.ndarray
    initial_right_hand: np.ndarray
    final_left_foot: np.ndarray
    final_right_foot: np.ndarray
    final_center_of_mass: np.ndarray
    final_posture: np.ndarray
    final_left_hand: np.ndarray
    final_right_hand: np.ndarray

    left_foot_trajectory: DiscretizedTrajectory
    right_foot_trajectory: DiscretizedTrajectory
    center_of_mass_trajectory: DiscretizedTrajectory
    zmp_trajectory: DiscretizedTrajectory
    posture_trajectory: DiscretizedTrajectory
    left_hand_trajectory: DiscretizedTrajectory
    right_hand_trajectory: DiscretizedTrajectory

    @property
    def footprints(self) -> Sequence[StampedFootprint]: ...

    @property
    def start_with_left_foot(self) -> bool: ...

    def set_footprints(
        self, footprints: Iterable[StampedFootprint], start_with_left_foot: bool
    ) -> None: ...


def footprint_sides(plan: PlanLike) -> list[Foot]:
    """Support foot of each footprint, in footprint order."""
    foot = Foot.LEFT if plan.start_with_left_foot else Foot.RIGHT
    sides = []
    for _ in plan.footprints:
        sides.append(foot)
        foot = foot.other
    return sides


class WalkPlan:
    """Default in-memory plan.

    Footprints alternate support foot, starting with the foot selected in
    set_footprints().
    """

    def __init__(self, posture_size: int = 0):
        for name in POSE_FIELDS:
            if name.endswith("posture"):
                setattr(self, name, np.zeros((posture_size, 1)))
            else:
                setattr(self, name, np.eye(4))
        for name in TRAJECTORY_FIELDS:
            setattr(self, name, DiscretizedTrajectory())
        self._footprints: list[StampedFootprint] = []
        self._start_with_left_foot = True

    @property
    def footprints(self) -> list[StampedFootprint]:
        return list(self._footprints)

    @property
    def start_with_left_foot(self) -> bool:
        return self._start_with_left_foot

    @property
    def footprint_sides(self) -> list[Foot]:
        return footprint_sides(self)

    def set_footprints(
        self, footprints: Iterable[StampedFootprint], start_with_left_foot: bool
    ) -> None:
        self._footprints = list(footprints)
        self._start_with_left_foot = bool(start_with_left_foot)

    def footprints_for(self, foot: Foot) -> list[StampedFootprint]:
        return [fp for fp, side in zip(self._footprints, self.footprint_sides) if side is foot]

    def __eq__(self, other):
        if not isinstance(other, WalkPlan):
            return NotImplemented
        if self._start_with_left_foot != other._start_with_left_foot:
            return False
        if self._footprints != other._footprints:
            return False
        for name in POSE_FIELDS:
            if not _same_matrix(as_matrix(getattr(self, name)), as_matrix(getattr(other, name))):
                return False
        return all(getattr(self, n) == getattr(other, n) for n in TRAJECTORY_FIELDS)

    def __repr__(self) -> str:
        lengths = ", ".join(f"{n}={len(getattr(self, n))}" for n in TRAJECTORY_FIELDS)
        return (
            f"WalkPlan(start_with_left_foot={self._start_with_left_foot}, "
            f"footprints={len(self._footprints)}, {lengths})"
        )

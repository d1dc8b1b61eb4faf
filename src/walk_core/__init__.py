"""Walk Core - Plan data model, geometry helpers and protocol constants."""
from .types import (
    Foot,
    StampedPosition,
    StampedFootprint,
    DiscretizedTrajectory,
    PlanLike,
    WalkPlan,
    footprint_sides,
    POSE_FIELDS,
    TRAJECTORY_FIELDS,
)

__all__ = [
    "Foot",
    "StampedPosition",
    "StampedFootprint",
    "DiscretizedTrajectory",
    "PlanLike",
    "WalkPlan",
    "footprint_sides",
    "POSE_FIELDS",
    "TRAJECTORY_FIELDS",
]

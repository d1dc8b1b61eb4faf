"""Shared plan builders for tests."""
from datetime import datetime, timedelta

import numpy as np
import pytest

from walk_core.types import (
    POSE_FIELDS,
    TRAJECTORY_FIELDS,
    StampedFootprint,
    StampedPosition,
    WalkPlan,
)


def make_scenario_plan():
    """Left foot first, one footprint, one identity sample per trajectory."""
    plan = WalkPlan()
    plan.set_footprints(
        [
            StampedFootprint(
                begin_time=datetime(2024, 1, 1),
                duration=timedelta(seconds=0.5),
                position=np.eye(4),
            )
        ],
        True,
    )
    for name in TRAJECTORY_FIELDS:
        getattr(plan, name).append(
            StampedPosition(duration=timedelta(milliseconds=10), position=np.eye(4))
        )
    return plan


def make_rich_plan(n_footprints=4, n_samples=5, seed=0):
    """Plan with distinct values in every field."""
    rng = np.random.default_rng(seed)
    plan = WalkPlan(posture_size=6)
    for name in POSE_FIELDS:
        shape = (6, 1) if name.endswith("posture") else (4, 4)
        setattr(plan, name, rng.normal(size=shape))

    start = datetime(2024, 3, 14, 9, 26, 53, 589000)
    footprints = [
        StampedFootprint(
            begin_time=start + i * timedelta(milliseconds=750),
            duration=timedelta(milliseconds=750),
            position=rng.normal(size=(4, 4)),
        )
        for i in range(n_footprints)
    ]
    plan.set_footprints(footprints, False)

    for name in TRAJECTORY_FIELDS:
        shape = (2, 1) if name == "zmp_trajectory" else (4, 4)
        for k in range(n_samples):
            getattr(plan, name).append(
                StampedPosition(
                    duration=timedelta(milliseconds=125 * (k + 1)),
                    position=rng.normal(size=shape),
                )
            )
    return plan


@pytest.fixture
def scenario_plan():
    return make_scenario_plan()


@pytest.fixture
def rich_plan():
    return make_rich_plan()

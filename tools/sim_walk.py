"""Generate a demo straight-line walk plan and write it as a .hwbf file."""
import uuid
from datetime import datetime, timedelta
from pathlib import Path

import numpy as np

from walk_binary import dump
from walk_core.geometry import pose2d_to_trans3d, to_posture, vector3d_to_trans3d
from walk_core.protocol import FILE_EXTENSION
from walk_core.types import (
    TRAJECTORY_FIELDS,
    StampedFootprint,
    StampedPosition,
    WalkPlan,
)

# --- CONFIGURATION ---
STEP_LENGTH = 0.2  # m
FOOT_SPACING = 0.19  # m between feet
STEP_DURATION = timedelta(milliseconds=800)
SAMPLE_PERIOD = timedelta(milliseconds=50)
COM_HEIGHT = 0.8  # m
POSTURE_SIZE = 30
HAND_OFFSET = np.array([0.0, 0.25, 1.0])


def generate_plan(steps=6, start_with_left_foot=True, start_time=None):
    start_time = start_time or datetime(2024, 1, 1)
    plan = WalkPlan(posture_size=POSTURE_SIZE)
    posture = to_posture(np.zeros(POSTURE_SIZE))
    half = FOOT_SPACING / 2

    plan.initial_left_foot = pose2d_to_trans3d(0.0, half, 0.0)
    plan.initial_right_foot = pose2d_to_trans3d(0.0, -half, 0.0)
    plan.initial_center_of_mass = vector3d_to_trans3d([0.0, 0.0, COM_HEIGHT])
    plan.initial_posture = posture
    plan.initial_left_hand = vector3d_to_trans3d(HAND_OFFSET)
    plan.initial_right_hand = vector3d_to_trans3d(HAND_OFFSET * [1, -1, 1])

    # Footprints alternate sides and advance half a step at a time
    footprints = []
    left = start_with_left_foot
    for i in range(steps):
        x = STEP_LENGTH * (i + 1) / 2
        y = half if left else -half
        footprints.append(
            StampedFootprint(
                begin_time=start_time + i * STEP_DURATION,
                duration=STEP_DURATION,
                position=pose2d_to_trans3d(x, y, 0.0),
            )
        )
        left = not left
    plan.set_footprints(footprints, start_with_left_foot)

    end_x = STEP_LENGTH * steps / 2
    plan.final_left_foot = pose2d_to_trans3d(end_x, half, 0.0)
    plan.final_right_foot = pose2d_to_trans3d(end_x, -half, 0.0)
    plan.final_center_of_mass = vector3d_to_trans3d([end_x, 0.0, COM_HEIGHT])
    plan.final_posture = posture
    plan.final_left_hand = vector3d_to_trans3d(HAND_OFFSET + [end_x, 0, 0])
    plan.final_right_hand = vector3d_to_trans3d(HAND_OFFSET * [1, -1, 1] + [end_x, 0, 0])

    # Sample every trajectory on the same grid
    n_samples = int(steps * STEP_DURATION / SAMPLE_PERIOD)
    for k in range(n_samples):
        alpha = k / max(n_samples - 1, 1)
        x = alpha * end_x
        samples = {
            "left_foot_trajectory": pose2d_to_trans3d(x, half, 0.0),
            "right_foot_trajectory": pose2d_to_trans3d(x, -half, 0.0),
            "center_of_mass_trajectory": vector3d_to_trans3d([x, 0.0, COM_HEIGHT]),
            "zmp_trajectory": np.array([[x], [0.0]]),
            "posture_trajectory": posture,
            "left_hand_trajectory": vector3d_to_trans3d(HAND_OFFSET + [x, 0, 0]),
            "right_hand_trajectory": vector3d_to_trans3d(HAND_OFFSET * [1, -1, 1] + [x, 0, 0]),
        }
        for name in TRAJECTORY_FIELDS:
            getattr(plan, name).append(StampedPosition(duration=SAMPLE_PERIOD, position=samples[name]))

    return plan


def generate_plan_file(out_dir, steps=6, start_with_left_foot=True):
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    path = out / f"plan-{str(uuid.uuid4())[:8]}{FILE_EXTENSION}"
    dump(generate_plan(steps, start_with_left_foot), path)
    print(f"GENERATED: {path}")
    return path


if __name__ == "__main__":
    import sys

    # Usage:
    #   python tools/sim_walk.py OUT_DIR [--steps N] [--right-first]

    args = [a for a in sys.argv[1:] if a]

    right_first = "--right-first" in args
    args = [a for a in args if a != "--right-first"]

    steps = 6
    if "--steps" in args:
        i = args.index("--steps")
        if i + 1 >= len(args):
            raise SystemExit("--steps requires a value")
        steps = int(args[i + 1])
        args = args[:i] + args[i + 2:]

    out = args[0] if len(args) > 0 else "plans"
    generate_plan_file(out, steps=steps, start_with_left_foot=not right_first)

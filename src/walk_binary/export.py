"""Flatten a plan into Parquet tables for analysis tools."""
from __future__ import annotations

from pathlib import Path

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from walk_core.types import POSE_FIELDS, TRAJECTORY_FIELDS, PlanLike, as_matrix, footprint_sides

from .codec import duration_to_seconds

POSES_SCHEMA = pa.schema(
    [
        ("name", pa.string()),
        ("rows", pa.int32()),
        ("cols", pa.int32()),
        ("values", pa.list_(pa.float64())),
    ]
)

FOOTPRINTS_SCHEMA = pa.schema(
    [
        ("index", pa.int32()),
        ("side", pa.string()),
        ("begin_time", pa.timestamp("us")),
        ("duration_s", pa.float64()),
        ("rows", pa.int32()),
        ("cols", pa.int32()),
        ("values", pa.list_(pa.float64())),
    ]
)

TRAJECTORIES_SCHEMA = pa.schema(
    [
        ("trajectory", pa.string()),
        ("index", pa.int32()),
        ("duration_s", pa.float64()),
        ("rows", pa.int32()),
        ("cols", pa.int32()),
        ("values", pa.list_(pa.float64())),
    ]
)


def _matrix_columns(matrix) -> dict:
    m = as_matrix(matrix)
    return {"rows": m.shape[0], "cols": m.shape[1], "values": m.ravel(order="C").tolist()}


def plan_tables(plan: PlanLike) -> dict[str, pa.Table]:
    poses = [{"name": name, **_matrix_columns(getattr(plan, name))} for name in POSE_FIELDS]

    footprints = []
    for i, (fp, side) in enumerate(zip(plan.footprints, footprint_sides(plan))):
        footprints.append(
            {
                "index": i,
                "side": side.value,
                "begin_time": fp.begin_time,
                "duration_s": duration_to_seconds(fp.duration),
                **_matrix_columns(fp.position),
            }
        )

    samples = []
    for name in TRAJECTORY_FIELDS:
        for i, sample in enumerate(getattr(plan, name).data):
            samples.append(
                {
                    "trajectory": name,
                    "index": i,
                    "duration_s": duration_to_seconds(sample.duration),
                    **_matrix_columns(sample.position),
                }
            )

    def table(rows: list[dict], schema: pa.Schema) -> pa.Table:
        if not rows:
            return schema.empty_table()
        df = pd.DataFrame(rows, columns=schema.names)
        return pa.Table.from_pandas(df, schema=schema, preserve_index=False)

    return {
        "poses": table(poses, POSES_SCHEMA),
        "footprints": table(footprints, FOOTPRINTS_SCHEMA),
        "trajectories": table(samples, TRAJECTORIES_SCHEMA),
    }


def export_plan(plan: PlanLike, out_path: Path) -> dict[str, Path]:
    """Write poses/footprints/trajectories .parquet files under out_path."""
    out_path = Path(out_path)
    out_path.mkdir(parents=True, exist_ok=True)
    written = {}
    for name, table in plan_tables(plan).items():
        target = out_path / f"{name}.parquet"
        pq.write_table(table, target)
        written[name] = target
    return written

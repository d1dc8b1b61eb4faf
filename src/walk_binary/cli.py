"""walk-binary - inspect, verify and export walk plan files."""
from __future__ import annotations

import json
from pathlib import Path

import click

from .errors import WalkBinaryError
from .export import export_plan
from .io import load
from .verify import CANONICAL_JSON_KW, summarize_plan_file, verify_plan_file


def _fatal(e: Exception) -> None:
    # Fail closed, with a single-line reason.
    click.echo(f"FATAL: {e}", err=True)
    raise SystemExit(1)


@click.group()
def main():
    pass


@main.command("inspect")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def inspect_cmd(path: Path):
    """Print a JSON summary of a plan file."""
    try:
        summary = summarize_plan_file(path)
    except WalkBinaryError as e:
        _fatal(e)
    click.echo(json.dumps(summary, indent=2, sort_keys=True))


@main.command("verify")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def verify_cmd(path: Path):
    """Decode a plan file and print a PASS/FAIL verdict."""
    result = verify_plan_file(path)
    click.echo(json.dumps(result, **CANONICAL_JSON_KW))
    if result["status"] != "PASS":
        raise SystemExit(1)


@main.command("export")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("out", type=click.Path(file_okay=False, path_type=Path))
def export_cmd(path: Path, out: Path):
    """Export poses, footprints and trajectories as Parquet tables."""
    try:
        plan = load(path)
        written = export_plan(plan, out)
    except WalkBinaryError as e:
        _fatal(e)
    click.echo(f"PASS: Plan exported to {out}")
    for name, target in written.items():
        click.echo(f"  {name}: {target.name}")


if __name__ == "__main__":
    main()

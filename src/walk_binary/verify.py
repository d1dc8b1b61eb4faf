import hashlib
from pathlib import Path
from warnings import catch_warnings, simplefilter

from walk_core.types import POSE_FIELDS, TRAJECTORY_FIELDS

from .const import ERRORS
from .errors import FormatError, StreamError, TruncatedError
from .io import locate_fields

CANONICAL_JSON_KW = {"sort_keys": True, "separators": (",", ":"), "ensure_ascii": False}

_CODES = (
    (StreamError, "E_STREAM"),
    (FormatError, "E_FORMAT"),
    (TruncatedError, "E_TRUNCATED"),
)


def _fail(code: str, detail: str, path: Path) -> dict:
    errors = [{"code": code, "message": ERRORS[code], "detail": detail, "path": str(path)}]
    return {"status": "FAIL", "error_count": len(errors), "errors": errors}


def verify_plan_file(path: Path) -> dict:
    """Decode a plan file and report PASS/FAIL with a stable error code.

    Warnings raised while decoding are reported, not fatal.
    """
    with catch_warnings(record=True) as caught:
        simplefilter("always")
        try:
            locate_fields(path)
        except (StreamError, FormatError, TruncatedError) as e:
            code = next(c for kind, c in _CODES if isinstance(e, kind))
            return _fail(code, str(e), path)

    return {
        "status": "PASS",
        "error_count": 0,
        "errors": [],
        "warnings": [str(w.message) for w in caught],
    }


def summarize_plan_file(path: Path) -> dict:
    """Shape-level summary of a plan file."""
    path = Path(path)
    raw = path.read_bytes()
    plan, offsets = locate_fields(path)
    return {
        "file": str(path),
        "size": len(raw),
        "sha256": hashlib.sha256(raw).hexdigest(),
        "start_with_left_foot": plan.start_with_left_foot,
        "footprints": len(plan.footprints),
        "poses": {name: list(getattr(plan, name).shape) for name in POSE_FIELDS},
        "trajectories": {name: len(getattr(plan, name)) for name in TRAJECTORY_FIELDS},
        "offsets": offsets,
    }


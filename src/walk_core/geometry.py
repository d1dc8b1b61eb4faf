"""Conversions into the homogeneous transforms and vectors stored in a plan."""
from __future__ import annotations

import math

import numpy as np


def _check_shape(m: np.ndarray, shape: tuple[int, ...], what: str) -> None:
    if m.shape != shape:
        raise ValueError(f"{what} must have shape {shape}, got {m.shape}")


def trans2d_to_trans3d(src) -> np.ndarray:
    """Lift a 3x3 planar transform to a 4x4 spatial transform.

    The rotation block and the x/y translation are copied; z stays zero.
    """
    s = np.asarray(src, dtype=np.float64)
    _check_shape(s, (3, 3), "Source transform")
    dst = np.eye(4)
    dst[0:2, 0:2] = s[0:2, 0:2]
    dst[0, 3] = s[0, 2]
    dst[1, 3] = s[1, 2]
    return dst


def pose2d_to_trans3d(x: float, y: float, theta: float) -> np.ndarray:
    """4x4 transform for a planar pose, theta in radians around z."""
    dst = np.eye(4)
    c, s = math.cos(theta), math.sin(theta)
    dst[0, 0] = c
    dst[1, 1] = c
    dst[0, 1] = -s
    dst[1, 0] = s
    dst[0, 3] = x
    dst[1, 3] = y
    return dst


def vector3d_to_trans3d(src) -> np.ndarray:
    """Pure translation transform."""
    v = np.asarray(src, dtype=np.float64).ravel()
    _check_shape(v, (3,), "Translation")
    dst = np.eye(4)
    dst[0:3, 3] = v
    return dst


def to_trans3d(src) -> np.ndarray:
    m = np.array(src, dtype=np.float64)
    _check_shape(m, (4, 4), "Transform")
    return m


def to_vector2d(src) -> np.ndarray:
    v = np.array(src, dtype=np.float64).ravel()
    _check_shape(v, (2,), "Vector")
    return v


def to_vector3d(src) -> np.ndarray:
    v = np.array(src, dtype=np.float64).ravel()
    _check_shape(v, (3,), "Vector")
    return v


def to_posture(src, size: int | None = None) -> np.ndarray:
    """Posture column vector. An explicit size must match the source size."""
    v = np.array(src, dtype=np.float64).ravel()
    if v.size == 0:
        raise ValueError("Posture has zero size")
    if size is not None and v.size != size:
        raise ValueError(f"Posture size mismatch: expected {size}, got {v.size}")
    return v.reshape(-1, 1)

"""Small 2D vector helpers shared by the physics modules."""
from __future__ import annotations

import math

import numpy as np


def vec2(x: float = 0.0, y: float = 0.0) -> np.ndarray:
    return np.array([x, y], dtype=float)


def as_vec2(value) -> np.ndarray:
    """Return ``value`` as a fresh float array of shape ``(2,)``."""

    return np.array(value, dtype=float).reshape(2)


def norm(a: np.ndarray) -> float:
    return math.hypot(float(a[0]), float(a[1]))


def distance(a: np.ndarray, b: np.ndarray) -> float:
    return math.hypot(float(b[0] - a[0]), float(b[1] - a[1]))


def dot(a: np.ndarray, b: np.ndarray) -> float:
    return float(a[0] * b[0] + a[1] * b[1])


def cross(a: np.ndarray, b: np.ndarray) -> float:
    """z-component of the 3D cross product of two planar vectors."""

    return float(a[0] * b[1] - a[1] * b[0])


def rotate(a: np.ndarray, angle: float) -> np.ndarray:
    c = math.cos(angle)
    s = math.sin(angle)
    return np.array([c * a[0] - s * a[1], s * a[0] + c * a[1]], dtype=float)


def angle_between(a: np.ndarray, b: np.ndarray) -> float:
    """Angle in radians between ``a`` and ``b``; 0 if either is zero."""

    na = norm(a)
    nb = norm(b)
    if na == 0.0 or nb == 0.0:
        return 0.0
    cos_angle = max(-1.0, min(1.0, dot(a, b) / (na * nb)))
    return math.acos(cos_angle)


__all__ = [
    "angle_between",
    "as_vec2",
    "cross",
    "distance",
    "dot",
    "norm",
    "rotate",
    "vec2",
]

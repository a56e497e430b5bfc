"""
Canonical geometry helpers for support generation.

This module is the single source of truth for the small vector
computations shared by detection, routing and strut synthesis. Every
helper has an explicit branch for degenerate input instead of letting
NaN propagate.
"""

import numpy as np
from typing import Optional
from scipy.spatial.transform import Rotation

EPSILON = 1e-12

UP = np.array([0.0, 0.0, 1.0])


def unit_vector(v: np.ndarray) -> np.ndarray:
    """
    Normalize a vector.

    Returns the zero vector when ``v`` has (near) zero length.
    """
    v = np.asarray(v, dtype=float)
    norm = np.linalg.norm(v)
    if norm < EPSILON:
        return np.zeros(3)
    return v / norm


def angle_between(v1: np.ndarray, v2: np.ndarray) -> float:
    """
    Angle between two vectors in radians, in [0, pi].

    Returns 0.0 if either vector has zero length.

    Examples
    --------
    >>> angle_between(np.array([1.0, 0, 0]), np.array([0, 1.0, 0]))  # doctest: +ELLIPSIS
    1.5707...
    """
    v1 = np.asarray(v1, dtype=float)
    v2 = np.asarray(v2, dtype=float)
    n1 = np.linalg.norm(v1)
    n2 = np.linalg.norm(v2)
    if n1 < EPSILON or n2 < EPSILON:
        return 0.0
    cos_angle = np.clip(np.dot(v1, v2) / (n1 * n2), -1.0, 1.0)
    return float(np.arccos(cos_angle))


def elevation_angle(origin: np.ndarray, target: np.ndarray) -> Optional[float]:
    """
    Angle between ``target - origin`` and its projection onto the
    horizontal plane through ``origin``.

    0 means level, pi/2 means straight above or below. A target directly
    above or below has a zero-length projection and resolves to pi/2.
    Returns None when the two points coincide.
    """
    offset = np.asarray(target, dtype=float) - np.asarray(origin, dtype=float)
    horizontal = float(np.hypot(offset[0], offset[1]))
    vertical = abs(float(offset[2]))
    if horizontal < EPSILON and vertical < EPSILON:
        return None
    return float(np.arctan2(vertical, horizontal))


def rotate_around(v: np.ndarray, axis: np.ndarray, angle: float) -> np.ndarray:
    """
    Rotate ``v`` about ``axis`` by ``angle`` radians (right-hand rule).

    Equivalent to Rodrigues' rotation formula with a unit axis. A zero
    axis leaves ``v`` unchanged.
    """
    axis = unit_vector(axis)
    v = np.asarray(v, dtype=float)
    if not axis.any():
        return v.copy()
    return Rotation.from_rotvec(axis * angle).apply(v)


def intersect_lines(
    ap: np.ndarray,
    ad: np.ndarray,
    bp: np.ndarray,
    bd: np.ndarray,
    tolerance: float = 1e-7,
) -> Optional[np.ndarray]:
    """
    Point on line ``ap + s*ad`` closest to line ``bp + t*bd``.

    For intersecting lines this is the intersection point.

    Returns
    -------
    np.ndarray or None
        None when the lines are (near) parallel and no unique closest
        point exists.
    """
    ap = np.asarray(ap, dtype=float)
    ad = np.asarray(ad, dtype=float)
    bp = np.asarray(bp, dtype=float)
    bd = np.asarray(bd, dtype=float)

    a = np.dot(ad, ad)
    b = np.dot(ad, bd)
    c = np.dot(bd, bd)
    d = np.dot(ad, ap - bp)
    e = np.dot(bd, ap - bp)

    denom = a * c - b * b
    if denom < tolerance:
        return None
    s = (b * e - c * d) / denom
    return ap + s * ad


__all__ = [
    "EPSILON",
    "UP",
    "unit_vector",
    "angle_between",
    "elevation_angle",
    "rotate_around",
    "intersect_lines",
]

"""Pure geometry helpers shared across the pipeline."""

from .geometry import (
    EPSILON,
    UP,
    unit_vector,
    angle_between,
    elevation_angle,
    rotate_around,
    intersect_lines,
)

__all__ = [
    "EPSILON",
    "UP",
    "unit_vector",
    "angle_between",
    "elevation_angle",
    "rotate_around",
    "intersect_lines",
]

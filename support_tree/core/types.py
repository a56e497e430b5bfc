"""
Core value types for support trees.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Sequence
import numpy as np


Vec3 = Tuple[float, float, float]


def as_vec3(values: Sequence[float]) -> Vec3:
    """Convert any 3-sequence (list, tuple, ndarray) to a tuple of floats."""
    return (float(values[0]), float(values[1]), float(values[2]))


class PointType(Enum):
    """
    Where a support point sits.

    COMMON points are in transit (continuations and convergence points),
    MODEL points touch the model surface and PLATE points rest on the
    build plate.
    """

    COMMON = "common"
    MODEL = "model"
    PLATE = "plate"


@dataclass(frozen=True)
class SupportPoint:
    """
    Support point with a location, a type tag and an optional normal.

    Equality and hashing use the location only, so two points at the same
    place compare equal regardless of their tag. The normal is meaningful
    only for MODEL points.
    """

    location: Vec3
    type: PointType = field(default=PointType.COMMON, compare=False)
    normal: Optional[Vec3] = field(default=None, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "location", as_vec3(self.location))
        if self.normal is not None:
            object.__setattr__(self, "normal", as_vec3(self.normal))

    @property
    def x(self) -> float:
        return self.location[0]

    @property
    def y(self) -> float:
        return self.location[1]

    @property
    def z(self) -> float:
        return self.location[2]

    @property
    def height(self) -> float:
        return self.location[2]

    @property
    def position(self) -> np.ndarray:
        return np.array(self.location, dtype=float)

    @property
    def normal_vector(self) -> np.ndarray:
        """Normal as an array; the zero vector when no normal is set."""
        if self.normal is None:
            return np.zeros(3)
        return np.array(self.normal, dtype=float)

    def sort_key(self) -> Tuple[float, float]:
        """Key ordering points by height desc, then x+y desc."""
        return (-self.location[2], -(self.location[0] + self.location[1]))

    def distance_to(self, other: "SupportPoint") -> float:
        return float(np.linalg.norm(self.position - other.position))

    def with_type(self, point_type: PointType) -> "SupportPoint":
        return SupportPoint(self.location, point_type, self.normal)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "location": list(self.location),
            "type": self.type.value,
            "normal": list(self.normal) if self.normal is not None else None,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "SupportPoint":
        """Create from dictionary."""
        return cls(
            location=d["location"],
            type=PointType(d.get("type", PointType.COMMON.value)),
            normal=d.get("normal"),
        )


@dataclass(frozen=True)
class TreeSegment:
    """
    Directed connection from a higher point to its resolved target.
    """

    source: SupportPoint
    target: SupportPoint

    @property
    def length(self) -> float:
        return self.source.distance_to(self.target)

    @property
    def is_degenerate(self) -> bool:
        return self.source == self.target

    def to_dict(self) -> dict:
        return {
            "source": self.source.to_dict(),
            "target": self.target.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "TreeSegment":
        return cls(
            source=SupportPoint.from_dict(d["source"]),
            target=SupportPoint.from_dict(d["target"]),
        )


def sort_points(points: Sequence[SupportPoint]) -> list:
    """Return points ordered by height desc, tie-broken by x+y desc."""
    return sorted(points, key=SupportPoint.sort_key)


__all__ = [
    "Vec3",
    "as_vec3",
    "PointType",
    "SupportPoint",
    "TreeSegment",
    "sort_points",
]

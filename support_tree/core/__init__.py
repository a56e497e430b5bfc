"""Core data structures for support trees."""

from .types import Vec3, PointType, SupportPoint, TreeSegment, sort_points
from .pending import PendingQueue
from .tree import SupportTree
from .progress import (
    ProgressListener,
    NullProgress,
    LoggingProgress,
    TqdmProgress,
    ProgressTracker,
)

__all__ = [
    "Vec3",
    "PointType",
    "SupportPoint",
    "TreeSegment",
    "sort_points",
    "PendingQueue",
    "SupportTree",
    "ProgressListener",
    "NullProgress",
    "LoggingProgress",
    "TqdmProgress",
    "ProgressTracker",
]

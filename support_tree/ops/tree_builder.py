"""
Greedy support tree construction.

Consumes the sampled support points highest first. Each popped point is
resolved onto one target and produces one segment (two when it converges
with another pending point):

- MODEL points hop along their own normal and continue as COMMON points,
  or drop straight onto the plate when already close to it
- COMMON points pick the model surface, another pending point or the
  plate, whichever wins the distance precedence; converging with a
  pending point replaces both by a single lower COMMON point

Every point pushed back into the queue is strictly lower than the point
that produced it, and every COMMON step shrinks the queue, so the loop
always terminates.
"""

from typing import Optional, Tuple, List, Sequence, TYPE_CHECKING
import logging
import math
import numpy as np

from ..core.types import PointType, SupportPoint
from ..core.pending import PendingQueue
from ..core.tree import SupportTree
from ..core.progress import ProgressListener, ProgressTracker
from ..policies import SupportPolicy, OperationReport, ensure_valid
from ..utils.geometry import UP, unit_vector, rotate_around, intersect_lines
from .queries import nearest_pending_entry, nearest_model_point

if TYPE_CHECKING:
    import trimesh

logger = logging.getLogger(__name__)

TARGET_MODEL = "model"
TARGET_PENDING = "pending"
TARGET_PLATE = "plate"


def common_point(p: Sequence[float], c: Sequence[float], angle_limit: float) -> Optional[np.ndarray]:
    """
    Convergence point of two supports.

    Both points start from a straight-down ray; the ray from ``p`` is
    tilted toward ``c`` by ``angle_limit`` and the ray from ``c`` toward
    ``p`` by the same angle, both about the horizontal axis perpendicular
    to ``c - p``. The result is the point on the first ray closest to the
    second (their intersection when they meet).

    Returns None when the points are vertically aligned or the tilted
    rays are near parallel.

    Examples
    --------
    >>> common_point([-1.0, 0.0, 5.0], [1.0, 0.0, 5.0], math.radians(45))
    array([0., 0., 4.])
    """
    p = np.asarray(p, dtype=float)
    c = np.asarray(c, dtype=float)

    axis = unit_vector(np.cross(unit_vector(c - p), UP))
    if not axis.any():
        logger.debug("No horizontal axis between %s and %s", p, c)
        return None

    down = -UP
    from_p = rotate_around(down, axis, angle_limit)
    from_c = rotate_around(down, axis, -angle_limit)
    result = intersect_lines(p, from_p, c, from_c)
    if result is None:
        logger.debug("Near parallel convergence rays from %s and %s", p, c)
        return None
    # Snap signed zeros and rounding noise so equal inputs give equal keys.
    return np.where(np.abs(result) < 1e-12, 0.0, result)


def select_target(
    pending_distance: Optional[float],
    model_distance: Optional[float],
    plate_distance: float,
    tolerance: float = 0.0,
) -> str:
    """
    Pick the target kind for a COMMON point.

    The model wins if strictly closer than both the pending candidate and
    the plate; otherwise the pending candidate wins if closer than the
    plate; otherwise the plate. A missing candidate (None) or one at zero
    distance never wins.
    """
    def available(distance):
        return distance is not None and distance > tolerance

    pending = pending_distance if available(pending_distance) else math.inf
    model = model_distance if available(model_distance) else math.inf

    if model < math.inf and model < pending - tolerance and model < plate_distance - tolerance:
        return TARGET_MODEL
    if pending < math.inf and pending < plate_distance - tolerance:
        return TARGET_PENDING
    return TARGET_PLATE


class TreeBuilder:
    """
    Greedy router over a pending queue.

    Parameters
    ----------
    mesh : trimesh.Trimesh
        Model used for point-to-surface queries; read only
    policy : SupportPolicy, optional
        Routing parameters
    """

    def __init__(self, mesh: "trimesh.Trimesh", policy: Optional[SupportPolicy] = None):
        if policy is None:
            policy = SupportPolicy()
        ensure_valid(policy)
        self.mesh = mesh
        self.policy = policy
        self.angle_limit = policy.angle_limit
        self.stats = {}

    def build(
        self,
        points: Sequence[SupportPoint],
        progress: Optional[ProgressListener] = None,
    ) -> SupportTree:
        self.stats = {
            "initial_points": len(points),
            "iterations": 0,
            "discarded": 0,
            "continuations": 0,
            "convergences": 0,
            "model_terminals": 0,
            "plate_terminals": 0,
            "fallbacks": 0,
        }
        if not points:
            return SupportTree()

        plate_height = min(point.z for point in points)
        tree = SupportTree(plate_height=plate_height)
        queue = PendingQueue(points)

        with ProgressTracker(progress, "Calculating tree points...", 2 * len(points)) as tracker:
            while queue:
                self.stats["iterations"] += 1
                tracker.update(self.stats["iterations"])

                _, point = queue.pop()
                if point.z <= plate_height:
                    self.stats["discarded"] += 1
                    continue

                base = SupportPoint((point.x, point.y, plate_height), PointType.PLATE)
                if point.type is PointType.MODEL:
                    self._route_model_point(point, base, queue, tree)
                elif point.type is PointType.COMMON or point.type is PointType.PLATE:
                    self._route_common_point(point, base, queue, tree)
                else:
                    raise ValueError(f"Unhandled point type {point.type}")

        logger.info(
            "Built support tree with %d segments from %d points in %d iterations",
            len(tree), len(points), self.stats["iterations"],
        )
        return tree

    def _route_model_point(
        self,
        point: SupportPoint,
        base: SupportPoint,
        queue: PendingQueue,
        tree: SupportTree,
    ) -> None:
        if point.z - base.z < self.policy.plate_snap_distance:
            tree.add(point, base)
            self.stats["plate_terminals"] += 1
            return

        direction = unit_vector(point.normal_vector)
        continuation = point.position + direction * self.policy.continuation_length
        if continuation[2] >= point.z:
            # Normal missing or not facing down: the hop would not descend.
            logger.debug("Normal of %s does not descend, dropping to plate", point.location)
            tree.add(point, base)
            self.stats["plate_terminals"] += 1
            self.stats["fallbacks"] += 1
            return

        next_point = SupportPoint(continuation, PointType.COMMON)
        tree.add(point, next_point)
        queue.push(next_point)
        self.stats["continuations"] += 1

    def _route_common_point(
        self,
        point: SupportPoint,
        base: SupportPoint,
        queue: PendingQueue,
        tree: SupportTree,
    ) -> None:
        entry = nearest_pending_entry(point, queue, self.angle_limit)
        model = nearest_model_point(point, self.mesh, self.angle_limit)

        pending_distance = point.distance_to(entry[1]) if entry is not None else None
        model_distance = point.distance_to(model) if model is not point else None
        plate_distance = point.distance_to(base)

        choice = select_target(
            pending_distance, model_distance, plate_distance, self.policy.tolerance
        )

        if choice == TARGET_PENDING:
            entry_id, other = entry
            if self._converge(point, entry_id, other, queue, tree):
                return
            choice = select_target(None, model_distance, plate_distance, self.policy.tolerance)

        if choice == TARGET_MODEL:
            tree.add(point, model)
            self.stats["model_terminals"] += 1
        elif choice == TARGET_PLATE:
            tree.add(point, base)
            self.stats["plate_terminals"] += 1
        else:
            raise ValueError(f"Unhandled target kind {choice}")

    def _converge(
        self,
        point: SupportPoint,
        entry_id: int,
        other: SupportPoint,
        queue: PendingQueue,
        tree: SupportTree,
    ) -> bool:
        location = common_point(point.position, other.position, self.angle_limit)
        if location is None or location[2] >= point.z or location[2] >= other.z:
            logger.debug(
                "No descending convergence point for %s and %s, falling back to model or plate",
                point.location, other.location,
            )
            self.stats["fallbacks"] += 1
            return False

        joint = SupportPoint(location, PointType.COMMON)
        tree.add(point, joint)
        tree.add(other, joint)
        queue.remove(entry_id)
        queue.push(joint)
        self.stats["convergences"] += 1
        return True


def build_support_tree(
    points: Sequence[SupportPoint],
    mesh: "trimesh.Trimesh",
    policy: Optional[SupportPolicy] = None,
    progress: Optional[ProgressListener] = None,
) -> Tuple[SupportTree, OperationReport]:
    """
    Route sampled support points down to the plate or the model.

    Parameters
    ----------
    points : sequence of SupportPoint
        Initial pending points, usually from sample_support_points
    mesh : trimesh.Trimesh
        Model used for point-to-surface queries
    policy : SupportPolicy, optional
        Routing parameters
    progress : ProgressListener, optional
        Receives start / percent / end notifications

    Returns
    -------
    tree : SupportTree
        Forest of directed segments
    report : OperationReport
        Report with routing statistics
    """
    builder = TreeBuilder(mesh, policy)
    tree = builder.build(points, progress)

    warnings = []
    if builder.stats.get("fallbacks"):
        warnings.append(
            f"{builder.stats['fallbacks']} points dropped to the plate after a degenerate routing step"
        )

    report = OperationReport(
        operation="build_support_tree",
        success=True,
        requested_policy=builder.policy.to_dict(),
        effective_policy=builder.policy.to_dict(),
        warnings=warnings,
        metadata=dict(builder.stats, segment_count=len(tree), plate_height=tree.plate_height),
    )
    return tree, report


__all__ = [
    "common_point",
    "select_target",
    "TreeBuilder",
    "build_support_tree",
]

"""
Angle-constrained nearest-target queries.

Two searches feed the tree builder:

- nearest_pending_target: closest other unresolved point that lies
  shallower than the cone angle, i.e. one the two points can converge
  toward under the overhang limit
- nearest_model_point: closest point on the model surface below the
  query point that lies steeper than the cone angle

Both return the query point itself when no candidate is valid.

The cone angle is ``pi/2 - angle_limit``, measured as the elevation of
the offset above (or below) the horizontal plane through the query point.
"""

from typing import Iterable, Optional, Sequence, Tuple, Union, TYPE_CHECKING
import logging
import math
import numpy as np

from ..core.types import PointType, SupportPoint
from ..core.pending import PendingQueue
from ..utils.geometry import elevation_angle

if TYPE_CHECKING:
    import trimesh

logger = logging.getLogger(__name__)

DEGENERATE_TOLERANCE = 1e-12


def _rowdot(u: np.ndarray, v: np.ndarray) -> np.ndarray:
    return np.einsum("ij,ij->i", u, v)


def _ratio(numer: np.ndarray, denom: np.ndarray) -> np.ndarray:
    """``numer / denom`` with zero wherever ``denom`` is not positive."""
    return np.divide(numer, denom, out=np.zeros_like(numer), where=denom > 0)


def _edge_param(numer: np.ndarray, denom: np.ndarray) -> np.ndarray:
    """Edge parameter ``numer / denom`` clamped to 1 from above."""
    return np.where(numer >= denom, 1.0, _ratio(numer, denom))


def triangles_barycentric(
    p: Sequence[float],
    triangles: np.ndarray,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Parameters ``(s, t)`` of the closest point to ``p`` on each triangle.

    The closest point on triangle ``(q1, q2, q3)`` is
    ``q1 + s*(q2 - q1) + t*(q3 - q1)``. Follows the seven-region
    classification of Schneider and Eberly, "Geometric Tools for Computer
    Graphics", section 10.3.2, evaluated for all triangles at once. The
    result always satisfies ``s >= 0, t >= 0, s + t <= 1``.

    A degenerate triangle (zero area relative to its edge lengths) falls
    back to its vertex nearest to ``p``: (0, 0), (1, 0) or (0, 1).

    Parameters
    ----------
    p : sequence of float
        Query point
    triangles : np.ndarray
        (T, 3, 3) triangle vertices

    Returns
    -------
    s, t : np.ndarray
        (T,) barycentric parameters
    """
    p = np.asarray(p, dtype=float)
    triangles = np.asarray(triangles, dtype=float).reshape(-1, 3, 3)

    q1 = triangles[:, 0]
    e0 = triangles[:, 1] - q1
    e1 = triangles[:, 2] - q1
    diff = q1 - p
    a = _rowdot(e0, e0)
    b = _rowdot(e0, e1)
    c = _rowdot(e1, e1)
    d = _rowdot(e0, diff)
    e = _rowdot(e1, diff)
    det = a * c - b * b
    s = b * e - c * d
    t = b * d - a * e

    zeros = np.zeros_like(a)
    ones = np.ones_like(a)
    denom = a - 2 * b + c

    # Regions 2 and 6 minimise along the q2-q3 edge when tmp1 > tmp0.
    tmp0_2, tmp1_2 = b + d, c + e
    s2 = np.where(tmp1_2 > tmp0_2, _edge_param(tmp1_2 - tmp0_2, denom), zeros)
    t2 = np.where(
        tmp1_2 > tmp0_2,
        1.0 - s2,
        np.where(tmp1_2 <= 0, ones, np.where(e >= 0, zeros, _ratio(-e, c))),
    )
    tmp0_6, tmp1_6 = b + e, a + d
    t6 = np.where(tmp1_6 > tmp0_6, _edge_param(tmp1_6 - tmp0_6, denom), zeros)
    s6 = np.where(
        tmp1_6 > tmp0_6,
        1.0 - t6,
        np.where(tmp1_6 <= 0, ones, np.where(d >= 0, zeros, _ratio(-d, a))),
    )

    numer1 = c + e - b - d
    s1 = np.where(numer1 <= 0, zeros, _edge_param(numer1, denom))

    inside = s + t <= det
    regions = [
        inside & (s < 0) & (t < 0) & (e < 0),   # 4, along q1-q3
        inside & (s < 0) & (t < 0) & (d < 0),   # 4, along q1-q2
        inside & (s < 0) & (t < 0),             # 4, at q1
        inside & (s < 0),                       # 3
        inside & (t < 0),                       # 5
        inside,                                 # 0
        s < 0,                                  # 2
        t < 0,                                  # 6
    ]
    s_choices = [
        zeros,
        _edge_param(-d, a),
        zeros,
        zeros,
        np.where(d >= 0, zeros, _edge_param(-d, a)),
        _ratio(s, det),
        s2,
        s6,
    ]
    t_choices = [
        _edge_param(-e, c),
        zeros,
        zeros,
        np.where(e >= 0, zeros, _edge_param(-e, c)),
        zeros,
        _ratio(t, det),
        t2,
        t6,
    ]
    s_out = np.select(regions, s_choices, default=s1)  # region 1
    t_out = np.select(regions, t_choices, default=1.0 - s1)

    degenerate = (a * c == 0.0) | (det <= DEGENERATE_TOLERANCE * a * c)
    if degenerate.any():
        distances = np.linalg.norm(triangles[degenerate] - p, axis=2)
        nearest = np.argmin(distances, axis=1)
        s_out[degenerate] = (nearest == 1).astype(float)
        t_out[degenerate] = (nearest == 2).astype(float)
        logger.debug("%d degenerate triangles, falling back to nearest vertex", int(degenerate.sum()))

    # Rounding in region 0 can leave s, t a hair outside the triangle.
    s_out = np.clip(s_out, 0.0, 1.0)
    t_out = np.clip(t_out, 0.0, 1.0)
    total = s_out + t_out
    over = total > 1.0
    s_out = np.where(over, s_out / np.where(over, total, 1.0), s_out)
    t_out = np.where(over, t_out / np.where(over, total, 1.0), t_out)
    return s_out, t_out


def triangle_barycentric(
    p: Sequence[float],
    q1: Sequence[float],
    q2: Sequence[float],
    q3: Sequence[float],
) -> Tuple[float, float]:
    """Parameters ``(s, t)`` of the point of triangle ``q1 q2 q3`` closest to ``p``."""
    s, t = triangles_barycentric(p, np.array([[q1, q2, q3]], dtype=float))
    return float(s[0]), float(t[0])


def closest_points_on_triangles(p: Sequence[float], triangles: np.ndarray) -> np.ndarray:
    """(T, 3) closest point to ``p`` on each of the (T, 3, 3) ``triangles``."""
    triangles = np.asarray(triangles, dtype=float).reshape(-1, 3, 3)
    s, t = triangles_barycentric(p, triangles)
    q1 = triangles[:, 0]
    return q1 + s[:, None] * (triangles[:, 1] - q1) + t[:, None] * (triangles[:, 2] - q1)


def project_to_triangle(p: Sequence[float], triangle: Sequence[Sequence[float]]) -> np.ndarray:
    """
    Closest point on ``triangle`` (three vertices) to ``p``.

    Examples
    --------
    >>> project_to_triangle([0.3, 0.3, 5.0], [[0, 0, 0], [1, 0, 0], [0, 1, 0]])
    array([0.3, 0.3, 0. ])
    """
    return closest_points_on_triangles(p, np.asarray(triangle, dtype=float)[None])[0]


def within_convergence_cone(origin: SupportPoint, candidate: np.ndarray, angle_limit: float) -> bool:
    """
    True if ``candidate`` is shallower than ``pi/2 - angle_limit`` as seen
    from ``origin``.
    """
    elevation = elevation_angle(origin.position, candidate)
    if elevation is None:
        return False
    return elevation < math.pi / 2 - angle_limit


def within_support_cone(origin: SupportPoint, candidate: np.ndarray, angle_limit: float) -> bool:
    """
    True if ``candidate`` is steeper than ``pi/2 - angle_limit`` as seen
    from ``origin``. A candidate straight below is always inside.
    """
    elevation = elevation_angle(origin.position, candidate)
    if elevation is None:
        return False
    return elevation > math.pi / 2 - angle_limit


PendingSource = Union[PendingQueue, Iterable[SupportPoint], Iterable[Tuple[int, SupportPoint]]]


def _pending_entries(pending: PendingSource):
    if isinstance(pending, PendingQueue):
        return pending.entries()
    entries = []
    for index, item in enumerate(pending):
        if isinstance(item, SupportPoint):
            entries.append((index, item))
        else:
            entries.append(item)
    return entries


def nearest_pending_entry(
    point: SupportPoint,
    pending: PendingSource,
    angle_limit: float,
) -> Optional[Tuple[int, SupportPoint]]:
    """
    Nearest valid pending candidate as ``(entry_id, point)``.

    Candidates at the query location are skipped. Ties keep the first
    candidate in queue order. Returns None when nothing is valid.
    """
    origin = point.position
    best: Optional[Tuple[int, SupportPoint]] = None
    best_distance = math.inf

    for entry_id, candidate in _pending_entries(pending):
        if candidate == point:
            continue
        position = candidate.position
        if not within_convergence_cone(point, position, angle_limit):
            continue
        distance = float(np.linalg.norm(position - origin))
        if distance < best_distance:
            best_distance = distance
            best = (entry_id, candidate)

    return best


def nearest_pending_target(
    point: SupportPoint,
    pending: PendingSource,
    angle_limit: float,
) -> SupportPoint:
    """
    Nearest other pending point reachable under the cone constraint.

    Returns ``point`` itself when no candidate is valid.
    """
    best = nearest_pending_entry(point, pending, angle_limit)
    if best is None:
        return point
    return best[1]


def nearest_model_point(
    point: SupportPoint,
    mesh: "trimesh.Trimesh",
    angle_limit: float,
) -> SupportPoint:
    """
    Nearest projection of ``point`` onto a model triangle.

    A projection is valid when it is strictly lower than ``point`` and
    inside the support cone. The result is a MODEL point carrying the
    owning face's normal, or ``point`` itself when no face qualifies.
    """
    faces = np.asarray(mesh.faces)
    if len(faces) == 0:
        return point

    triangles = np.asarray(mesh.vertices, dtype=float)[faces]
    # A face entirely at or above the point cannot yield a lower projection.
    candidates = np.nonzero(triangles[:, :, 2].min(axis=1) < point.z)[0]
    if len(candidates) == 0:
        return point

    origin = point.position
    projections = closest_points_on_triangles(origin, triangles[candidates])
    offsets = projections - origin
    # Same elevation test as within_support_cone, over all candidates at once.
    elevation = np.arctan2(np.abs(offsets[:, 2]), np.hypot(offsets[:, 0], offsets[:, 1]))
    valid = (projections[:, 2] < point.z) & (elevation > math.pi / 2 - angle_limit)
    if not valid.any():
        return point

    distances = np.where(valid, np.linalg.norm(offsets, axis=1), np.inf)
    best = int(np.argmin(distances))
    face_normals = np.asarray(mesh.face_normals, dtype=float)
    return SupportPoint(projections[best], PointType.MODEL, face_normals[candidates[best]])


def support_cones(
    points: Sequence[SupportPoint],
    angle_limit: float,
    resolution: int = 50,
) -> np.ndarray:
    """
    Base rings of the printable cones below each support point.

    The ring of point ``p`` lies on the z=0 plane at
    ``p.xy + (cos(a), sin(a)) * tan(angle_limit) * p.z`` for ``resolution``
    evenly spaced angles ``a``. Intended for external visualization.

    Returns
    -------
    np.ndarray
        (len(points), resolution, 3)
    """
    if not points:
        return np.zeros((0, resolution, 3))
    angles = np.arange(resolution) * 2 * math.pi / resolution
    locations = np.array([p.location for p in points], dtype=float)
    spread = math.tan(angle_limit) * locations[:, 2:3]
    rings = np.zeros((len(points), resolution, 3))
    rings[:, :, 0] = locations[:, 0:1] + np.cos(angles)[None, :] * spread
    rings[:, :, 1] = locations[:, 1:2] + np.sin(angles)[None, :] * spread
    return rings


__all__ = [
    "triangles_barycentric",
    "triangle_barycentric",
    "closest_points_on_triangles",
    "project_to_triangle",
    "within_convergence_cone",
    "within_support_cone",
    "nearest_pending_entry",
    "nearest_pending_target",
    "nearest_model_point",
    "support_cones",
]

"""
Support point sampling.

Turns flagged overhang features into MODEL support points:

- a flagged vertex gives one point carrying the vertex normal
- a flagged edge gives ``density`` evenly spaced points carrying the
  averaged normal of its adjacent faces
- a flagged face gives rows of points parallel to its A-C side, shrinking
  toward vertex B, plus B itself, all carrying the face normal

The merged points are sorted by height (desc), then x+y (desc), and exact
location duplicates are dropped.
"""

from typing import List, Optional, Sequence, Tuple, TYPE_CHECKING
import logging
import numpy as np

from ..core.types import PointType, SupportPoint, sort_points
from ..core.progress import ProgressListener, ProgressTracker
from ..policies import SupportPolicy, OperationReport, ensure_valid
from .overhang import OverhangFeatures, build_edge_face_map, edge_normal

if TYPE_CHECKING:
    import trimesh

logger = logging.getLogger(__name__)


def sample_edge_points(
    a: Sequence[float],
    b: Sequence[float],
    density: int,
    normal: Optional[Sequence[float]] = None,
) -> List[SupportPoint]:
    """
    Evenly spaced points from ``b`` to ``a``, both ends included.

    Point ``i`` sits at ``b + i * (a - b) / (density - 1)``. A density
    below 2 yields the single point ``b``.
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    if density < 2:
        return [SupportPoint(b, PointType.MODEL, normal)]

    step = (a - b) / (density - 1)
    return [
        SupportPoint(b + i * step, PointType.MODEL, normal)
        for i in range(int(density))
    ]


def sample_face_points(
    a: Sequence[float],
    b: Sequence[float],
    c: Sequence[float],
    density: int,
    normal: Optional[Sequence[float]] = None,
) -> List[SupportPoint]:
    """
    Grid of points covering triangle ``abc``.

    For ``i`` from ``density`` down to 2, ``i`` points are placed on the
    row between ``b + (a - b) * delta`` and ``b + (c - b) * delta`` with
    ``delta = (i - 1) / (density - 1)``. Vertex ``b`` closes the grid; it
    is emitted even when a row already covers it.
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    c = np.asarray(c, dtype=float)
    v1 = a - b
    v2 = c - b

    points: List[SupportPoint] = []
    for i in range(int(density), 1, -1):
        delta = (i - 1) / (density - 1)
        points.extend(sample_edge_points(b + v1 * delta, b + v2 * delta, i, normal))
    points.append(SupportPoint(b, PointType.MODEL, normal))
    return points


def deduplicate_points(points: Sequence[SupportPoint]) -> List[SupportPoint]:
    """Drop exact location duplicates, keeping the first occurrence."""
    seen = set()
    unique = []
    for point in points:
        if point.location in seen:
            continue
        seen.add(point.location)
        unique.append(point)
    return unique


def sample_support_points(
    mesh: "trimesh.Trimesh",
    features: OverhangFeatures,
    policy: Optional[SupportPolicy] = None,
    progress: Optional[ProgressListener] = None,
) -> Tuple[List[SupportPoint], OperationReport]:
    """
    Sample support points for every flagged feature.

    Parameters
    ----------
    mesh : trimesh.Trimesh
        Model the features were detected on
    features : OverhangFeatures
        Output of detect_overhangs
    policy : SupportPolicy, optional
        Supplies the grid density
    progress : ProgressListener, optional
        Receives start / percent / end notifications

    Returns
    -------
    points : List[SupportPoint]
        Sorted, deduplicated MODEL points; the initial pending queue
    report : OperationReport
        Report with sampling statistics
    """
    if policy is None:
        policy = SupportPolicy()
    ensure_valid(policy)
    density = int(policy.grid_density)

    vertices = np.asarray(mesh.vertices, dtype=float)
    raw: List[SupportPoint] = []
    total = len(features.vertices) + len(features.edges) + len(features.faces)

    with ProgressTracker(progress, "Sampling support points...", total) as tracker:
        step = 0
        if features.vertices:
            vertex_normals = np.asarray(mesh.vertex_normals, dtype=float)
            for v in features.vertices:
                raw.append(SupportPoint(vertices[v], PointType.MODEL, vertex_normals[v]))
                step += 1
                tracker.update(step)

        if features.edges:
            edge_faces = build_edge_face_map(mesh)
            for edge in features.edges:
                normal = edge_normal(mesh, edge, edge_faces)
                raw.extend(sample_edge_points(vertices[edge[0]], vertices[edge[1]], density, normal))
                step += 1
                tracker.update(step)

        if features.faces:
            faces = np.asarray(mesh.faces)
            face_normals = np.asarray(mesh.face_normals, dtype=float)
            for f in features.faces:
                a, b, c = vertices[faces[f]]
                raw.extend(sample_face_points(a, b, c, density, face_normals[f]))
                step += 1
                tracker.update(step)

    points = deduplicate_points(sort_points(raw))
    logger.info(
        "Sampled %d support points (%d before deduplication)", len(points), len(raw)
    )

    report = OperationReport(
        operation="sample_support_points",
        success=True,
        requested_policy=policy.to_dict(),
        effective_policy=policy.to_dict(),
        metadata={
            "raw_point_count": len(raw),
            "point_count": len(points),
            "duplicates_removed": len(raw) - len(points),
        },
    )
    return points, report


__all__ = [
    "sample_edge_points",
    "sample_face_points",
    "deduplicate_points",
    "sample_support_points",
]

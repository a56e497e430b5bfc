"""
Strut mesh synthesis from support trees.

Each segment becomes a closed triangular strut:

- the top cross-section is a single apex when the segment starts on the
  model, otherwise a horizontal equilateral triangle
- the bottom cross-section is a triangle tilted to the surface normal
  when the segment ends on the model, otherwise a horizontal triangle

Struts never share vertices with each other.
"""

from typing import Iterable, List, Optional, Tuple, Union
import logging
import math
import numpy as np
import trimesh

from ..core.types import PointType, SupportPoint, TreeSegment
from ..core.tree import SupportTree
from ..core.progress import ProgressListener, ProgressTracker
from ..policies import StrutPolicy, OperationReport, ensure_valid
from ..utils.geometry import EPSILON, UP, unit_vector, angle_between, rotate_around

logger = logging.getLogger(__name__)

RING_ANGLES = (0.0, 2 * math.pi / 3, 4 * math.pi / 3)

TOP_APEX = "apex"
TOP_RING = "ring"
BOTTOM_VERTICAL = "vertical"
BOTTOM_MODEL = "model"

# Vertex layout of a strut: 0..2 are the bottom ring, followed by either a
# single apex (3) or the top ring (3..5).
_B0, _B1, _B2 = 0, 1, 2
_APEX = 3
_T0, _T1, _T2 = 3, 4, 5

FACE_LAYOUTS = {
    (TOP_APEX, BOTTOM_VERTICAL): [
        (_APEX, _B0, _B1), (_APEX, _B1, _B2), (_APEX, _B2, _B0),
        (_B2, _B1, _B0),
    ],
    (TOP_APEX, BOTTOM_MODEL): [
        (_APEX, _B0, _B1), (_APEX, _B1, _B2), (_APEX, _B2, _B0),
    ],
    (TOP_RING, BOTTOM_VERTICAL): [
        (_T0, _T1, _T2),
        (_T0, _B0, _B1), (_T0, _B1, _T1),
        (_T1, _B1, _B2), (_T1, _B2, _T2),
        (_T2, _B2, _B0), (_T2, _B0, _T0),
        (_B2, _B1, _B0),
    ],
    (TOP_RING, BOTTOM_MODEL): [
        (_T0, _T1, _T2),
        (_T0, _B1, _B2), (_T0, _B2, _T1),
        (_T1, _B2, _B0), (_T1, _B0, _T2),
        (_T2, _B0, _B1), (_T2, _B1, _T0),
    ],
}


def strut_radius(top: np.ndarray, bottom: np.ndarray, policy: StrutPolicy) -> float:
    """
    Radius of the strut between two points.

    ``diameter_coefficient * length * angle_from_vertical`` clamped below
    by ``min_radius``; a perfectly vertical strut uses an angle factor of 1.
    """
    axis = np.asarray(top, dtype=float) - np.asarray(bottom, dtype=float)
    length = float(np.linalg.norm(axis))
    angle = angle_between(axis, UP)
    if angle == 0.0:
        angle = 1.0
    return max(policy.min_radius, policy.diameter_coefficient * length * angle)


def horizontal_ring(radius: float) -> np.ndarray:
    """Offsets of an equilateral triangle about vertical at 0/120/240 degrees."""
    start = np.array([radius, 0.0, 0.0])
    return np.array([rotate_around(start, UP, angle) for angle in RING_ANGLES])


def surface_ring(normal: np.ndarray, radius: float) -> Optional[np.ndarray]:
    """
    Offsets of an equilateral triangle lying in the plane orthogonal to
    ``normal``.

    The first corner is along ``normal x X`` (``normal x Y`` when the
    normal is parallel to X), rescaled to ``radius``. Returns None for a
    zero normal.
    """
    normal = unit_vector(normal)
    if not normal.any():
        return None

    perp = np.cross(normal * radius, np.array([1.0, 0.0, 0.0]))
    if np.linalg.norm(perp) < EPSILON:
        perp = np.cross(normal * radius, np.array([0.0, 1.0, 0.0]))
    start = perp * (radius / np.linalg.norm(perp))
    return np.array([rotate_around(start, normal, angle) for angle in RING_ANGLES])


def top_kind(point: SupportPoint) -> str:
    if point.type is PointType.MODEL:
        return TOP_APEX
    if point.type is PointType.COMMON or point.type is PointType.PLATE:
        return TOP_RING
    raise ValueError(f"Unhandled point type {point.type}")


def bottom_kind(point: SupportPoint) -> str:
    if point.type is PointType.MODEL:
        return BOTTOM_MODEL
    if point.type is PointType.COMMON or point.type is PointType.PLATE:
        return BOTTOM_VERTICAL
    raise ValueError(f"Unhandled point type {point.type}")


def strut_geometry(
    top: SupportPoint,
    bottom: SupportPoint,
    policy: Optional[StrutPolicy] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Vertices and faces of one strut.

    Parameters
    ----------
    top, bottom : SupportPoint
        Segment endpoints; their types select the cross-sections
    policy : StrutPolicy, optional
        Radius parameters

    Returns
    -------
    vertices : np.ndarray
        (4, 3) for an apex strut, (6, 3) otherwise
    faces : np.ndarray
        (F, 3) indices into ``vertices``, outward wound
    """
    if policy is None:
        policy = StrutPolicy()

    top_position = top.position
    bottom_position = bottom.position
    radius = strut_radius(top_position, bottom_position, policy)
    ring = horizontal_ring(radius)

    top_section = top_kind(top)
    bottom_section = bottom_kind(bottom)

    bottom_ring = ring
    if bottom_section == BOTTOM_MODEL:
        tilted = surface_ring(bottom.normal_vector, radius)
        if tilted is None:
            logger.debug("Model point %s has no normal, using horizontal base", bottom.location)
            bottom_section = BOTTOM_VERTICAL
        else:
            bottom_ring = tilted

    vertices = [bottom_position + offset for offset in bottom_ring]
    if top_section == TOP_APEX:
        vertices.append(top_position)
    else:
        vertices.extend(top_position + offset for offset in ring)

    faces = np.array(FACE_LAYOUTS[(top_section, bottom_section)], dtype=np.int64)
    return np.array(vertices, dtype=float), faces


SegmentSource = Union[SupportTree, Iterable[TreeSegment]]


def synthesize_support_mesh(
    segments: SegmentSource,
    policy: Optional[StrutPolicy] = None,
    progress: Optional[ProgressListener] = None,
) -> Tuple[trimesh.Trimesh, OperationReport]:
    """
    Build the strut mesh of a support tree.

    Parameters
    ----------
    segments : SupportTree or iterable of TreeSegment
        Segments to turn into struts; degenerate ones are skipped
    policy : StrutPolicy, optional
        Radius parameters
    progress : ProgressListener, optional
        Receives start / percent / end notifications

    Returns
    -------
    mesh : trimesh.Trimesh
        Support mesh, independent of the model mesh
    report : OperationReport
        Report with synthesis statistics
    """
    if policy is None:
        policy = StrutPolicy()
    ensure_valid(policy)

    segment_list: List[TreeSegment] = list(segments)
    all_vertices: List[np.ndarray] = []
    all_faces: List[np.ndarray] = []
    vertex_offset = 0
    skipped = 0

    with ProgressTracker(progress, "Generating tree...", len(segment_list)) as tracker:
        for index, segment in enumerate(segment_list):
            tracker.update(index)
            if segment.is_degenerate:
                skipped += 1
                continue
            vertices, faces = strut_geometry(segment.source, segment.target, policy)
            all_vertices.append(vertices)
            all_faces.append(faces + vertex_offset)
            vertex_offset += len(vertices)
        tracker.update(len(segment_list))

    if all_vertices:
        mesh = trimesh.Trimesh(
            vertices=np.vstack(all_vertices),
            faces=np.vstack(all_faces),
            process=False,
        )
    else:
        mesh = trimesh.Trimesh()

    logger.info(
        "Synthesized %d struts (%d vertices, %d faces), skipped %d degenerate segments",
        len(all_vertices), len(mesh.vertices), len(mesh.faces), skipped,
    )

    report = OperationReport(
        operation="synthesize_support_mesh",
        success=True,
        requested_policy=policy.to_dict(),
        effective_policy=policy.to_dict(),
        warnings=[f"Skipped {skipped} degenerate segments"] if skipped else [],
        metadata={
            "strut_count": len(all_vertices),
            "skipped_segments": skipped,
            "vertex_count": len(mesh.vertices),
            "face_count": len(mesh.faces),
        },
    )
    return mesh, report


__all__ = [
    "FACE_LAYOUTS",
    "strut_radius",
    "horizontal_ring",
    "surface_ring",
    "top_kind",
    "bottom_kind",
    "strut_geometry",
    "synthesize_support_mesh",
]

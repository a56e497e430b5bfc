"""
Overhang detection.

Flags the faces, edges and vertices of a triangle mesh that cannot be
printed without support when building along +Z:

- a face is flagged when it leans downward past the angle limit
- a vertex is flagged when it is a local height minimum facing down
- when a local minimum vertex ties with exactly one neighbor, the edge
  between them is flagged instead of the vertex; with more than one tie
  neither is flagged
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING
import logging
import math
import numpy as np

from ..policies import SupportPolicy, OperationReport, ensure_valid
from ..utils.geometry import unit_vector

if TYPE_CHECKING:
    import trimesh

logger = logging.getLogger(__name__)

Edge = Tuple[int, int]


@dataclass
class OverhangFeatures:
    """Disjoint sets of flagged mesh features, as indices into the mesh."""

    faces: List[int] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)
    vertices: List[int] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.faces or self.edges or self.vertices)

    def counts(self) -> Dict[str, int]:
        return {
            "faces": len(self.faces),
            "edges": len(self.edges),
            "vertices": len(self.vertices),
        }


def check_triangle_mesh(mesh: "trimesh.Trimesh") -> None:
    """Raise ValueError if ``mesh`` is not an (F, 3) triangle mesh."""
    faces = np.asarray(mesh.faces)
    if len(faces) and (faces.ndim != 2 or faces.shape[1] != 3):
        raise ValueError(f"Expected triangle faces of shape (F, 3), got {faces.shape}")


def edge_key(a: int, b: int) -> Edge:
    """Undirected edge key with the smaller vertex index first."""
    a, b = int(a), int(b)
    return (a, b) if a < b else (b, a)


def build_edge_face_map(mesh: "trimesh.Trimesh") -> Dict[Edge, List[int]]:
    """Map each undirected edge to the faces that contain it."""
    edge_faces: Dict[Edge, List[int]] = {}
    for face_id, face in enumerate(np.asarray(mesh.faces)):
        for i in range(3):
            key = edge_key(face[i], face[(i + 1) % 3])
            edge_faces.setdefault(key, []).append(face_id)
    return edge_faces


def edge_normal(
    mesh: "trimesh.Trimesh",
    edge: Edge,
    edge_faces: Optional[Dict[Edge, List[int]]] = None,
) -> np.ndarray:
    """
    Averaged normal of the faces adjacent to ``edge``.

    Returns the zero vector for an edge without adjacent faces or whose
    face normals cancel out.
    """
    if edge_faces is None:
        edge_faces = build_edge_face_map(mesh)
    face_ids = edge_faces.get(edge_key(*edge), [])
    if not face_ids:
        return np.zeros(3)
    return unit_vector(np.asarray(mesh.face_normals)[face_ids].sum(axis=0))


def find_overhang_faces(face_normals: np.ndarray, angle_limit: float) -> List[int]:
    """
    Faces whose angle to +Z, minus 90 degrees, is at least ``angle_limit``.

    Parameters
    ----------
    face_normals : np.ndarray
        (F, 3) face normals
    angle_limit : float
        Overhang limit in radians
    """
    face_normals = np.asarray(face_normals, dtype=float).reshape(-1, 3)
    if len(face_normals) == 0:
        return []
    lengths = np.linalg.norm(face_normals, axis=1)
    # Degenerate faces have a zero normal and are never flagged.
    valid = lengths > 1e-12
    cos_up = np.zeros(len(face_normals))
    cos_up[valid] = face_normals[valid, 2] / lengths[valid]
    angles = np.arccos(np.clip(cos_up, -1.0, 1.0))
    flagged = valid & (angles - math.pi / 2 >= angle_limit - 1e-12)
    return [int(i) for i in np.nonzero(flagged)[0]]


def find_overhang_points(
    vertices: np.ndarray,
    vertex_normals: np.ndarray,
    neighbors: List[List[int]],
) -> Tuple[List[int], List[Edge]]:
    """
    Local height minima that face downward.

    Returns
    -------
    vertices : List[int]
        Minima with no neighbor at the same height
    edges : List[Edge]
        Edges joining a minimum to its single same-height neighbor
    """
    flagged_vertices: List[int] = []
    flagged_edges: List[Edge] = []
    seen_edges = set()

    for v, vertex_neighbors in enumerate(neighbors):
        lowest_z = vertices[v][2]
        lowest_is_self = True
        ties: List[int] = []
        for vn in vertex_neighbors:
            vn_z = vertices[vn][2]
            if vn_z < lowest_z:
                lowest_z = vn_z
                lowest_is_self = False
                ties = []
            elif vn_z == lowest_z:
                ties.append(int(vn))

        if not lowest_is_self or vertex_normals[v][2] >= 0:
            continue

        if not ties:
            flagged_vertices.append(int(v))
        elif len(ties) == 1:
            key = edge_key(v, ties[0])
            if key not in seen_edges:
                seen_edges.add(key)
                flagged_edges.append(key)
        # More than one tie: neither the vertex nor an edge is flagged.

    return flagged_vertices, flagged_edges


def detect_overhangs(
    mesh: "trimesh.Trimesh",
    policy: Optional[SupportPolicy] = None,
) -> Tuple[OverhangFeatures, OperationReport]:
    """
    Flag the features of ``mesh`` that need support.

    Parameters
    ----------
    mesh : trimesh.Trimesh
        Model with face and vertex normals; read only
    policy : SupportPolicy, optional
        Supplies the overhang angle limit

    Returns
    -------
    features : OverhangFeatures
        Flagged faces, edges and vertices
    report : OperationReport
        Report with feature counts
    """
    if policy is None:
        policy = SupportPolicy()
    ensure_valid(policy)
    check_triangle_mesh(mesh)

    features = OverhangFeatures()
    if len(mesh.faces) == 0 or len(mesh.vertices) == 0:
        logger.info("Empty mesh, no overhangs to detect")
    else:
        features.faces = find_overhang_faces(mesh.face_normals, policy.angle_limit)
        features.vertices, features.edges = find_overhang_points(
            np.asarray(mesh.vertices, dtype=float),
            np.asarray(mesh.vertex_normals, dtype=float),
            mesh.vertex_neighbors,
        )
        logger.info(
            "Detected %d overhang faces, %d edges, %d vertices (limit %.1f deg)",
            len(features.faces), len(features.edges), len(features.vertices),
            policy.angle_limit_deg,
        )

    report = OperationReport(
        operation="detect_overhangs",
        success=True,
        requested_policy=policy.to_dict(),
        effective_policy=policy.to_dict(),
        metadata=features.counts(),
    )
    return features, report


__all__ = [
    "OverhangFeatures",
    "check_triangle_mesh",
    "edge_key",
    "build_edge_face_map",
    "edge_normal",
    "find_overhang_faces",
    "find_overhang_points",
    "detect_overhangs",
]

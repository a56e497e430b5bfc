"""
One-call support generation.

Runs detection -> sampling -> tree building -> strut synthesis on a model
and collects every stage's output and report.

Example:
    >>> import trimesh
    >>> from support_tree.api import generate_supports
    >>> from support_tree.policies import SupportPolicy, StrutPolicy
    >>>
    >>> model = trimesh.load("part.stl", force="mesh")
    >>> result = generate_supports(model, SupportPolicy(angle_limit_deg=50))
    >>> result.support_mesh.export("part_supports.stl")
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging
import trimesh

from .core.types import SupportPoint
from .core.tree import SupportTree
from .core.progress import ProgressListener
from .policies import SupportPolicy, StrutPolicy, OperationReport, ensure_valid
from .ops.overhang import OverhangFeatures, detect_overhangs
from .ops.sampling import sample_support_points
from .ops.tree_builder import build_support_tree
from .ops.struts import synthesize_support_mesh
from .ops.export import merge_with_model

logger = logging.getLogger(__name__)


@dataclass
class SupportResult:
    """Everything produced by generate_supports."""

    features: OverhangFeatures
    points: List[SupportPoint]
    tree: SupportTree
    support_mesh: trimesh.Trimesh
    reports: List[OperationReport] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(report.success for report in self.reports)

    def merged(self, model: trimesh.Trimesh) -> trimesh.Trimesh:
        """Model and support mesh in one mesh, ready for export."""
        return merge_with_model(model, self.support_mesh)

    def summary(self) -> Dict[str, Any]:
        return {
            "features": self.features.counts(),
            "point_count": len(self.points),
            "tree": self.tree.summary(),
            "support_vertices": len(self.support_mesh.vertices),
            "support_faces": len(self.support_mesh.faces),
            "success": self.success,
        }


def generate_supports(
    mesh: trimesh.Trimesh,
    support_policy: Optional[SupportPolicy] = None,
    strut_policy: Optional[StrutPolicy] = None,
    progress: Optional[ProgressListener] = None,
) -> SupportResult:
    """
    Generate the support tree and strut mesh for ``mesh``.

    Parameters
    ----------
    mesh : trimesh.Trimesh
        Model to support; never modified
    support_policy : SupportPolicy, optional
        Detection, sampling and routing parameters
    strut_policy : StrutPolicy, optional
        Strut radius parameters
    progress : ProgressListener, optional
        Receives notifications around sampling, tree building and synthesis

    Returns
    -------
    SupportResult
        Features, sampled points, tree, support mesh and stage reports

    Raises
    ------
    ValueError
        If a policy is invalid or the mesh is not a triangle mesh
    """
    support_policy = support_policy or SupportPolicy()
    strut_policy = strut_policy or StrutPolicy()
    ensure_valid(support_policy)
    ensure_valid(strut_policy)

    features, detect_report = detect_overhangs(mesh, support_policy)
    points, sample_report = sample_support_points(mesh, features, support_policy, progress)
    tree, tree_report = build_support_tree(points, mesh, support_policy, progress)

    try:
        support_mesh, mesh_report = synthesize_support_mesh(tree, strut_policy, progress)
    except Exception as e:
        logger.error(f"Support mesh synthesis failed: {e}")
        support_mesh = trimesh.Trimesh()
        mesh_report = OperationReport(
            operation="synthesize_support_mesh",
            success=False,
            requested_policy=strut_policy.to_dict(),
            effective_policy=strut_policy.to_dict(),
            errors=[str(e)],
        )

    return SupportResult(
        features=features,
        points=points,
        tree=tree,
        support_mesh=support_mesh,
        reports=[detect_report, sample_report, tree_report, mesh_report],
    )


__all__ = ["SupportResult", "generate_supports"]

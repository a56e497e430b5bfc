"""
Pipeline operations: overhang detection, support point sampling,
closest-point queries, tree building, strut synthesis and export.
"""

from .overhang import OverhangFeatures, detect_overhangs
from .sampling import sample_edge_points, sample_face_points, sample_support_points
from .queries import (
    project_to_triangle,
    nearest_pending_target,
    nearest_model_point,
    support_cones,
)
from .tree_builder import TreeBuilder, common_point, build_support_tree
from .struts import strut_geometry, synthesize_support_mesh
from .export import merge_with_model, export_merged

__all__ = [
    "OverhangFeatures",
    "detect_overhangs",
    "sample_edge_points",
    "sample_face_points",
    "sample_support_points",
    "project_to_triangle",
    "nearest_pending_target",
    "nearest_model_point",
    "support_cones",
    "TreeBuilder",
    "common_point",
    "build_support_tree",
    "strut_geometry",
    "synthesize_support_mesh",
    "merge_with_model",
    "export_merged",
]

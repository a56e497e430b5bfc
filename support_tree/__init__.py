"""
Support Tree - tree-shaped print supports for triangle meshes

This package finds the regions of a model that cannot be printed without
support, samples support points on them, routes the points down to the
build plate or onto the model with a greedy, angle-constrained tree, and
turns the resulting segments into a printable strut mesh.

Main Entry Points:
    - generate_supports(): One-call pipeline from model to support mesh
    - detect_overhangs(): Flag faces, edges and vertices needing support
    - sample_support_points(): Turn flagged features into support points
    - build_support_tree(): Greedy routing of support points
    - synthesize_support_mesh(): Strut geometry for a support tree

Example:
    >>> import trimesh
    >>> from support_tree import generate_supports, SupportPolicy
    >>>
    >>> model = trimesh.load("part.stl", force="mesh")
    >>> result = generate_supports(model, SupportPolicy(angle_limit_deg=60))
    >>> result.merged(model).export("part_supported.stl")
"""

from .api import generate_supports, SupportResult
from .ops import (
    detect_overhangs,
    sample_support_points,
    build_support_tree,
    synthesize_support_mesh,
    project_to_triangle,
    nearest_pending_target,
    nearest_model_point,
    common_point,
    merge_with_model,
    export_merged,
)
from .core import PointType, SupportPoint, TreeSegment, SupportTree, PendingQueue
from .policies import SupportPolicy, StrutPolicy, OperationReport

__version__ = "0.1.0"

__all__ = [
    # High-level API
    "generate_supports",
    "SupportResult",
    # Operations
    "detect_overhangs",
    "sample_support_points",
    "build_support_tree",
    "synthesize_support_mesh",
    "project_to_triangle",
    "nearest_pending_target",
    "nearest_model_point",
    "common_point",
    "merge_with_model",
    "export_merged",
    # Core types
    "PointType",
    "SupportPoint",
    "TreeSegment",
    "SupportTree",
    "PendingQueue",
    # Policies
    "SupportPolicy",
    "StrutPolicy",
    "OperationReport",
]

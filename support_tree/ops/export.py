"""
Combining the model with its support mesh for export.

The support mesh is appended to the model without vertex merging, so the
two stay separate shells inside one file.
"""

from pathlib import Path
from typing import Union
import logging
import trimesh

logger = logging.getLogger(__name__)


def merge_with_model(model: trimesh.Trimesh, support: trimesh.Trimesh) -> trimesh.Trimesh:
    """
    Concatenate ``model`` and ``support`` into a new mesh.

    Support face indices are offset by the model's vertex count; neither
    input is modified.
    """
    meshes = [m for m in (model, support) if len(m.vertices)]
    if not meshes:
        return trimesh.Trimesh()
    if len(meshes) == 1:
        return meshes[0].copy()
    return trimesh.util.concatenate(meshes)


def export_merged(
    model: trimesh.Trimesh,
    support: trimesh.Trimesh,
    path: Union[str, Path],
) -> trimesh.Trimesh:
    """
    Write the merged model and support mesh to ``path``.

    The file type follows the extension (any format trimesh can export).
    Returns the merged mesh.
    """
    merged = merge_with_model(model, support)
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    merged.export(str(path))
    logger.info(
        "Exported %d vertices / %d faces to %s", len(merged.vertices), len(merged.faces), path
    )
    return merged


__all__ = ["merge_with_model", "export_merged"]

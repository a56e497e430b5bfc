"""
Shared mesh fixtures.

All meshes are built with process=False so vertex order and face winding
stay exactly as written here.
"""

import numpy as np
import pytest
import trimesh


def make_down_triangle(z: float = 5.0) -> trimesh.Trimesh:
    """Single triangle facing straight down at height ``z``."""
    vertices = np.array([
        [0.0, 0.0, z],
        [0.0, 1.0, z],
        [1.0, 0.0, z],
    ])
    return trimesh.Trimesh(vertices=vertices, faces=[[0, 1, 2]], process=False)


def make_inverted_pyramid(offset=(0.0, 0.0, 0.0)) -> trimesh.Trimesh:
    """Square pyramid standing on its apex; the apex is vertex 0."""
    vertices = np.array([
        [0.0, 0.0, 0.0],
        [1.0, 1.0, 2.0],
        [-1.0, 1.0, 2.0],
        [-1.0, -1.0, 2.0],
        [1.0, -1.0, 2.0],
    ]) + np.asarray(offset, dtype=float)
    faces = [
        [1, 2, 3], [1, 3, 4],
        [0, 2, 1], [0, 3, 2], [0, 4, 3], [0, 1, 4],
    ]
    return trimesh.Trimesh(vertices=vertices, faces=faces, process=False)


def make_wedge() -> trimesh.Trimesh:
    """Triangular prism resting on its bottom edge between vertices 0 and 1."""
    vertices = np.array([
        [0.0, 0.0, 0.0],
        [2.0, 0.0, 0.0],
        [0.0, -1.0, 1.0],
        [2.0, -1.0, 1.0],
        [0.0, 1.0, 1.0],
        [2.0, 1.0, 1.0],
    ])
    faces = [
        [0, 1, 3], [0, 3, 2],
        [0, 4, 5], [0, 5, 1],
        [2, 3, 5], [2, 5, 4],
        [0, 2, 4],
        [1, 5, 3],
    ]
    return trimesh.Trimesh(vertices=vertices, faces=faces, process=False)


def make_shelf_scene() -> trimesh.Trimesh:
    """
    A floating 4 x 4 x 1 slab with its underside at z=10, next to an
    inverted pyramid whose apex touches z=0.
    """
    slab = trimesh.creation.box(extents=(4.0, 4.0, 1.0))
    slab.apply_translation((0.0, 0.0, 10.5))
    pyramid = make_inverted_pyramid(offset=(10.0, 0.0, 0.0))
    return trimesh.util.concatenate([slab, pyramid])


@pytest.fixture
def down_triangle():
    return make_down_triangle()


@pytest.fixture
def inverted_pyramid():
    return make_inverted_pyramid()


@pytest.fixture
def wedge():
    return make_wedge()


@pytest.fixture
def shelf_scene():
    return make_shelf_scene()


@pytest.fixture
def empty_mesh():
    return trimesh.Trimesh()

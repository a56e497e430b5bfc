"""
Unit tests for merging and exporting the supported model.
"""

import numpy as np
import trimesh

from support_tree.ops.export import merge_with_model, export_merged


def tetrahedron(offset=(0.0, 0.0, 0.0)):
    vertices = np.array([
        [0.0, 0.0, 0.0],
        [1.0, 0.0, 0.0],
        [0.0, 1.0, 0.0],
        [0.0, 0.0, 1.0],
    ]) + np.asarray(offset)
    faces = [[0, 2, 1], [0, 1, 3], [1, 2, 3], [0, 3, 2]]
    return trimesh.Trimesh(vertices=vertices, faces=faces, process=False)


class TestMergeWithModel:
    """Tests for merge_with_model."""

    def test_support_faces_are_offset(self, down_triangle):
        support = tetrahedron(offset=(5.0, 5.0, 0.0))
        merged = merge_with_model(down_triangle, support)
        assert len(merged.vertices) == 7
        assert len(merged.faces) == 5
        np.testing.assert_array_equal(merged.faces[1:], np.asarray(support.faces) + 3)
        np.testing.assert_allclose(merged.vertices[3:], support.vertices)

    def test_inputs_are_not_modified(self, down_triangle):
        support = tetrahedron()
        merge_with_model(down_triangle, support)
        assert len(down_triangle.vertices) == 3
        assert len(support.vertices) == 4

    def test_empty_support_copies_model(self, down_triangle, empty_mesh):
        merged = merge_with_model(down_triangle, empty_mesh)
        assert merged is not down_triangle
        np.testing.assert_allclose(merged.vertices, down_triangle.vertices)

    def test_both_empty(self, empty_mesh):
        assert len(merge_with_model(empty_mesh, trimesh.Trimesh()).vertices) == 0


class TestExportMerged:

    def test_writes_file(self, tmp_path, down_triangle):
        path = tmp_path / "out" / "supported.stl"
        merged = export_merged(down_triangle, tetrahedron(offset=(5.0, 0.0, 0.0)), path)
        assert path.exists()
        assert len(merged.faces) == 5
        loaded = trimesh.load(str(path), force="mesh")
        assert len(loaded.faces) == 5

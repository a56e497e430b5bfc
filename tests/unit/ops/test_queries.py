"""
Unit tests for triangle projection and the cone-constrained target queries.
"""

import math
import numpy as np
import pytest
import trimesh

from support_tree.core.pending import PendingQueue
from support_tree.core.types import PointType, SupportPoint
from support_tree.ops.queries import (
    triangle_barycentric,
    closest_points_on_triangles,
    project_to_triangle,
    within_convergence_cone,
    within_support_cone,
    nearest_pending_entry,
    nearest_pending_target,
    nearest_model_point,
    support_cones,
)


UNIT_TRIANGLE = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])


class TestProjectToTriangle:
    """Tests for closest-point-on-triangle."""

    def test_point_above_interior(self):
        np.testing.assert_allclose(
            project_to_triangle([0.3, 0.3, 5.0], UNIT_TRIANGLE), [0.3, 0.3, 0.0], atol=1e-12
        )

    def test_small_triangle_is_not_degenerate(self):
        """Interior projection does not depend on the triangle's scale."""
        np.testing.assert_allclose(
            project_to_triangle([0.3e-3, 0.3e-3, 5e-3], UNIT_TRIANGLE * 1e-3),
            [3e-4, 3e-4, 0.0],
            atol=1e-15,
        )

    @pytest.mark.parametrize("point, expected", [
        ([2.0, 2.0, 0.0], [0.5, 0.5, 0.0]),
        ([-1.0, -1.0, 3.0], [0.0, 0.0, 0.0]),
        ([3.0, -1.0, 0.0], [1.0, 0.0, 0.0]),
        ([-1.0, 3.0, 0.0], [0.0, 1.0, 0.0]),
        ([0.5, -2.0, 1.0], [0.5, 0.0, 0.0]),
        ([-2.0, 0.5, 1.0], [0.0, 0.5, 0.0]),
    ])
    def test_points_outside(self, point, expected):
        np.testing.assert_allclose(project_to_triangle(point, UNIT_TRIANGLE), expected, atol=1e-12)

    def test_matches_trimesh_closest_point(self):
        """Random triangles and points agree with trimesh's implementation."""
        rng = np.random.default_rng(7)
        triangles = rng.uniform(-5, 5, size=(200, 3, 3))
        points = rng.uniform(-8, 8, size=(200, 3))
        expected = trimesh.triangles.closest_point(triangles, points)
        for triangle, point, target in zip(triangles, points, expected):
            np.testing.assert_allclose(project_to_triangle(point, triangle), target, atol=1e-8)

    def test_batched_matches_single_projection(self):
        rng = np.random.default_rng(5)
        triangles = rng.uniform(-5, 5, size=(100, 3, 3))
        triangles[0] = [[0, 0, 0], [1, 0, 0], [2, 0, 0]]
        point = rng.uniform(-8, 8, size=3)
        batched = closest_points_on_triangles(point, triangles)
        assert batched.shape == (100, 3)
        for triangle, target in zip(triangles, batched):
            np.testing.assert_allclose(project_to_triangle(point, triangle), target, atol=1e-12)
        np.testing.assert_allclose(
            batched[1:],
            trimesh.triangles.closest_point(triangles[1:], np.tile(point, (99, 1))),
            atol=1e-8,
        )

    def test_barycentric_stays_inside(self):
        rng = np.random.default_rng(11)
        for _ in range(100):
            q1, q2, q3 = rng.uniform(-1, 1, size=(3, 3))
            s, t = triangle_barycentric(rng.uniform(-3, 3, size=3), q1, q2, q3)
            assert s >= 0.0
            assert t >= 0.0
            assert s + t <= 1.0 + 1e-12

    def test_degenerate_triangle_returns_nearest_vertex(self):
        collinear = [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [2.0, 0.0, 0.0]]
        np.testing.assert_allclose(
            project_to_triangle([1.9, 0.5, 0.0], collinear), [2.0, 0.0, 0.0]
        )

    def test_point_triangle(self):
        collapsed = [[1.0, 1.0, 1.0]] * 3
        np.testing.assert_allclose(project_to_triangle([0.0, 0.0, 0.0], collapsed), [1.0, 1.0, 1.0])


class TestCones:
    """Tests for the convergence and support cone predicates."""

    def test_shallow_candidate_is_in_convergence_cone(self):
        origin = SupportPoint((0, 0, 5))
        assert within_convergence_cone(origin, np.array([3.0, 0.0, 4.0]), math.radians(45))
        assert not within_support_cone(origin, np.array([3.0, 0.0, 4.0]), math.radians(45))

    def test_steep_candidate_is_in_support_cone(self):
        origin = SupportPoint((0, 0, 5))
        assert within_support_cone(origin, np.array([0.5, 0.0, 1.0]), math.radians(45))
        assert not within_convergence_cone(origin, np.array([0.5, 0.0, 1.0]), math.radians(45))

    def test_straight_below_is_in_support_cone(self):
        assert within_support_cone(SupportPoint((0, 0, 5)), np.array([0.0, 0.0, 1.0]), math.radians(60))

    def test_coincident_candidate_is_in_neither_cone(self):
        origin = SupportPoint((1, 1, 1))
        assert not within_convergence_cone(origin, origin.position, math.radians(45))
        assert not within_support_cone(origin, origin.position, math.radians(45))


class TestNearestPendingTarget:
    """Tests for the nearest pending point query."""

    def test_picks_nearest_valid_candidate(self):
        point = SupportPoint((0, 0, 5))
        pending = [
            point,
            SupportPoint((3, 0, 5)),
            SupportPoint((1, 0, 4.9)),
            SupportPoint((0.1, 0, 2)),
        ]
        target = nearest_pending_target(point, pending, math.radians(45))
        assert target.location == (1.0, 0.0, 4.9)

    def test_candidate_above_can_be_chosen(self):
        point = SupportPoint((0, 0, 5))
        target = nearest_pending_target(point, [SupportPoint((0.5, 0, 5.2))], math.radians(45))
        assert target.location == (0.5, 0.0, 5.2)

    def test_no_valid_candidate_returns_query_point(self):
        point = SupportPoint((0, 0, 5))
        pending = [point, SupportPoint((0, 0, 1))]
        assert nearest_pending_target(point, pending, math.radians(45)) is point

    def test_entry_ids_come_from_queue(self):
        queue = PendingQueue()
        queue.push(SupportPoint((5, 0, 5)))
        near_id = queue.push(SupportPoint((1, 0, 5)))
        entry = nearest_pending_entry(SupportPoint((0, 0, 5)), queue, math.radians(45))
        assert entry[0] == near_id

    def test_ties_keep_queue_order(self):
        queue = PendingQueue()
        first = queue.push(SupportPoint((1, 0, 5)))
        queue.push(SupportPoint((-1, 0, 5)))
        entry = nearest_pending_entry(SupportPoint((0, 0, 5)), queue, math.radians(45))
        assert entry[0] == first

    def test_empty_pending(self):
        assert nearest_pending_entry(SupportPoint((0, 0, 1)), [], math.radians(45)) is None


class TestNearestModelPoint:
    """Tests for the nearest model surface query."""

    def test_point_above_face(self, down_triangle):
        point = SupportPoint((0.2, 0.2, 8.0))
        target = nearest_model_point(point, down_triangle, math.radians(60))
        assert target.type == PointType.MODEL
        np.testing.assert_allclose(target.location, [0.2, 0.2, 5.0])
        np.testing.assert_allclose(target.normal, [0.0, 0.0, -1.0])

    def test_projection_outside_cone_is_rejected(self, down_triangle):
        point = SupportPoint((5.0, 5.0, 6.0))
        assert nearest_model_point(point, down_triangle, math.radians(60)) is point

    def test_faces_above_point_are_ignored(self, down_triangle):
        point = SupportPoint((0.2, 0.2, 3.0))
        assert nearest_model_point(point, down_triangle, math.radians(60)) is point

    def test_projection_level_with_point_is_rejected(self, down_triangle):
        point = SupportPoint((0.2, 0.2, 5.0))
        assert nearest_model_point(point, down_triangle, math.radians(60)) is point

    def test_nearest_face_wins(self):
        lower = trimesh.Trimesh(
            vertices=[[-5, -5, 1], [5, -5, 1], [-5, 5, 1]], faces=[[0, 1, 2]], process=False
        )
        upper = trimesh.Trimesh(
            vertices=[[-5, -5, 3], [5, -5, 3], [-5, 5, 3]], faces=[[0, 1, 2]], process=False
        )
        mesh = trimesh.util.concatenate([lower, upper])
        target = nearest_model_point(SupportPoint((-1, -1, 6)), mesh, math.radians(60))
        np.testing.assert_allclose(target.location, [-1.0, -1.0, 3.0])

    def test_matches_face_by_face_search(self):
        sphere = trimesh.creation.icosphere(subdivisions=2, radius=1.0)
        angle_limit = math.radians(60)
        for location in [(0.1, 0.05, 3.0), (0.4, -0.3, 1.5), (-0.2, 0.6, 0.2)]:
            point = SupportPoint(location)
            best, best_distance = None, math.inf
            for triangle in sphere.triangles:
                candidate = project_to_triangle(location, triangle)
                if candidate[2] >= point.z or not within_support_cone(point, candidate, angle_limit):
                    continue
                distance = np.linalg.norm(candidate - point.position)
                if distance < best_distance:
                    best, best_distance = candidate, distance

            target = nearest_model_point(point, sphere, angle_limit)
            assert target.type == PointType.MODEL
            np.testing.assert_allclose(target.location, best, atol=1e-9)

    def test_empty_mesh(self, empty_mesh):
        point = SupportPoint((0, 0, 1))
        assert nearest_model_point(point, empty_mesh, math.radians(60)) is point


class TestSupportCones:

    def test_ring_on_plate(self):
        rings = support_cones([SupportPoint((1, 2, 3))], math.radians(45), resolution=8)
        assert rings.shape == (1, 8, 3)
        np.testing.assert_allclose(rings[0, :, 2], 0.0)
        radii = np.linalg.norm(rings[0, :, :2] - [1.0, 2.0], axis=1)
        np.testing.assert_allclose(radii, 3.0)
        np.testing.assert_allclose(rings[0, 0], [4.0, 2.0, 0.0])

    def test_no_points(self):
        assert support_cones([], math.radians(45)).shape == (0, 50, 3)

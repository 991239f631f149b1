"""Unit tests for scene storage, closest-hit and shadow queries.

Tests cover:
- Sphere registry (add, count, clear, validation, capacity)
- Closest hit among several spheres and material id reporting
- Hit distance ceiling
- Shadow (occlusion) queries
"""

import pytest


class TestSphereRegistry:
    """Tests for sphere storage."""

    def test_add_sphere_returns_index(self):
        """Spheres are indexed in insertion order."""
        from whitted.scene.intersection import add_sphere, get_sphere_count

        assert add_sphere((0.0, 0.0, -5.0), 1.0, 0) == 0
        assert add_sphere((2.0, 0.0, -5.0), 1.0, 0) == 1
        assert get_sphere_count() == 2

    def test_clear_scene(self):
        """Test clearing the sphere registry."""
        from whitted.scene.intersection import add_sphere, clear_scene, get_sphere_count

        add_sphere((0.0, 0.0, -5.0), 1.0)
        clear_scene()
        assert get_sphere_count() == 0

    @pytest.mark.parametrize("radius", [0.0, -1.0])
    def test_non_positive_radius_rejected(self, radius):
        """Test that a non-positive radius raises ValueError."""
        from whitted.scene.intersection import add_sphere

        with pytest.raises(ValueError, match="radius"):
            add_sphere((0.0, 0.0, -5.0), radius)

    def test_capacity_exceeded(self):
        """Test that exceeding MAX_SPHERES raises RuntimeError."""
        from whitted.scene.intersection import MAX_SPHERES, add_sphere, num_spheres

        num_spheres[None] = MAX_SPHERES
        with pytest.raises(RuntimeError, match="Maximum number of spheres"):
            add_sphere((0.0, 0.0, -5.0), 1.0)

    def test_set_sphere_material(self):
        """Test reassigning a sphere's material."""
        from whitted.scene.intersection import (
            add_sphere,
            query_intersection,
            set_sphere_material,
        )

        add_sphere((0.0, 0.0, -5.0), 1.0, 0)
        set_sphere_material(0, 3)
        hit = query_intersection((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert hit is not None
        assert hit.material_id == 3

        with pytest.raises(ValueError, match="Invalid sphere index"):
            set_sphere_material(5, 0)


class TestIntersectScene:
    """Tests for closest-hit queries."""

    def test_empty_scene_misses(self):
        """No spheres means every ray escapes."""
        from whitted.scene.intersection import query_intersection

        assert query_intersection((0.0, 0.0, 0.0), (0.0, 0.0, -1.0)) is None

    def test_closest_sphere_wins(self):
        """The nearer of two spheres on the ray is reported."""
        from whitted.scene.intersection import add_sphere, query_intersection

        add_sphere((0.0, 0.0, -20.0), 2.0, 7)
        add_sphere((0.0, 0.0, -10.0), 1.0, 3)

        hit = query_intersection((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert hit is not None
        assert hit.t == pytest.approx(9.0, abs=1e-4)
        assert hit.material_id == 3
        assert hit.normal == pytest.approx((0.0, 0.0, 1.0), abs=1e-5)
        assert hit.point == pytest.approx((0.0, 0.0, -9.0), abs=1e-4)

    def test_insertion_order_does_not_matter(self):
        """The nearest hit is found regardless of registry order."""
        from whitted.scene.intersection import add_sphere, query_intersection

        add_sphere((0.0, 0.0, -10.0), 1.0, 3)
        add_sphere((0.0, 0.0, -20.0), 2.0, 7)

        hit = query_intersection((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert hit.material_id == 3

    def test_direction_is_normalized(self):
        """Non-unit directions give distances in world units."""
        from whitted.scene.intersection import add_sphere, query_intersection

        add_sphere((0.0, 0.0, -10.0), 1.0, 0)
        hit = query_intersection((0.0, 0.0, 0.0), (0.0, 0.0, -5.0))
        assert hit.t == pytest.approx(9.0, abs=1e-4)

    def test_zero_direction_rejected(self):
        """Test that a zero direction raises ValueError."""
        from whitted.scene.intersection import query_intersection

        with pytest.raises(ValueError, match="nonzero"):
            query_intersection((0.0, 0.0, 0.0), (0.0, 0.0, 0.0))

    def test_hits_beyond_ceiling_are_misses(self):
        """Hits at or beyond MAX_HIT_DISTANCE are treated as escapes."""
        from whitted.scene.intersection import (
            MAX_HIT_DISTANCE,
            add_sphere,
            query_intersection,
        )

        add_sphere((0.0, 0.0, -(MAX_HIT_DISTANCE + 50.0)), 10.0, 0)
        assert query_intersection((0.0, 0.0, 0.0), (0.0, 0.0, -1.0)) is None

    def test_hit_just_under_ceiling(self):
        """A hit inside the ceiling is still reported."""
        from whitted.scene.intersection import add_sphere, query_intersection

        add_sphere((0.0, 0.0, -900.0), 10.0, 0)
        hit = query_intersection((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert hit is not None
        assert hit.t == pytest.approx(890.0, abs=1e-2)

    def test_sphere_behind_origin_ignored(self):
        """Spheres behind the ray origin do not occlude spheres in front."""
        from whitted.scene.intersection import add_sphere, query_intersection

        add_sphere((0.0, 0.0, 5.0), 2.0, 1)
        add_sphere((0.0, 0.0, -5.0), 2.0, 2)
        hit = query_intersection((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert hit.material_id == 2


class TestOcclusion:
    """Tests for shadow queries."""

    def test_unblocked_light(self):
        """With nothing in between, the light is visible."""
        from whitted.scene.intersection import add_sphere, query_occlusion

        add_sphere((0.0, 0.0, -10.0), 1.0, 0)
        point = (0.0, 1.0, -10.0)
        assert query_occlusion(point, (0.0, 1.0, 0.0), (0.0, 20.0, -10.0)) is False

    def test_blocking_sphere_occludes(self):
        """A sphere between the point and the light casts a shadow."""
        from whitted.scene.intersection import add_sphere, query_occlusion

        add_sphere((0.0, 0.0, -10.0), 1.0, 0)
        add_sphere((0.0, 5.0, -10.0), 1.0, 0)
        point = (0.0, 1.0, -10.0)
        assert query_occlusion(point, (0.0, 1.0, 0.0), (0.0, 20.0, -10.0)) is True

    def test_sphere_beyond_light_does_not_occlude(self):
        """Hits farther than the light do not count."""
        from whitted.scene.intersection import add_sphere, query_occlusion

        add_sphere((0.0, 0.0, -10.0), 1.0, 0)
        add_sphere((0.0, 30.0, -10.0), 1.0, 0)
        point = (0.0, 1.0, -10.0)
        assert query_occlusion(point, (0.0, 1.0, 0.0), (0.0, 20.0, -10.0)) is False

    def test_light_behind_surface_is_self_occluded(self):
        """A light on the far side of a sphere is blocked by the sphere itself."""
        from whitted.scene.intersection import add_sphere, query_occlusion

        add_sphere((0.0, 0.0, -10.0), 1.0, 0)
        point = (0.0, 1.0, -10.0)
        assert query_occlusion(point, (0.0, 1.0, 0.0), (0.0, -20.0, -10.0)) is True

    def test_no_self_shadowing_on_lit_side(self):
        """The biased shadow origin does not re-hit its own surface."""
        from whitted.scene.intersection import add_sphere, query_occlusion

        add_sphere((0.0, 0.0, -10.0), 1.0, 0)
        point = (0.0, 0.0, -9.0)
        assert query_occlusion(point, (0.0, 0.0, 1.0), (5.0, 5.0, 10.0)) is False

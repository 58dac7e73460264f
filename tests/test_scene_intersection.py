"""Unit tests for scene-level intersection.

Tests cover:
- SceneHitRecord with material_id
- Single primitive intersection (sphere and triangle)
- Multiple primitives with closest hit selection
- Mixed primitive types, independent of insertion order
- Host-side query_hit and interval validation
- Scene clearing, primitive counts and capacity
"""

import pytest
import taichi as ti


def _closest(origin, direction, t_min=0.001, t_max=1e10):
    """Run intersect_scene in a kernel and return (hit, t, material_id)."""
    from src.pathtracer.core.ray import Interval, Ray, vec3
    from src.pathtracer.scene.intersection import intersect_scene

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    material_id = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(o: vec3, d: vec3, lo: ti.f32, hi: ti.f32):
        rec = intersect_scene(Ray(origin=o, direction=d), Interval(t_min=lo, t_max=hi))
        hit[None] = rec.hit
        t_val[None] = rec.t
        material_id[None] = rec.material_id

    test_kernel(vec3(*origin), vec3(*direction), t_min, t_max)
    return hit[None], t_val[None], material_id[None]


class TestSceneHitRecordBasics:
    """Tests for SceneHitRecord dataclass."""

    def test_scene_hit_record_has_material_id(self):
        from src.pathtracer.scene.intersection import SceneHitRecord, vec3

        result_material_id = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            rec = SceneHitRecord(
                hit=1,
                t=5.0,
                point=vec3(0.0, 0.0, 0.0),
                normal=vec3(0.0, 0.0, 1.0),
                front_face=1,
                material_id=42,
            )
            result_material_id[None] = rec.material_id

        test_kernel()
        assert result_material_id[None] == 42

    def test_empty_scene_misses_with_negative_material_id(self):
        hit, _, material_id = _closest((0, 0, 0), (0, 0, -1))

        assert hit == 0
        assert material_id == -1


class TestScenePrimitiveStorage:
    """Tests for adding and clearing primitives."""

    def test_add_sphere(self):
        from src.pathtracer.scene.intersection import add_sphere, get_sphere_count

        assert add_sphere((0, 0, -1), 0.5, material_id=3) == 0
        assert add_sphere((0, 0, -3), 0.5) == 1
        assert get_sphere_count() == 2

    def test_add_triangle(self):
        from src.pathtracer.scene.intersection import add_triangle, get_triangle_count

        assert add_triangle((0, 0, 0), (1, 0, 0), (0, 1, 0), material_id=1) == 0
        assert get_triangle_count() == 1

    def test_add_degenerate_triangle_raises(self):
        from src.pathtracer.scene.intersection import add_triangle, get_triangle_count

        with pytest.raises(ValueError):
            add_triangle((0, 0, 0), (1, 1, 1), (2, 2, 2))
        assert get_triangle_count() == 0

    def test_clear_scene(self):
        from src.pathtracer.scene.intersection import (
            add_sphere,
            add_triangle,
            clear_scene,
            get_sphere_count,
            get_triangle_count,
        )

        add_sphere((0, 0, -1), 0.5)
        add_triangle((0, 0, 0), (1, 0, 0), (0, 1, 0))
        clear_scene()

        assert get_sphere_count() == 0
        assert get_triangle_count() == 0

    def test_sphere_capacity(self):
        from src.pathtracer.scene.intersection import MAX_SPHERES, add_sphere

        for i in range(MAX_SPHERES):
            add_sphere((float(i), 0.0, 0.0), 0.1)
        with pytest.raises(RuntimeError, match="Maximum number of spheres"):
            add_sphere((0.0, 0.0, 0.0), 0.1)


class TestSinglePrimitiveIntersection:
    """Tests for scenes holding one primitive."""

    def test_hit_single_sphere(self):
        from src.pathtracer.scene.intersection import add_sphere

        add_sphere((0, 0, -5), 1.0, material_id=7)
        hit, t, material_id = _closest((0, 0, 0), (0, 0, -1))

        assert hit == 1
        assert abs(t - 4.0) < 1e-5
        assert material_id == 7

    def test_miss_single_sphere(self):
        from src.pathtracer.scene.intersection import add_sphere

        add_sphere((0, 0, -5), 1.0)
        hit, _, _ = _closest((0, 0, 0), (0, 1, 0))
        assert hit == 0

    def test_hit_single_triangle(self):
        from src.pathtracer.scene.intersection import add_triangle

        add_triangle((-1, -1, -3), (1, -1, -3), (0, 1, -3), material_id=2)
        hit, t, material_id = _closest((0, 0, 0), (0, 0, -1))

        assert hit == 1
        assert abs(t - 3.0) < 1e-5
        assert material_id == 2

    def test_miss_single_triangle(self):
        from src.pathtracer.scene.intersection import add_triangle

        add_triangle((-1, -1, -3), (1, -1, -3), (0, 1, -3))
        hit, _, _ = _closest((0, 0, 0), (0.9, 0.9, -3.0))
        assert hit == 0


class TestClosestHit:
    """Tests for closest hit selection across primitives."""

    @pytest.mark.parametrize("near_first", [True, False])
    def test_closest_of_two_spheres(self, near_first):
        """Test the nearer sphere wins regardless of insertion order."""
        from src.pathtracer.scene.intersection import add_sphere

        spheres = [((0, 0, -3), 0.5, 1), ((0, 0, -8), 0.5, 2)]
        if not near_first:
            spheres.reverse()
        for center, radius, mat in spheres:
            add_sphere(center, radius, material_id=mat)

        hit, t, material_id = _closest((0, 0, 0), (0, 0, -1))
        assert hit == 1
        assert abs(t - 2.5) < 1e-5
        assert material_id == 1

    def test_sphere_closer_than_triangle(self):
        from src.pathtracer.scene.intersection import add_sphere, add_triangle

        add_triangle((-2, -2, -6), (2, -2, -6), (0, 2, -6), material_id=5)
        add_sphere((0, 0, -3), 0.5, material_id=6)

        hit, t, material_id = _closest((0, 0, 0), (0, 0, -1))
        assert hit == 1
        assert abs(t - 2.5) < 1e-5
        assert material_id == 6

    def test_triangle_closer_than_sphere(self):
        from src.pathtracer.scene.intersection import add_sphere, add_triangle

        add_sphere((0, 0, -8), 0.5, material_id=6)
        add_triangle((-2, -2, -2), (2, -2, -2), (0, 2, -2), material_id=5)

        hit, t, material_id = _closest((0, 0, 0), (0, 0, -1))
        assert hit == 1
        assert abs(t - 2.0) < 1e-5
        assert material_id == 5

    def test_t_max_excludes_far_primitives(self):
        from src.pathtracer.scene.intersection import add_sphere

        add_sphere((0, 0, -5), 1.0)
        hit, _, _ = _closest((0, 0, 0), (0, 0, -1), t_max=3.0)
        assert hit == 0

    def test_t_min_skips_near_surface(self):
        """Test hits closer than t_min are ignored (self-intersection guard)."""
        from src.pathtracer.scene.intersection import add_sphere

        add_sphere((0, 0, -5), 1.0)
        hit, t, _ = _closest((0, 0, -4), (0, 0, -1))

        # Starting on the front surface, the next hit is the back surface
        assert hit == 1
        assert abs(t - 2.0) < 1e-4


class TestQueryHit:
    """Tests for the host-side closest-hit query."""

    def test_query_hit_returns_scene_hit(self):
        from src.pathtracer.scene.intersection import add_sphere, query_hit

        add_sphere((0, 0, -5), 1.0, material_id=4)
        hit = query_hit((0, 0, 0), (0, 0, -1))

        assert hit is not None
        assert hit.t == pytest.approx(4.0, abs=1e-5)
        assert hit.point == pytest.approx((0.0, 0.0, -4.0), abs=1e-5)
        assert hit.normal == pytest.approx((0.0, 0.0, 1.0), abs=1e-5)
        assert hit.front_face is True
        assert hit.material_id == 4

    def test_query_miss_returns_none(self):
        from src.pathtracer.scene.intersection import query_hit

        assert query_hit((0, 0, 0), (0, 0, -1)) is None

    def test_query_invalid_interval_raises(self):
        from src.pathtracer.scene.intersection import query_hit

        with pytest.raises(ValueError, match="Invalid interval"):
            query_hit((0, 0, 0), (0, 0, -1), t_min=5.0, t_max=1.0)

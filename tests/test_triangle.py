"""Unit tests for triangle intersection.

Tests cover:
- Host-side plane precomputation and degenerate triangle rejection
- Area-sum containment helper
- Ray hitting the centroid, edges and missing outside the triangle
- Parallel rays, interval bounds, and front/back face handling
- Very large triangles (ground planes)
"""

import numpy as np
import pytest
import taichi as ti

P0 = (0.0, 0.0, 0.0)
P1 = (1.0, 0.0, 0.0)
P2 = (0.0, 1.0, 0.0)


def _hit(p0, p1, p2, origin, direction, t_min=0.001, t_max=1000.0):
    """Run hit_triangle in a kernel and return the record as a dict."""
    from src.pathtracer.core.ray import Interval, Ray, vec3
    from src.pathtracer.geometry.triangle import Triangle, hit_triangle, make_triangle_data

    data = make_triangle_data(p0, p1, p2)

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    normal = ti.field(dtype=ti.math.vec3, shape=())
    front_face = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(
        o: vec3,
        d: vec3,
        tp0: vec3,
        e1: vec3,
        e2: vec3,
        n: vec3,
        offset: ti.f32,
        w: vec3,
        lo: ti.f32,
        hi: ti.f32,
    ):
        tri = Triangle(p0=tp0, e1=e1, e2=e2, normal=n, d=offset, w=w)
        record = hit_triangle(Ray(origin=o, direction=d), tri, Interval(t_min=lo, t_max=hi))
        hit[None] = record.hit
        t_val[None] = record.t
        normal[None] = record.normal
        front_face[None] = record.front_face

    test_kernel(
        vec3(*origin),
        vec3(*direction),
        vec3(*data["p0"]),
        vec3(*data["e1"]),
        vec3(*data["e2"]),
        vec3(*data["normal"]),
        data["d"],
        vec3(*data["w"]),
        t_min,
        t_max,
    )
    n = normal[None]
    return {
        "hit": hit[None],
        "t": t_val[None],
        "normal": (n[0], n[1], n[2]),
        "front_face": front_face[None],
    }


class TestTriangleData:
    """Tests for host-side triangle precomputation."""

    def test_plane_data(self):
        """Test normal, offset, area and barycentric helper."""
        from src.pathtracer.geometry.triangle import make_triangle_data

        data = make_triangle_data((0, 0, 1), (2, 0, 1), (0, 2, 1))

        assert np.allclose(data["normal"], (0.0, 0.0, 4.0))
        assert data["d"] == pytest.approx(4.0)
        assert data["area"] == pytest.approx(2.0)
        assert np.allclose(data["w"], (0.0, 0.0, 0.25))

    def test_normal_matches_alternate_cross_product(self):
        """Test (p1 - p0) x (p2 - p0) equals (p0 - p1) x (p1 - p2)."""
        from src.pathtracer.geometry.triangle import make_triangle_data

        p0, p1, p2 = (1.0, 2.0, 3.0), (4.0, -1.0, 0.5), (-2.0, 0.0, 2.0)
        data = make_triangle_data(p0, p1, p2)
        alt = np.cross(np.subtract(p0, p1), np.subtract(p1, p2))

        assert np.allclose(data["normal"], alt)

    @pytest.mark.parametrize(
        "corners",
        [
            ((0, 0, 0), (1, 1, 1), (2, 2, 2)),
            ((1, 1, 1), (1, 1, 1), (0, 0, 0)),
        ],
    )
    def test_degenerate_triangle_raises(self, corners):
        """Test collinear or coincident corners are rejected."""
        from src.pathtracer.geometry.triangle import make_triangle_data

        with pytest.raises(ValueError, match="Degenerate"):
            make_triangle_data(*corners)

    def test_triangle_area(self):
        """Test the area helper."""
        from src.pathtracer.geometry.triangle import triangle_area

        assert triangle_area(P0, P1, P2) == pytest.approx(0.5)
        assert triangle_area(P0, P1, (2.0, 0.0, 0.0)) == pytest.approx(0.0)


class TestContainsPoint:
    """Tests for the area-sum containment helper."""

    def test_centroid_inside(self):
        from src.pathtracer.geometry.triangle import triangle_contains_point

        assert triangle_contains_point(P0, P1, P2, (1 / 3, 1 / 3, 0.0))

    def test_vertex_and_edge_inside(self):
        from src.pathtracer.geometry.triangle import triangle_contains_point

        assert triangle_contains_point(P0, P1, P2, P1)
        assert triangle_contains_point(P0, P1, P2, (0.5, 0.5, 0.0))

    def test_outside(self):
        from src.pathtracer.geometry.triangle import triangle_contains_point

        assert not triangle_contains_point(P0, P1, P2, (1.0, 1.0, 0.0))
        assert not triangle_contains_point(P0, P1, P2, (-0.1, 0.5, 0.0))


class TestTriangleIntersection:
    """Tests for ray-triangle intersection."""

    def test_hit_centroid(self):
        """Test a ray aimed at the centroid hits at the plane distance."""
        rec = _hit(P0, P1, P2, (1 / 3, 1 / 3, 5.0), (0, 0, -1))

        assert rec["hit"] == 1
        assert abs(rec["t"] - 5.0) < 1e-5
        # Ray travels against the winding normal (0, 0, 1): front face
        assert rec["front_face"] == 1
        assert rec["normal"] == pytest.approx((0.0, 0.0, 1.0), abs=1e-6)

    def test_miss_outside(self):
        """Test a ray through a point in the plane but outside the triangle."""
        rec = _hit(P0, P1, P2, (1.0, 1.0, 5.0), (0, 0, -1))
        assert rec["hit"] == 0

    def test_hit_edge(self):
        """Test a ray through the hypotenuse counts as a hit."""
        rec = _hit(P0, P1, P2, (0.5, 0.5, 5.0), (0, 0, -1))
        assert rec["hit"] == 1

    def test_back_face(self):
        """Test a ray travelling along the normal sees the back face."""
        rec = _hit(P0, P1, P2, (0.25, 0.25, -5.0), (0, 0, 1))

        assert rec["hit"] == 1
        assert rec["front_face"] == 0
        # Normal always faces against the ray
        assert rec["normal"] == pytest.approx((0.0, 0.0, -1.0), abs=1e-6)

    def test_parallel_ray_misses(self):
        """Test a ray parallel to the plane never hits."""
        rec = _hit(P0, P1, P2, (0.25, 0.25, 0.0), (1, 0, 0))
        assert rec["hit"] == 0

    def test_behind_origin_misses(self):
        """Test a triangle behind the ray is not hit."""
        rec = _hit(P0, P1, P2, (0.25, 0.25, 5.0), (0, 0, 1))
        assert rec["hit"] == 0

    def test_interval_upper_bound(self):
        """Test a hit beyond t_max is rejected."""
        rec = _hit(P0, P1, P2, (0.25, 0.25, 5.0), (0, 0, -1), t_max=4.0)
        assert rec["hit"] == 0

    def test_huge_ground_triangle(self):
        """Test a ground-plane sized triangle is hit near the origin."""
        e = 10000.0
        rec = _hit(
            (-e, -0.2, -e),
            (-e, -0.2, e),
            (e, -0.2, -e),
            (0.0, 2.0, 0.0),
            (-0.1, -1.0, -0.1),
        )

        assert rec["hit"] == 1
        assert abs(rec["t"] - 2.2) < 1e-3
        assert abs(rec["normal"][1]) == pytest.approx(1.0, abs=1e-5)

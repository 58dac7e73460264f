"""Triangle primitive with ray-triangle intersection.

A triangle is treated as a planar patch bounded by its three corners. The
plane is described by the unnormalized normal

    n = (p1 - p0) x (p2 - p0)

whose direction follows the corner winding order, and by the plane offset
d = dot(n, p0). Both are derived once, on the host, when the triangle is
added to a scene (see make_triangle_data) and never change afterwards.

Ray-triangle intersection:
1. Reject rays parallel to the plane (relative epsilon test).
2. Solve t = (d - dot(n, origin)) / dot(n, direction) and check the interval.
3. Express the plane hit point in barycentric coordinates (alpha, beta) with
   respect to the edges e1 = p1 - p0 and e2 = p2 - p0 and accept it when
   alpha >= 0, beta >= 0 and alpha + beta <= 1.

Barycentric containment is used instead of comparing the sum of the three
sub-triangle areas against the full area; the two are equivalent, but the
area sum loses all precision on large triangles in single precision. The
area-sum form is still available on the host as triangle_contains_point.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.geometry.triangle import make_triangle_data
    >>> data = make_triangle_data((0, 0, 0), (1, 0, 0), (0, 1, 0))
    >>> data["normal"]
    array([0., 0., 1.])
"""

from typing import Any

import numpy as np
import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import Interval, Ray, interval_surrounds, ray_at
from src.pathtracer.geometry.sphere import HitRecord, make_miss_record

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Rays with |cos(angle to plane normal)| below this are treated as parallel
PARALLEL_EPSILON = 1e-8

# Slack on the barycentric bounds so that rays through a shared edge do not
# slip between two adjacent triangles
BARYCENTRIC_EPSILON = 1e-6


@ti.dataclass
class Triangle:
    """A triangle with its precomputed plane data.

    Attributes:
        p0: First corner.
        e1: Edge vector p1 - p0.
        e2: Edge vector p2 - p0.
        normal: Unnormalized plane normal e1 x e2 (winding order dependent).
        d: Plane offset dot(normal, p0).
        w: Barycentric helper normal / dot(normal, normal).
    """

    p0: vec3
    e1: vec3
    e2: vec3
    normal: vec3
    d: ti.f32
    w: vec3


def make_triangle_data(
    p0: tuple[float, float, float],
    p1: tuple[float, float, float],
    p2: tuple[float, float, float],
) -> dict[str, Any]:
    """Precompute the plane data of a triangle on the host.

    Args:
        p0: First corner (x, y, z).
        p1: Second corner (x, y, z).
        p2: Third corner (x, y, z).

    Returns:
        Dictionary with p0, e1, e2, normal (unnormalized), d, w and area.

    Raises:
        ValueError: If the corners are collinear (zero-area triangle).
    """
    a = np.asarray(p0, dtype=np.float64)
    b = np.asarray(p1, dtype=np.float64)
    c = np.asarray(p2, dtype=np.float64)

    e1 = b - a
    e2 = c - a
    normal = np.cross(e1, e2)
    n_dot_n = float(np.dot(normal, normal))

    # Relative to the edge lengths so that tiny and huge triangles behave alike
    scale = float(np.dot(e1, e1) * np.dot(e2, e2))
    if n_dot_n <= 1e-12 * scale:
        raise ValueError(f"Degenerate triangle with corners {p0}, {p1}, {p2}")

    return {
        "p0": a,
        "e1": e1,
        "e2": e2,
        "normal": normal,
        "d": float(np.dot(normal, a)),
        "w": normal / n_dot_n,
        "area": 0.5 * float(np.sqrt(n_dot_n)),
    }


def triangle_area(
    p0: tuple[float, float, float],
    p1: tuple[float, float, float],
    p2: tuple[float, float, float],
) -> float:
    """Compute the area of a triangle from its corners (may be zero)."""
    a = np.asarray(p0, dtype=np.float64)
    b = np.asarray(p1, dtype=np.float64)
    c = np.asarray(p2, dtype=np.float64)
    return 0.5 * float(np.linalg.norm(np.cross(b - a, c - a)))


def triangle_contains_point(
    p0: tuple[float, float, float],
    p1: tuple[float, float, float],
    p2: tuple[float, float, float],
    point: tuple[float, float, float],
    rel_tol: float = 1e-6,
) -> bool:
    """Area-sum containment test for a point in the triangle's plane.

    The point is inside when the three sub-triangles it forms with each pair
    of corners add up to the area of the whole triangle. The tolerance is
    relative to the triangle's area.

    Args:
        p0: First corner.
        p1: Second corner.
        p2: Third corner.
        point: Point assumed to lie in the triangle's plane.
        rel_tol: Relative tolerance on the area sum.

    Returns:
        True if the point lies inside or on the boundary of the triangle.
    """
    area = triangle_area(p0, p1, p2)
    sub_areas = (
        triangle_area(p0, p1, point)
        + triangle_area(p1, p2, point)
        + triangle_area(p2, p0, point)
    )
    return abs(sub_areas - area) <= rel_tol * max(area, 1e-30)


@ti.func
def hit_triangle(ray: Ray, tri: Triangle, ray_t: Interval) -> HitRecord:
    """Test for ray-triangle intersection.

    Args:
        ray: The ray to test (direction need not be normalized).
        tri: The triangle with precomputed plane data.
        ray_t: Interval of acceptable ray parameters.

    Returns:
        A HitRecord. Check the hit field to determine if intersection occurred.
        The normal is the unit plane normal flipped to face the ray.
    """
    result = make_miss_record()

    denom = tm.dot(tri.normal, ray.direction)
    limit = PARALLEL_EPSILON * tm.length(tri.normal) * tm.length(ray.direction)

    if ti.abs(denom) > limit:
        t = (tri.d - tm.dot(tri.normal, ray.origin)) / denom

        if interval_surrounds(ray_t, t):
            point = ray_at(ray, t)
            planar = point - tri.p0
            alpha = tm.dot(tri.w, tm.cross(planar, tri.e2))
            beta = tm.dot(tri.w, tm.cross(tri.e1, planar))

            inside = (
                alpha >= -BARYCENTRIC_EPSILON
                and beta >= -BARYCENTRIC_EPSILON
                and alpha + beta <= 1.0 + BARYCENTRIC_EPSILON
            )
            if inside:
                outward_normal = tm.normalize(tri.normal)
                front_face = 1
                normal = outward_normal
                if denom > 0.0:
                    # Ray travels along the normal: it sees the back face
                    front_face = 0
                    normal = -outward_normal

                result = HitRecord(
                    hit=1,
                    t=t,
                    point=point,
                    normal=normal,
                    front_face=front_face,
                )

    return result

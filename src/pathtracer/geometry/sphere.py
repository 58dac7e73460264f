"""Ray-sphere intersection.

This module provides the Sphere and HitRecord dataclasses and the sphere
intersection routine. Roots of the intersection quadratic are computed with
the reformulated quadratic from Ray Tracing Gems so that nearly tangent rays
do not suffer from catastrophic cancellation.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5)
    >>> # hit_sphere is called from kernels and funcs
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import Interval, Ray, interval_surrounds, ray_at

# Shorthand for Taichi's 3-vector
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """Sphere given by its center and radius.

    Attributes:
        center: Center of the sphere.
        radius: Distance from center to surface; must be positive.
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Attributes:
        hit: Whether the ray intersected the primitive (1 if hit, 0 if miss).
        t: The ray parameter of the intersection. Only valid if hit == 1.
        point: The 3D intersection point. Only valid if hit == 1.
        normal: The unit surface normal at the intersection point, always
            facing against the incoming ray. Only valid if hit == 1.
        front_face: 1 if the ray hit the outward-facing side, 0 otherwise.
            Meaningless when hit is 0.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 using a numerically stable method.

    Args:
        h: The half-b term, dot(direction, origin - center).
        a: Squared length of the direction.
        c: Constant term.
        sqrt_d: sqrt(h*h - a*c), already known to be real.

    Returns:
        The two roots, smaller first.
    """
    # q = -(h + sign(h) * sqrt(discriminant))
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-10:
        # Tangent ray through the center line, fall back to the textbook form
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def make_miss_record() -> HitRecord:
    """Create a HitRecord indicating no intersection."""
    return HitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
    )


@ti.func
def hit_sphere(ray: Ray, sphere: Sphere, ray_t: Interval) -> HitRecord:
    """Test for ray-sphere intersection.

    The intersection is found by solving
        |ray.origin + t * ray.direction - center|^2 = radius^2
    which expands to a*t^2 + 2*h*t + c = 0 with
        a = dot(direction, direction)
        h = dot(direction, origin - center)
        c = |origin - center|^2 - radius^2

    The smaller root is used when it lies strictly inside ray_t, otherwise
    the larger one. A negative discriminant, or both roots outside the
    interval, is a miss.

    Args:
        ray: The ray to test (direction need not be normalized).
        sphere: Sphere to test.
        ray_t: Interval of acceptable ray parameters.

    Returns:
        A HitRecord. Check the hit field to determine if intersection occurred.
    """
    oc = ray.origin - sphere.center

    a = tm.dot(ray.direction, ray.direction)
    h = tm.dot(ray.direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius

    discriminant = h * h - a * c

    result = make_miss_record()

    if discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t0, t1 = _solve_quadratic_robust(h, a, c, sqrt_d)

        t = t0
        valid = interval_surrounds(ray_t, t)
        if not valid:
            t = t1
            valid = interval_surrounds(ray_t, t)

        if valid:
            point = ray_at(ray, t)
            outward_normal = (point - sphere.center) / sphere.radius

            front_face = 1
            normal = outward_normal
            if tm.dot(ray.direction, outward_normal) > 0.0:
                # Origin inside the sphere, so the far root is the exit
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

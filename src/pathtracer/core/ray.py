"""Ray, interval, and vector utilities for the path tracer.

This module provides the fundamental Ray and Interval dataclasses together
with the vector helpers and random sampling routines used by the camera,
primitives, and materials. All functions are Taichi functions so they can be
called from inside rendering kernels.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> origin = ti.math.vec3(0.0, 0.0, 0.0)
    >>> direction = ti.math.vec3(0.0, 0.0, -1.0)
    >>> ray = Ray(origin=origin, direction=direction)
    >>> hit_point = ray_at(ray, 2.5)
"""

import taichi as ti
import taichi.math as tm

# Shorthand for Taichi's 3-vector
vec3 = tm.vec3


@ti.dataclass
class Ray:
    """Half-line traced through the scene.

    Attributes:
        origin: Point the ray leaves from.
        direction: The direction vector of the ray (vec3). Camera rays are
            not normalized; materials normalize where the math requires it.
    """

    origin: vec3
    direction: vec3


@ti.dataclass
class Interval:
    """A closed range of ray parameters [t_min, t_max].

    Attributes:
        t_min: Lower bound. Hits closer than this are ignored, which
            suppresses self-intersection right at a surface.
        t_max: Upper bound (far clip, or the closest hit found so far).
    """

    t_min: ti.f32
    t_max: ti.f32


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Point reached after travelling t direction-lengths.

    Args:
        ray: Ray to walk along.
        t: Distance parameter; negative values lie behind the origin.

    Returns:
        origin + t * direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction."""
    return Ray(origin=origin, direction=direction)


@ti.func
def interval_contains(interval: Interval, x: ti.f32) -> ti.i32:
    """Return 1 if t_min <= x <= t_max."""
    return interval.t_min <= x and x <= interval.t_max


@ti.func
def interval_surrounds(interval: Interval, x: ti.f32) -> ti.i32:
    """Return 1 if t_min < x < t_max (open interval)."""
    return interval.t_min < x and x < interval.t_max


@ti.func
def interval_clamp(interval: Interval, x: ti.f32) -> ti.f32:
    """Clamp x into [t_min, t_max]."""
    return tm.clamp(x, interval.t_min, interval.t_max)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Compute the squared length of a vector."""
    return tm.dot(v, v)


@ti.func
def unit_vector(v: vec3) -> vec3:
    """Normalize a vector to unit length."""
    return tm.normalize(v)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Mirror a direction about a surface normal.

    Args:
        incident: Direction arriving at the surface.
        normal: Unit normal at the surface.

    Returns:
        The reflected direction vector, incident - 2(incident . normal)normal.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(unit_incident: vec3, normal: vec3, etai_over_etat: ti.f32) -> vec3:
    """Refract a unit incident vector through a surface using Snell's law.

    The caller is responsible for checking total internal reflection first;
    this function splits the refracted ray into the components perpendicular
    and parallel to the normal.

    Args:
        unit_incident: The incoming direction (unit length).
        normal: The surface normal facing against the incident ray.
        etai_over_etat: Ratio of refractive indices (incident / transmitted).

    Returns:
        The refracted direction vector.
    """
    cos_theta = tm.min(-tm.dot(unit_incident, normal), 1.0)
    r_out_perp = etai_over_etat * (unit_incident + cos_theta * normal)
    r_out_parallel = -ti.sqrt(ti.abs(1.0 - length_squared(r_out_perp))) * normal
    return r_out_perp + r_out_parallel


@ti.func
def schlick_reflectance(cosine: ti.f32, refraction_ratio: ti.f32) -> ti.f32:
    """Schlick's polynomial fit of the Fresnel reflectance.

    Args:
        cosine: Cosine of the incidence angle.
        refraction_ratio: Ratio of refractive indices.

    Returns:
        The approximate probability that the ray is reflected.
    """
    r0 = (1.0 - refraction_ratio) / (1.0 + refraction_ratio)
    r0 = r0 * r0
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Whether every component of v is below 1e-8 in magnitude.

    Used to catch the degenerate diffuse scatter direction.

    Returns:
        1 when v is effectively the zero vector, else 0.
    """
    s = 1e-8
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


# =============================================================================
# Random sampling
# =============================================================================


@ti.func
def random_in_unit_sphere() -> vec3:
    """Generate a random point strictly inside the unit sphere.

    Uses rejection sampling. Points too close to the center are rejected as
    well so that the result can be safely normalized.

    Returns:
        A random point p with 1e-12 < |p|^2 < 1.
    """
    p = vec3(0.0, 0.0, 1.0)
    found = False
    # Max iterations to avoid infinite loops
    for _ in range(100):
        if not found:
            candidate = vec3(
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
            )
            lensq = length_squared(candidate)
            if 1e-12 < lensq and lensq < 1.0:
                p = candidate
                found = True
    return p


@ti.func
def random_unit_vector() -> vec3:
    """Generate a random unit vector uniformly distributed on the sphere."""
    return unit_vector(random_in_unit_sphere())


@ti.func
def random_in_unit_disk() -> vec3:
    """Rejection-sample a point from the unit disk at z = 0.

    Used for sampling ray origins on the camera defocus disk.

    Returns:
        A point (x, y, 0) strictly inside the unit circle.
    """
    p = vec3(0.0, 0.0, 0.0)
    found = False
    for _ in range(100):
        if not found:
            candidate = vec3(
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
                0.0,
            )
            if candidate.x * candidate.x + candidate.y * candidate.y < 1.0:
                p = candidate
                found = True
    return p

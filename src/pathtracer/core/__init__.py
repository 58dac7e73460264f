"""Core rendering module.

Components:
    ray: Ray and interval structures plus vector and sampling utilities
    integrator: Depth-bounded path integrator and frame buffer
    render: Parallel render driver and image output

All per-ray work runs inside Taichi kernels.
"""

from .ray import (
    Interval,
    Ray,
    interval_clamp,
    interval_contains,
    interval_surrounds,
    length_squared,
    make_ray,
    near_zero,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_unit_vector,
    ray_at,
    reflect,
    refract,
    schlick_reflectance,
    unit_vector,
    vec3,
)

# Note: integrator and render are NOT imported here to avoid circular imports.
# Import directly from src.pathtracer.core.integrator or src.pathtracer.core.render.

__all__ = [
    "Ray",
    "Interval",
    "ray_at",
    "make_ray",
    "vec3",
    "interval_contains",
    "interval_surrounds",
    "interval_clamp",
    "length_squared",
    "unit_vector",
    "reflect",
    "refract",
    "schlick_reflectance",
    "near_zero",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_in_unit_disk",
]

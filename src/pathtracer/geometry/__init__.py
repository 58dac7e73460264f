"""Geometry module for shape primitives.

Components:
    sphere: Sphere primitive with ray-sphere intersection
    triangle: Triangle primitive with precomputed plane data

All intersection routines are Taichi functions (@ti.func) returning a
HitRecord; hit == 0 signals a miss.
"""

from .sphere import HitRecord, Sphere, hit_sphere, make_miss_record
from .triangle import (
    Triangle,
    hit_triangle,
    make_triangle_data,
    triangle_area,
    triangle_contains_point,
)

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "make_miss_record",
    "Triangle",
    "hit_triangle",
    "make_triangle_data",
    "triangle_area",
    "triangle_contains_point",
]

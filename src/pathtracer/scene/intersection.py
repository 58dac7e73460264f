"""Scene-level primitive intersection testing.

This module stores every primitive of the scene in Taichi fields and provides
the closest-hit query used by the path integrator. Spheres and triangles each
carry a material ID; many primitives may share the same material.

Triangles store their precomputed plane data (see
src.pathtracer.geometry.triangle.make_triangle_data) next to their corners so
the kernel never has to rebuild it.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.scene.intersection import (
    ...     add_sphere, add_triangle, clear_scene, query_hit
    ... )
    >>> clear_scene()
    >>> add_sphere((0, 0, -1), 0.5, material_id=0)
    >>> add_triangle((-1, -0.5, -2), (1, -0.5, -2), (0, 1, -2), material_id=1)
    >>> hit = query_hit((0, 0, 0), (0, 0, -1))
    >>> hit.t
    0.5
"""

from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import Interval, Ray
from src.pathtracer.geometry.sphere import HitRecord, Sphere, hit_sphere
from src.pathtracer.geometry.triangle import Triangle, hit_triangle, make_triangle_data

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection with material information.

    Attributes:
        hit: Whether the ray intersected any primitive (1 if hit, 0 if miss).
        t: The ray parameter of the closest intersection.
        point: The 3D intersection point.
        normal: The unit surface normal, facing against the ray.
        front_face: 1 if the outward-facing side was hit, 0 otherwise.
        material_id: The material ID of the hit primitive (-1 on a miss).
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    material_id: ti.i32


@dataclass
class SceneHit:
    """Host-side copy of a SceneHitRecord returned by query_hit."""

    t: float
    point: tuple[float, float, float]
    normal: tuple[float, float, float]
    front_face: bool
    material_id: int


# Maximum number of primitives supported in the scene
MAX_SPHERES = 1024
MAX_TRIANGLES = 1024

# Far limit for "unbounded" queries
T_INFINITY = 1e10

# Sphere storage: Structure of Arrays layout
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Triangle storage: corners plus derived plane data
triangle_p0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_e1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_e2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_offsets = ti.field(dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_w = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_material_ids = ti.field(dtype=ti.i32, shape=MAX_TRIANGLES)
num_triangles = ti.field(dtype=ti.i32, shape=())

# Output slots for host-side queries
_query_hit = ti.field(dtype=ti.i32, shape=())
_query_t = ti.field(dtype=ti.f32, shape=())
_query_point = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_normal = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_front_face = ti.field(dtype=ti.i32, shape=())
_query_material_id = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Clear all primitives from the scene.

    Resets the primitive counts to zero. Field data is overwritten when new
    primitives are added.
    """
    num_spheres[None] = 0
    num_triangles[None] = 0


def add_sphere(
    center: tuple[float, float, float],
    radius: float,
    material_id: int = 0,
) -> int:
    """Add a sphere to the scene.

    Args:
        center: The center point of the sphere.
        radius: The radius of the sphere (should be positive).
        material_id: The material ID to associate with this sphere.

    Returns:
        The index of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = vec3(center[0], center[1], center[2])
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    return idx


def add_triangle(
    p0: tuple[float, float, float],
    p1: tuple[float, float, float],
    p2: tuple[float, float, float],
    material_id: int = 0,
) -> int:
    """Add a triangle to the scene.

    The plane normal follows the winding order p0 -> p1 -> p2.

    Args:
        p0: First corner.
        p1: Second corner.
        p2: Third corner.
        material_id: The material ID to associate with this triangle.

    Returns:
        The index of the added triangle.

    Raises:
        RuntimeError: If the maximum number of triangles is exceeded.
        ValueError: If the triangle is degenerate.
    """
    idx = num_triangles[None]
    if idx >= MAX_TRIANGLES:
        raise RuntimeError(f"Maximum number of triangles ({MAX_TRIANGLES}) exceeded")

    data = make_triangle_data(p0, p1, p2)
    triangle_p0[idx] = data["p0"].tolist()
    triangle_e1[idx] = data["e1"].tolist()
    triangle_e2[idx] = data["e2"].tolist()
    triangle_normals[idx] = data["normal"].tolist()
    triangle_offsets[idx] = data["d"]
    triangle_w[idx] = data["w"].tolist()
    triangle_material_ids[idx] = material_id
    num_triangles[None] = idx + 1
    return idx


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


def get_triangle_count() -> int:
    """Get the number of triangles in the scene."""
    return int(num_triangles[None])


@ti.func
def _to_scene_hit_record(rec: HitRecord, material_id: ti.i32) -> SceneHitRecord:
    """Attach a material ID to a primitive hit record."""
    return SceneHitRecord(
        hit=rec.hit,
        t=rec.t,
        point=rec.point,
        normal=rec.normal,
        front_face=rec.front_face,
        material_id=material_id,
    )


@ti.func
def _make_miss_record() -> SceneHitRecord:
    """Create a SceneHitRecord indicating no intersection."""
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        material_id=-1,
    )


@ti.func
def intersect_scene(ray: Ray, ray_t: Interval) -> SceneHitRecord:
    """Find the closest primitive hit by the ray within ray_t.

    Every sphere and triangle is tested; the upper bound of the interval
    shrinks to the closest hit found so far, so later primitives only
    report hits that are strictly closer.

    Args:
        ray: The ray to trace.
        ray_t: Interval of acceptable ray parameters.

    Returns:
        The closest SceneHitRecord, or a miss record (hit == 0).
    """
    closest_t = ray_t.t_max
    result = _make_miss_record()

    for i in range(num_spheres[None]):
        sphere = Sphere(center=sphere_centers[i], radius=sphere_radii[i])
        rec = hit_sphere(ray, sphere, Interval(t_min=ray_t.t_min, t_max=closest_t))
        if rec.hit == 1:
            closest_t = rec.t
            result = _to_scene_hit_record(rec, sphere_material_ids[i])

    for i in range(num_triangles[None]):
        tri = Triangle(
            p0=triangle_p0[i],
            e1=triangle_e1[i],
            e2=triangle_e2[i],
            normal=triangle_normals[i],
            d=triangle_offsets[i],
            w=triangle_w[i],
        )
        rec = hit_triangle(ray, tri, Interval(t_min=ray_t.t_min, t_max=closest_t))
        if rec.hit == 1:
            closest_t = rec.t
            result = _to_scene_hit_record(rec, triangle_material_ids[i])

    return result


@ti.kernel
def _query_kernel(origin: vec3, direction: vec3, t_min: ti.f32, t_max: ti.f32):
    """Run a single closest-hit query and store it in the query slots."""
    ray = Ray(origin=origin, direction=direction)
    rec = intersect_scene(ray, Interval(t_min=t_min, t_max=t_max))
    _query_hit[None] = rec.hit
    _query_t[None] = rec.t
    _query_point[None] = rec.point
    _query_normal[None] = rec.normal
    _query_front_face[None] = rec.front_face
    _query_material_id[None] = rec.material_id


def query_hit(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    t_min: float = 1e-3,
    t_max: float = T_INFINITY,
) -> SceneHit | None:
    """Find the closest hit for one ray from Python.

    Args:
        origin: Ray origin.
        direction: Ray direction (need not be normalized).
        t_min: Lower bound of the acceptable ray parameter.
        t_max: Upper bound of the acceptable ray parameter.

    Returns:
        A SceneHit for the closest intersection, or None on a miss.

    Raises:
        ValueError: If t_min > t_max.
    """
    if t_min > t_max:
        raise ValueError(f"Invalid interval: t_min={t_min} > t_max={t_max}")

    _query_kernel(
        vec3(origin[0], origin[1], origin[2]),
        vec3(direction[0], direction[1], direction[2]),
        t_min,
        t_max,
    )

    if _query_hit[None] == 0:
        return None

    point = _query_point[None]
    normal = _query_normal[None]
    return SceneHit(
        t=float(_query_t[None]),
        point=(float(point[0]), float(point[1]), float(point[2])),
        normal=(float(normal[0]), float(normal[1]), float(normal[2])),
        front_face=bool(_query_front_face[None]),
        material_id=int(_query_material_id[None]),
    )

"""Scene module for primitive storage and scene management.

Components:
    intersection: Primitive storage in Taichi fields and closest-hit queries
    manager: Scene manager coordinating primitives and materials
    demo: The showcase scene (spheres, mirror floor, polygon sail)

Scene data is organized for efficient kernel access:
    - Structure-of-Arrays layout for geometric data
    - Contiguous material ID arrays
    - Triangle plane data precomputed at insertion
"""

from .demo import create_demo_camera_config, create_demo_scene
from .intersection import (
    MAX_SPHERES,
    MAX_TRIANGLES,
    SceneHit,
    SceneHitRecord,
    add_sphere,
    add_triangle,
    clear_scene,
    get_sphere_count,
    get_triangle_count,
    intersect_scene,
    query_hit,
)
from .manager import (
    MAX_MATERIALS,
    MaterialInfo,
    MaterialType,
    SceneConfig,
    SceneManager,
    SphereInfo,
    TriangleInfo,
    get_material_type,
    get_material_type_index,
)

__all__ = [
    # Intersection module
    "SceneHitRecord",
    "SceneHit",
    "add_sphere",
    "add_triangle",
    "clear_scene",
    "get_sphere_count",
    "get_triangle_count",
    "intersect_scene",
    "query_hit",
    "MAX_SPHERES",
    "MAX_TRIANGLES",
    # Manager module
    "SceneManager",
    "MaterialType",
    "MaterialInfo",
    "SphereInfo",
    "TriangleInfo",
    "SceneConfig",
    "MAX_MATERIALS",
    "get_material_type",
    "get_material_type_index",
    # Demo scene
    "create_demo_scene",
    "create_demo_camera_config",
]

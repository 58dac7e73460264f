"""Scene manager coordinating primitives and materials.

This module provides the high-level scene API. It keeps a unified material ID
space on top of the per-type material registries (Lambertian, Metal,
Dielectric), so that the integrator can dispatch on the material type of
whatever primitive a ray hits. Primitives reference materials by ID; any
number of primitives may share one material.

The SceneManager maintains:
- A lookup from each material ID to its kind and slot in that kind's registry
- Python-side records of every material and primitive
- The "add primitive" and "closest hit" operations of the scene
- Conversion to and from plain dictionaries

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> matte = scene.add_lambertian_material(albedo=(0.8, 0.3, 0.3))
    >>> scene.add_sphere(center=(0, 0, -1), radius=0.5, material_id=matte)
    0
    >>> scene.hit((0, 0, 0), (0, 0, -1)).material_id
    0
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import taichi as ti

from src.pathtracer.materials.dielectric import (
    add_dielectric_material,
    clear_dielectric_materials,
)
from src.pathtracer.materials.lambertian import (
    add_lambertian_material,
    clear_lambertian_materials,
)
from src.pathtracer.materials.metal import (
    add_metal_material,
    clear_metal_materials,
)
from src.pathtracer.scene.intersection import (
    MAX_SPHERES,
    MAX_TRIANGLES,
    T_INFINITY,
    SceneHit,
    add_sphere,
    add_triangle,
    clear_scene,
    get_sphere_count,
    get_triangle_count,
    query_hit,
)

Vec3Tuple = tuple[float, float, float]


class MaterialType(IntEnum):
    """Kinds of surface a primitive can be made of.

    The integrator switches on these values when a ray scatters.
    """

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


# Upper bound on unified material IDs
MAX_MATERIALS = 1536  # 512 per type * 3 types

# Kind of each material, indexed by unified ID
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# Slot of each material inside its kind's registry
# (the third metal registered has slot 2, whatever its unified ID)
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def _clear_material_tracking() -> None:
    """Forget every unified material ID."""
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Look up which kind of material an ID refers to.

    Returns:
        The material type as an integer (see MaterialType), or -1 for
        invalid material IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the index into the type-specific registry for a material ID.

    Returns:
        The type-local index, or -1 for invalid material IDs.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


@dataclass
class MaterialInfo:
    """Record kept for each material added to a scene.

    Attributes:
        material_id: ID shared by all material kinds.
        material_type: Which registry holds the material.
        type_index: Slot inside that registry.
        params: Keyword arguments the material was created with.
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    """A sphere primitive.

    Passed to SceneManager.add(), and recorded in SceneManager.spheres once
    added (with sphere_index filled in).
    """

    center: Vec3Tuple
    radius: float
    material_id: int
    sphere_index: int = -1


@dataclass
class TriangleInfo:
    """A triangle primitive with corners in winding order.

    Passed to SceneManager.add(), and recorded in SceneManager.triangles once
    added (with triangle_index filled in).
    """

    p0: Vec3Tuple
    p1: Vec3Tuple
    p2: Vec3Tuple
    material_id: int
    triangle_index: int = -1


@dataclass
class SceneConfig:
    """Plain-data description of a scene."""

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)
    triangles: list[dict[str, Any]] = field(default_factory=list)


class SceneManager:
    """Scene container coordinating primitives and materials.

    Only one scene is active at a time: the primitive and material storage
    lives in module-level Taichi fields, and creating a SceneManager clears
    them.

    Attributes:
        materials: MaterialInfo for all registered materials.
        spheres: SphereInfo for all spheres in the scene.
        triangles: TriangleInfo for all triangles in the scene.

    Example:
        >>> scene = SceneManager()
        >>> red = scene.add_lambertian_material(albedo=(0.8, 0.1, 0.1))
        >>> gold = scene.add_metal_material(albedo=(0.8, 0.6, 0.2), fuzz=0.3)
        >>> glass = scene.add_dielectric_material(ior=1.33)
        >>> scene.add_sphere((0, 0, -1), 0.5, red)
        >>> scene.add(SphereInfo(center=(1, 0, -1), radius=0.5, material_id=gold))
        >>> scene.add_triangle((-2, 0, -2), (-1, 0, -2), (-1.5, 1, -2), glass)
    """

    def __init__(self) -> None:
        """Create an empty scene, resetting any previous one."""
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self.triangles: list[TriangleInfo] = []
        self._clear_all()

    def _clear_all(self) -> None:
        """Reset the Python records and the Taichi storage behind them."""
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        _clear_material_tracking()
        self.materials.clear()
        self.spheres.clear()
        self.triangles.clear()

    def clear(self) -> None:
        """Clear the entire scene (primitives and materials)."""
        self._clear_all()

    # =========================================================================
    # Materials
    # =========================================================================

    def _register_material(
        self,
        material_type: MaterialType,
        type_index: int,
        params: dict[str, Any],
    ) -> int:
        """Assign a unified material ID to a type-local material."""
        material_id = num_materials[None]
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Scene already holds {MAX_MATERIALS} materials")

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                params=params,
            )
        )
        return material_id

    def add_lambertian_material(self, albedo: Vec3Tuple) -> int:
        """Register a matte surface that scatters around the normal.

        Args:
            albedo: The diffuse reflectance color as (R, G, B), each in [0, 1].

        Returns:
            ID to pass when adding primitives.

        Raises:
            RuntimeError: If no material IDs are left.
            ValueError: If an albedo channel lies outside [0, 1].
        """
        type_index = add_lambertian_material(albedo)
        return self._register_material(
            MaterialType.LAMBERTIAN, type_index, {"albedo": tuple(albedo)}
        )

    def add_metal_material(self, albedo: Vec3Tuple, fuzz: float = 0.0) -> int:
        """Register a mirror-like surface, optionally blurred by fuzz.

        Args:
            albedo: The reflective color as (R, G, B), each in [0, 1].
            fuzz: The reflection perturbation in [0, 1]. Default is 0 (mirror).

        Returns:
            ID to pass when adding primitives.

        Raises:
            RuntimeError: If no material IDs are left.
            ValueError: If any albedo component or fuzz is outside [0, 1].
        """
        type_index = add_metal_material(albedo, fuzz)
        return self._register_material(
            MaterialType.METAL, type_index, {"albedo": tuple(albedo), "fuzz": fuzz}
        )

    def add_dielectric_material(self, ior: float = 1.5) -> int:
        """Register a clear refracting surface such as glass or water.

        Args:
            ior: Refractive index relative to the surrounding air.

        Returns:
            ID to pass when adding primitives.

        Raises:
            RuntimeError: If no material IDs are left.
            ValueError: If ior is below 1.
        """
        type_index = add_dielectric_material(ior)
        return self._register_material(MaterialType.DIELECTRIC, type_index, {"ior": ior})

    def get_material_count(self) -> int:
        """Number of materials registered so far."""
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get information about a material by ID, or None if not found."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def _check_material_id(self, material_id: int) -> None:
        if material_id < 0 or material_id >= num_materials[None]:
            raise ValueError(f"Unknown material_id {material_id}")

    # =========================================================================
    # Primitives
    # =========================================================================

    def add_sphere(self, center: Vec3Tuple, radius: float, material_id: int) -> int:
        """Add a sphere to the scene.

        Args:
            center: The center point of the sphere as (x, y, z).
            radius: The radius of the sphere (must be positive).
            material_id: The unified material ID to assign to the sphere.

        Returns:
            The index of the added sphere.

        Raises:
            RuntimeError: If the maximum number of spheres is exceeded.
            ValueError: If material_id is invalid or radius is not positive.
        """
        self._check_material_id(material_id)
        if radius <= 0.0:
            raise ValueError(f"Sphere radius must be positive, got {radius}")

        sphere_index = add_sphere(center, radius, material_id)
        self.spheres.append(
            SphereInfo(
                center=tuple(center),
                radius=radius,
                material_id=material_id,
                sphere_index=sphere_index,
            )
        )
        return sphere_index

    def add_triangle(self, p0: Vec3Tuple, p1: Vec3Tuple, p2: Vec3Tuple, material_id: int) -> int:
        """Add a triangle to the scene.

        The outward normal follows the winding order p0 -> p1 -> p2
        (right-hand rule).

        Args:
            p0: First corner as (x, y, z).
            p1: Second corner as (x, y, z).
            p2: Third corner as (x, y, z).
            material_id: The unified material ID to assign to the triangle.

        Returns:
            The index of the added triangle.

        Raises:
            RuntimeError: If the maximum number of triangles is exceeded.
            ValueError: If material_id is invalid or the triangle is degenerate.
        """
        self._check_material_id(material_id)

        triangle_index = add_triangle(p0, p1, p2, material_id)
        self.triangles.append(
            TriangleInfo(
                p0=tuple(p0),
                p1=tuple(p1),
                p2=tuple(p2),
                material_id=material_id,
                triangle_index=triangle_index,
            )
        )
        return triangle_index

    def add(self, primitive: SphereInfo | TriangleInfo) -> int:
        """Add a primitive described by a SphereInfo or TriangleInfo.

        Returns:
            The type-local index of the added primitive.

        Raises:
            TypeError: If the primitive kind is not supported.
        """
        if isinstance(primitive, SphereInfo):
            return self.add_sphere(primitive.center, primitive.radius, primitive.material_id)
        if isinstance(primitive, TriangleInfo):
            return self.add_triangle(
                primitive.p0, primitive.p1, primitive.p2, primitive.material_id
            )
        raise TypeError(f"Unsupported primitive: {type(primitive).__name__}")

    def add_quad(
        self,
        corner: Vec3Tuple,
        edge_u: Vec3Tuple,
        edge_v: Vec3Tuple,
        material_id: int,
    ) -> tuple[int, int]:
        """Add a parallelogram as two triangles sharing the u+v diagonal.

        The parallelogram spans corner, corner+u, corner+u+v, corner+v; both
        triangles are wound so that their normal is u x v.

        Returns:
            Tuple of the two triangle indices.
        """
        q = corner
        qu = tuple(q[k] + edge_u[k] for k in range(3))
        quv = tuple(q[k] + edge_u[k] + edge_v[k] for k in range(3))
        qv = tuple(q[k] + edge_v[k] for k in range(3))
        first = self.add_triangle(q, qu, quv, material_id)
        second = self.add_triangle(q, quv, qv, material_id)
        return first, second

    # =========================================================================
    # Queries
    # =========================================================================

    def hit(
        self,
        origin: Vec3Tuple,
        direction: Vec3Tuple,
        t_min: float = 1e-3,
        t_max: float = T_INFINITY,
    ) -> SceneHit | None:
        """Find the nearest primitive hit by a ray within [t_min, t_max].

        Returns:
            The closest SceneHit, or None if nothing is hit.
        """
        return query_hit(origin, direction, t_min, t_max)

    def get_sphere_count(self) -> int:
        """Number of spheres added so far."""
        return get_sphere_count()

    def get_triangle_count(self) -> int:
        """Number of triangles added so far."""
        return get_triangle_count()

    def get_primitive_count(self) -> int:
        """Get the total number of primitives in the scene."""
        return self.get_sphere_count() + self.get_triangle_count()

    # =========================================================================
    # Plain-data conversion
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a SceneConfig."""
        config = SceneConfig()

        for mat in self.materials:
            config.materials.append({"type": mat.material_type.name.lower(), **mat.params})

        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )

        for tri in self.triangles:
            config.triangles.append(
                {
                    "p0": list(tri.p0),
                    "p1": list(tri.p1),
                    "p2": list(tri.p2),
                    "material_id": tri.material_id,
                }
            )

        return config

    def from_config(self, config: SceneConfig) -> None:
        """Clear the current scene and load a SceneConfig.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()

        # Materials first, primitives refer to them by ID
        for mat_config in config.materials:
            mat_type = mat_config.get("type", "").lower()
            if mat_type == "lambertian":
                self.add_lambertian_material(tuple(mat_config.get("albedo", (0.5, 0.5, 0.5))))
            elif mat_type == "metal":
                self.add_metal_material(
                    tuple(mat_config.get("albedo", (0.8, 0.8, 0.8))),
                    mat_config.get("fuzz", 0.0),
                )
            elif mat_type == "dielectric":
                self.add_dielectric_material(mat_config.get("ior", 1.5))
            else:
                raise ValueError(f"Unknown material type: {mat_type}")

        for sphere_config in config.spheres:
            self.add_sphere(
                tuple(sphere_config["center"]),
                sphere_config.get("radius", 1.0),
                sphere_config.get("material_id", 0),
            )

        for tri_config in config.triangles:
            self.add_triangle(
                tuple(tri_config["p0"]),
                tuple(tri_config["p1"]),
                tuple(tri_config["p2"]),
                tri_config.get("material_id", 0),
            )

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        config = self.to_config()
        return {
            "materials": config.materials,
            "spheres": config.spheres,
            "triangles": config.triangles,
        }

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary with materials/spheres/triangles keys."""
        self.from_config(
            SceneConfig(
                materials=data.get("materials", []),
                spheres=data.get("spheres", []),
                triangles=data.get("triangles", []),
            )
        )

    # =========================================================================
    # Limits
    # =========================================================================

    @staticmethod
    def get_max_spheres() -> int:
        """Sphere capacity of the scene storage."""
        return MAX_SPHERES

    @staticmethod
    def get_max_triangles() -> int:
        """Triangle capacity of the scene storage."""
        return MAX_TRIANGLES

    @staticmethod
    def get_max_materials() -> int:
        """Material capacity across all kinds."""
        return MAX_MATERIALS

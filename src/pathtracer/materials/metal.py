"""Reflective metal surfaces with optional fuzz.

Metals reflect the incoming ray about the surface normal:

    R = I - 2(I . N)N

A fuzz factor in [0, 1] perturbs the unit reflection by a random vector of
that length, producing glossy rather than mirror-like reflections. When the
perturbed direction ends up below the surface the ray is absorbed.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.materials.metal import scatter_metal
    >>> # Inside a kernel or func:
    >>> # did_scatter, attenuation, direction = scatter_metal(
    >>> #     albedo, fuzz, incident_dir, normal
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import random_unit_vector, reflect, unit_vector

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def scatter_metal(albedo: vec3, fuzz: ti.f32, incident_direction: vec3, normal: vec3):
    """Compute the scattered direction for a metal surface.

    Args:
        albedo: Tint applied to reflected light, per channel in [0, 1].
        fuzz: The reflection perturbation radius in [0, 1].
        incident_direction: The incoming ray direction (any length).
        normal: The unit surface normal (facing the incoming ray).

    Returns:
        A tuple of (did_scatter, attenuation, scattered_direction) where
        did_scatter is 0 if the fuzzed reflection points into the surface.
    """
    reflected = unit_vector(reflect(incident_direction, normal))
    scattered_direction = reflected + fuzz * random_unit_vector()

    did_scatter = 1
    if tm.dot(scattered_direction, normal) <= 0.0:
        did_scatter = 0

    return did_scatter, albedo, scattered_direction


# =============================================================================
# Registry
# =============================================================================

# Capacity of the metal registry
MAX_METAL_MATERIALS = 512

metal_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_METAL_MATERIALS)
metal_fuzzes = ti.field(dtype=ti.f32, shape=MAX_METAL_MATERIALS)
num_metal_materials = ti.field(dtype=ti.i32, shape=())


def clear_metal_materials() -> None:
    """Clear all metal materials."""
    num_metal_materials[None] = 0


def add_metal_material(albedo: tuple[float, float, float], fuzz: float = 0.0) -> int:
    """Store a metal albedo and fuzz and return their slot.

    Args:
        albedo: Metal tint as an (R, G, B) tuple.
            Each component must be in [0, 1].
        fuzz: The reflection perturbation in [0, 1]. Default is 0 (mirror).

    Returns:
        Slot of the new entry in this registry.

    Raises:
        RuntimeError: If the registry is full.
        ValueError: If any albedo component or fuzz is outside [0, 1].
    """
    for i, component in enumerate(albedo):
        if component < 0.0 or component > 1.0:
            raise ValueError(
                f"Albedo channel {i} ({component}) is outside [0, 1]; "
                "a surface cannot reflect more light than it receives"
            )

    if fuzz < 0.0 or fuzz > 1.0:
        raise ValueError(
            f"Fuzz = {fuzz} is outside [0, 1]. "
            "Fuzz must be between 0 (perfect mirror) and 1 (maximum fuzz)."
        )

    idx = num_metal_materials[None]
    if idx >= MAX_METAL_MATERIALS:
        raise RuntimeError(f"Maximum number of metal materials ({MAX_METAL_MATERIALS}) exceeded")

    metal_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    metal_fuzzes[idx] = fuzz
    num_metal_materials[None] = idx + 1
    return idx


def get_metal_material_count() -> int:
    """Number of metal entries stored."""
    return int(num_metal_materials[None])


@ti.func
def get_metal_albedo(material_idx: ti.i32) -> vec3:
    """Get the albedo for a metal material by index."""
    return metal_albedos[material_idx]


@ti.func
def get_metal_fuzz(material_idx: ti.i32) -> ti.f32:
    """Get the fuzz factor for a metal material by index."""
    return metal_fuzzes[material_idx]

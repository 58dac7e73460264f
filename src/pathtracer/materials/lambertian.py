"""Matte surfaces that scatter light around the surface normal.

A Lambertian surface scatters incoming light in a cosine-weighted distribution
around the surface normal. Sampling the outgoing direction as

    direction = normal + random_unit_vector()

produces exactly that distribution, so the attenuation of every bounce is
simply the albedo.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.materials.lambertian import scatter_lambertian
    >>> # Inside a kernel or func:
    >>> # did_scatter, attenuation, direction = scatter_lambertian(albedo, normal)
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import near_zero, random_unit_vector

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def scatter_lambertian(albedo: vec3, normal: vec3):
    """Sample a scattered direction for a Lambertian surface.

    If the random unit vector happens to cancel the normal the scattered
    direction would be degenerate; the normal itself is used instead.

    Args:
        albedo: Fraction of each RGB channel reflected, in [0, 1].
        normal: The unit surface normal at the hit point (facing the ray).

    Returns:
        A tuple of (did_scatter, attenuation, scattered_direction). Diffuse
        surfaces always scatter, so did_scatter is always 1.
    """
    scattered_direction = normal + random_unit_vector()

    if near_zero(scattered_direction):
        scattered_direction = normal

    return 1, albedo, scattered_direction


# =============================================================================
# Registry
# =============================================================================

# Capacity of the matte registry
MAX_LAMBERTIAN_MATERIALS = 512

lambertian_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambertian_materials() -> None:
    """Clear all Lambertian materials."""
    num_lambertian_materials[None] = 0


def add_lambertian_material(albedo: tuple[float, float, float]) -> int:
    """Store a matte albedo and return its slot.

    Args:
        albedo: Reflectance as an (R, G, B) tuple.
            Each component must be in [0, 1] for energy conservation.

    Returns:
        Slot of the new entry in this registry.

    Raises:
        RuntimeError: If the registry is full.
        ValueError: If an albedo channel is outside [0, 1].
    """
    for i, component in enumerate(albedo):
        if component < 0.0 or component > 1.0:
            raise ValueError(
                f"Albedo channel {i} ({component}) is outside [0, 1]; "
                "a surface cannot reflect more light than it receives"
            )

    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    num_lambertian_materials[None] = idx + 1
    return idx


def get_lambertian_material_count() -> int:
    """Number of matte entries stored."""
    return int(num_lambertian_materials[None])


@ti.func
def get_lambertian_albedo(material_idx: ti.i32) -> vec3:
    """Get the albedo for a Lambertian material by index."""
    return lambertian_albedos[material_idx]

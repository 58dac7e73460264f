"""Clear refracting surfaces such as glass, water and diamond.

Dielectrics both reflect and refract light:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Schlick's approximation for the reflection probability
    - Total internal reflection when the refraction ratio * sin(theta) > 1

The choice between reflection and refraction is made stochastically per ray.
Clear dielectrics absorb nothing, so the attenuation is always white.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.materials.dielectric import scatter_dielectric
    >>> # Inside a kernel or func:
    >>> # did_scatter, attenuation, direction = scatter_dielectric(
    >>> #     ior, incident_dir, normal, front_face
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import reflect, refract, schlick_reflectance, unit_vector

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def refraction_ratio_for(ior: ti.f32, front_face: ti.i32) -> ti.f32:
    """Ratio of refractive indices for a ray entering or leaving the material."""
    ratio = ior
    if front_face == 1:
        ratio = 1.0 / ior
    return ratio


@ti.func
def will_reflect(refraction_ratio: ti.f32, cos_theta: ti.f32) -> ti.i32:
    """Return 1 if total internal reflection prevents refraction."""
    sin_theta = ti.sqrt(tm.max(0.0, 1.0 - cos_theta * cos_theta))
    return refraction_ratio * sin_theta > 1.0


@ti.func
def scatter_dielectric(ior: ti.f32, incident_direction: vec3, normal: vec3, front_face: ti.i32):
    """Compute the scattered direction for a dielectric surface.

    Args:
        ior: Refractive index of the medium behind the surface.
        incident_direction: The incoming ray direction (any length).
        normal: The unit surface normal, facing the incoming ray.
        front_face: 1 if the ray enters the material, 0 if it is leaving.

    Returns:
        A tuple of (did_scatter, attenuation, scattered_direction). Dielectrics
        always scatter, so did_scatter is always 1.
    """
    attenuation = vec3(1.0, 1.0, 1.0)
    refraction_ratio = refraction_ratio_for(ior, front_face)

    unit_direction = unit_vector(incident_direction)
    cos_theta = tm.min(-tm.dot(unit_direction, normal), 1.0)

    cannot_refract = will_reflect(refraction_ratio, cos_theta)

    scattered_direction = vec3(0.0, 0.0, 0.0)
    if cannot_refract or schlick_reflectance(cos_theta, refraction_ratio) > ti.random(ti.f32):
        scattered_direction = reflect(unit_direction, normal)
    else:
        scattered_direction = refract(unit_direction, normal, refraction_ratio)

    return 1, attenuation, scattered_direction


# =============================================================================
# Registry
# =============================================================================

# Capacity of the dielectric registry
MAX_DIELECTRIC_MATERIALS = 512

dielectric_iors = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(ior: float = 1.5) -> int:
    """Store a refractive index and return its slot.

    Args:
        ior: Refractive index; 1.5 approximates window glass.
            Must be >= 1.0.

    Returns:
        Slot of the new entry in this registry.

    Raises:
        RuntimeError: If the registry is full.
        ValueError: If ior is less than 1.0.
    """
    if ior < 1.0:
        raise ValueError(
            f"Refractive index {ior} is less than 1.0; "
            "values below vacuum are not supported"
        )

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_iors[idx] = ior
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Number of dielectric entries stored."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ior(material_idx: ti.i32) -> ti.f32:
    """Get the IOR for a dielectric material by index."""
    return dielectric_iors[material_idx]

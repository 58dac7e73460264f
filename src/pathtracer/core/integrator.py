"""Path tracing integrator for Monte Carlo light transport.

This module implements the depth-bounded path integrator and the render target
that accumulates its samples.

The integrator follows a ray through the scene, bouncing off surfaces
according to their material properties. Every bounce multiplies the pending
color by the material attenuation; a ray that escapes picks up the sky
gradient, a ray that is absorbed or runs out of depth contributes black.

Key features:
    - Material dispatch (Lambertian, Metal, Dielectric)
    - Hard depth limit (no Russian roulette)
    - Vertical white-to-blue sky gradient for escaped rays
    - Per-pixel color sums in a frame buffer sized to the image

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.core.integrator import trace_ray
    >>> trace_ray((0, 0, 0), (0, 1, 0), depth=10)  # empty scene: sky color
    (0.5, 0.7, 1.0)
"""

import taichi as ti
import taichi.math as tm

from src.pathtracer.camera.camera import get_ray
from src.pathtracer.core.ray import Interval, Ray, make_ray, unit_vector
from src.pathtracer.materials.dielectric import get_dielectric_ior, scatter_dielectric
from src.pathtracer.materials.lambertian import get_lambertian_albedo, scatter_lambertian
from src.pathtracer.materials.metal import get_metal_albedo, get_metal_fuzz, scatter_metal
from src.pathtracer.scene.intersection import T_INFINITY, intersect_scene
from src.pathtracer.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Hits closer than this are ignored to avoid shadow acne
T_MIN = 1e-3
T_MAX = T_INFINITY

# Sky gradient endpoints (looking straight down and straight up)
SKY_BOTTOM_COLOR = vec3(1.0, 1.0, 1.0)
SKY_TOP_COLOR = vec3(0.5, 0.7, 1.0)

# =============================================================================
# Render Target (Frame Buffer)
# =============================================================================

# Image dimensions (actual active size)
_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Per-pixel color sums, row-major (row, column). Allocated by
# setup_render_target() to the image size and passed to kernels as an
# argument, so a new size does not recompile them.
_frame_buffer = None

# Flag to track if render target is initialized
_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target.

    Sets the active image dimensions and gives the frame buffer exactly
    height x width cells, all zero. A buffer of the same shape is reused.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.

    Raises:
        ValueError: If dimensions are not positive.
    """
    global _frame_buffer

    if width < 1 or height < 1:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")

    if _frame_buffer is None or tuple(_frame_buffer.shape) != (height, width):
        _frame_buffer = ti.ndarray(dtype=vec3, shape=(height, width))

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


@ti.kernel
def _clear_frame(frame: ti.types.ndarray(dtype=vec3, ndim=2)):
    for I in ti.grouped(frame):
        frame[I] = vec3(0.0, 0.0, 0.0)


def clear_render_target() -> None:
    """Clear the frame buffer to zero."""
    if _frame_buffer is not None:
        _clear_frame(_frame_buffer)


def reset_render_target() -> None:
    """Forget the active render target and release its frame buffer."""
    global _frame_buffer

    _render_target_initialized[None] = 0
    _image_width[None] = 0
    _image_height[None] = 0
    _frame_buffer = None


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def check_render_target_initialized() -> None:
    """Raise RuntimeError if the render target has not been set up."""
    if _render_target_initialized[None] == 0 or _frame_buffer is None:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


def get_frame_buffer():
    """Get the frame buffer for passing to a render kernel.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    check_render_target_initialized()
    return _frame_buffer


def get_frame_buffer_numpy():
    """Get the frame buffer as a NumPy array.

    Returns:
        Array of shape (height, width, 3) holding per-pixel color sums,
        row 0 at the top of the image.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    return get_frame_buffer().to_numpy()


# =============================================================================
# Material Dispatch
# =============================================================================


@ti.func
def _scatter_material(
    material_id: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
):
    """Dispatch to the scatter function of the hit material.

    Args:
        material_id: The unified material ID.
        incident_direction: The incoming ray direction.
        normal: The unit surface normal, facing against the ray.
        front_face: 1 if the outward side was hit, 0 otherwise.

    Returns:
        A tuple of (did_scatter, attenuation, scattered_direction). Unknown
        material IDs absorb the ray.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    did_scatter = 0
    attenuation = vec3(0.0, 0.0, 0.0)
    scattered_direction = vec3(0.0, 0.0, 0.0)

    if mat_type == int(MaterialType.LAMBERTIAN):
        albedo = get_lambertian_albedo(type_index)
        did_scatter, attenuation, scattered_direction = scatter_lambertian(albedo, normal)

    elif mat_type == int(MaterialType.METAL):
        albedo = get_metal_albedo(type_index)
        fuzz = get_metal_fuzz(type_index)
        did_scatter, attenuation, scattered_direction = scatter_metal(
            albedo, fuzz, incident_direction, normal
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        ior = get_dielectric_ior(type_index)
        did_scatter, attenuation, scattered_direction = scatter_dielectric(
            ior, incident_direction, normal, front_face
        )

    return did_scatter, attenuation, scattered_direction


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def background_color(direction: vec3) -> vec3:
    """Sky color seen along a ray that hits nothing.

    Blends linearly from white at straight down to light blue at straight up.
    """
    unit_direction = unit_vector(direction)
    a = 0.5 * (unit_direction.y + 1.0)
    return (1.0 - a) * SKY_BOTTOM_COLOR + a * SKY_TOP_COLOR


@ti.func
def ray_color(ray: Ray, depth: ti.i32) -> vec3:
    """Estimate the color carried back along a ray.

    Equivalent to the recursive definition

        color(ray, 0)     = black
        color(ray, depth) = attenuation * color(scattered, depth - 1)  on scatter
                          = black                                       on absorb
                          = background(ray)                             on miss

    unrolled into a loop that carries the product of attenuations so far.

    Args:
        ray: The ray to follow.
        depth: Number of bounces still allowed.

    Returns:
        The estimated color (RGB).
    """
    color = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    origin = ray.origin
    direction = ray.direction

    # Taichi has no break inside ti.func loops
    active = 1

    for _ in range(depth):
        if active == 1:
            ray_t = Interval(t_min=T_MIN, t_max=T_MAX)
            rec = intersect_scene(make_ray(origin, direction), ray_t)

            if rec.hit == 0:
                color = throughput * background_color(direction)
                active = 0
            else:
                did_scatter, attenuation, scattered_direction = _scatter_material(
                    rec.material_id, direction, rec.normal, rec.front_face
                )
                if did_scatter == 0:
                    active = 0
                else:
                    throughput *= attenuation
                    origin = rec.point
                    direction = scattered_direction

    return color


@ti.func
def sample_pixel(pixel_i: ti.i32, pixel_j: ti.i32, max_depth: ti.i32) -> vec3:
    """Trace one jittered camera ray through pixel column i, row j.

    Non-finite results are replaced with zero so one bad sample cannot
    poison a pixel sum.
    """
    color = ray_color(get_ray(pixel_i, pixel_j), max_depth)
    for c in ti.static(range(3)):
        if tm.isnan(color[c]) or tm.isinf(color[c]):
            color[c] = 0.0
    return color


# =============================================================================
# Python Entry Points
# =============================================================================


@ti.kernel
def _trace_ray_kernel(origin: vec3, direction: vec3, depth: ti.i32) -> vec3:
    return ray_color(Ray(origin=origin, direction=direction), depth)


@ti.kernel
def _render_single_pixel(pixel_i: ti.i32, pixel_j: ti.i32, max_depth: ti.i32) -> vec3:
    return sample_pixel(pixel_i, pixel_j, max_depth)


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    depth: int,
) -> tuple[float, float, float]:
    """Evaluate ray_color for one ray from Python.

    Args:
        origin: Ray origin.
        direction: Ray direction (need not be normalized).
        depth: Number of bounces allowed; 0 or less gives black.

    Returns:
        Tuple of (R, G, B) color values.
    """
    color = _trace_ray_kernel(
        vec3(origin[0], origin[1], origin[2]),
        vec3(direction[0], direction[1], direction[2]),
        depth,
    )
    return (float(color[0]), float(color[1]), float(color[2]))


def render_sample(pixel_i: int, pixel_j: int, max_depth: int) -> tuple[float, float, float]:
    """Trace a single camera sample for a specific pixel.

    The active camera must be initialized. This is a Python-callable helper
    for testing; full images are rendered by src.pathtracer.core.render.

    Args:
        pixel_i: Pixel column (0 = left).
        pixel_j: Pixel row (0 = top).
        max_depth: Number of bounces allowed.

    Returns:
        Tuple of (R, G, B) color values.
    """
    color = _render_single_pixel(pixel_i, pixel_j, max_depth)
    return (float(color[0]), float(color[1]), float(color[2]))

"""Thin-lens camera model for primary ray generation.

This module implements the camera that generates primary rays for rendering.
The camera supports:
- Look-at positioning (lookfrom, lookat, vup)
- Vertical field of view in degrees
- Arbitrary aspect ratios
- Jittered sampling for anti-aliasing
- Depth of field through a defocus disk (thin lens)

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

The viewport sits on the focus plane, focus_dist in front of the camera.
Pixel rows run top to bottom, so pixel (0, 0) is the upper-left corner.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.camera.camera import Camera, CameraConfig
    >>>
    >>> camera = Camera(CameraConfig(image_width=400, aspect_ratio=16.0 / 9.0))
    >>> camera.initialize()
    >>> camera.image_height
    225
"""

import logging
import math
from dataclasses import dataclass, replace

import numpy as np
import taichi as ti
import taichi.math as tm

from src.pathtracer.core.ray import Ray, make_ray, random_in_unit_disk, vec3

logger = logging.getLogger(__name__)

# Worker pool bounds for the render driver
MIN_WORKERS = 1
MAX_WORKERS = 128

# =============================================================================
# Camera Configuration
# =============================================================================


@dataclass
class CameraConfig:
    """User-facing camera and render options.

    Attributes:
        aspect_ratio: Ratio of image width over height.
        image_width: Rendered image width in pixels.
        samples_per_pixel: Count of random samples for each pixel.
        max_depth: Maximum number of ray bounces into the scene.
        vfov: Vertical view angle (field of view) in degrees.
        lookfrom: Point the camera is looking from.
        lookat: Point the camera is looking at.
        vup: Camera-relative "up" direction.
        defocus_angle: Variation angle of rays through each pixel, in degrees.
            0 disables depth of field.
        focus_dist: Distance from lookfrom to the plane of perfect focus.
        worker_count: Number of parallel render workers.
    """

    aspect_ratio: float = 1.0
    image_width: int = 100
    samples_per_pixel: int = 20
    max_depth: int = 10
    vfov: float = 90.0
    lookfrom: tuple[float, float, float] = (0.0, 0.0, -1.0)
    lookat: tuple[float, float, float] = (0.0, 0.0, 0.0)
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    defocus_angle: float = 0.0
    focus_dist: float = 10.0
    worker_count: int = 1


# =============================================================================
# Taichi Fields for Camera State (GPU-accessible)
# =============================================================================

_camera_center = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel00_loc = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel_delta_u = ti.Vector.field(3, dtype=ti.f32, shape=())
_pixel_delta_v = ti.Vector.field(3, dtype=ti.f32, shape=())
_defocus_disk_u = ti.Vector.field(3, dtype=ti.f32, shape=())
_defocus_disk_v = ti.Vector.field(3, dtype=ti.f32, shape=())
_defocus_enabled = ti.field(dtype=ti.i32, shape=())

# Output slots for host-side ray sampling
_sample_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_sample_direction = ti.Vector.field(3, dtype=ti.f32, shape=())

# The camera whose state currently lives in the fields above
_active_camera: "Camera | None" = None


def _unit(v: np.ndarray, name: str) -> np.ndarray:
    length = np.linalg.norm(v)
    if length == 0.0:
        raise ValueError(f"Camera {name} vector has zero length")
    return v / length


class Camera:
    """Camera that derives its per-render state from a CameraConfig.

    The derived state (image height, basis vectors, viewport geometry) is
    computed once in initialize() and uploaded into module-level Taichi
    fields, where get_ray() reads it. Only one camera is active at a time.

    Attributes:
        config: The validated configuration (clamped copy of the input).
        image_height: Rendered image height in pixels.
    """

    def __init__(self, config: CameraConfig | None = None) -> None:
        self.config = config if config is not None else CameraConfig()
        self.image_height = 0
        self._basis: dict[str, tuple[float, float, float]] = {}
        self._initialized = False

    @property
    def image_width(self) -> int:
        return self.config.image_width

    @property
    def samples_per_pixel(self) -> int:
        return self.config.samples_per_pixel

    @property
    def max_depth(self) -> int:
        return self.config.max_depth

    @property
    def worker_count(self) -> int:
        return self.config.worker_count

    @property
    def is_initialized(self) -> bool:
        """True once initialize() has uploaded this camera's state."""
        return self._initialized and _active_camera is self

    def _validated_config(self) -> CameraConfig:
        """Return a copy of the configuration with out-of-range values clamped."""
        cfg = self.config
        defaults = CameraConfig()
        updates = {}

        if cfg.image_width < 1:
            logger.warning("image_width %d is below 1, using 1", cfg.image_width)
            updates["image_width"] = 1
        if cfg.samples_per_pixel < 1:
            logger.warning("samples_per_pixel %d is below 1, using 1", cfg.samples_per_pixel)
            updates["samples_per_pixel"] = 1
        if cfg.max_depth < 0:
            logger.warning("max_depth %d is negative, using 0", cfg.max_depth)
            updates["max_depth"] = 0
        if not MIN_WORKERS <= cfg.worker_count <= MAX_WORKERS:
            clamped = min(max(cfg.worker_count, MIN_WORKERS), MAX_WORKERS)
            logger.warning(
                "worker_count %d is outside [%d, %d], using %d",
                cfg.worker_count,
                MIN_WORKERS,
                MAX_WORKERS,
                clamped,
            )
            updates["worker_count"] = clamped
        if cfg.aspect_ratio <= 0.0:
            logger.warning(
                "aspect_ratio %s is not positive, using %s", cfg.aspect_ratio, defaults.aspect_ratio
            )
            updates["aspect_ratio"] = defaults.aspect_ratio
        if cfg.focus_dist <= 0.0:
            logger.warning(
                "focus_dist %s is not positive, using %s", cfg.focus_dist, defaults.focus_dist
            )
            updates["focus_dist"] = defaults.focus_dist

        return replace(cfg, **updates)

    def initialize(self) -> None:
        """Derive the camera state and upload it for ray generation.

        Raises:
            ValueError: If the view vectors are degenerate.
        """
        global _active_camera

        cfg = self._validated_config()

        image_height = max(1, int(cfg.image_width / cfg.aspect_ratio))

        center = np.array(cfg.lookfrom, dtype=np.float64)
        lookat = np.array(cfg.lookat, dtype=np.float64)
        vup = np.array(cfg.vup, dtype=np.float64)

        # Viewport dimensions on the focus plane
        theta = math.radians(cfg.vfov)
        h = math.tan(theta / 2.0)
        viewport_height = 2.0 * h * cfg.focus_dist
        viewport_width = viewport_height * (cfg.image_width / image_height)

        w = _unit(center - lookat, "view direction")
        u = _unit(np.cross(vup, w), "up")
        v = np.cross(w, u)

        # Vectors across the horizontal and down the vertical viewport edges
        viewport_u = viewport_width * u
        viewport_v = viewport_height * -v

        pixel_delta_u = viewport_u / cfg.image_width
        pixel_delta_v = viewport_v / image_height

        viewport_upper_left = center - cfg.focus_dist * w - viewport_u / 2.0 - viewport_v / 2.0
        pixel00 = viewport_upper_left + 0.5 * (pixel_delta_u + pixel_delta_v)

        defocus_radius = cfg.focus_dist * math.tan(math.radians(cfg.defocus_angle / 2.0))
        defocus_disk_u = u * defocus_radius
        defocus_disk_v = v * defocus_radius

        _camera_center[None] = center.tolist()
        _pixel00_loc[None] = pixel00.tolist()
        _pixel_delta_u[None] = pixel_delta_u.tolist()
        _pixel_delta_v[None] = pixel_delta_v.tolist()
        _defocus_disk_u[None] = defocus_disk_u.tolist()
        _defocus_disk_v[None] = defocus_disk_v.tolist()
        _defocus_enabled[None] = 1 if cfg.defocus_angle > 0.0 else 0

        self.config = cfg
        self.image_height = image_height
        self._basis = {
            "u": tuple(float(x) for x in u),
            "v": tuple(float(x) for x in v),
            "w": tuple(float(x) for x in w),
        }
        self._initialized = True
        _active_camera = self

        logger.debug(
            "Camera initialized: %dx%d, %d spp, depth %d, %d workers",
            cfg.image_width,
            image_height,
            cfg.samples_per_pixel,
            cfg.max_depth,
            cfg.worker_count,
        )

    def require_initialized(self) -> None:
        """Raise RuntimeError unless this camera's state is uploaded."""
        if not self.is_initialized:
            raise RuntimeError("Camera is not initialized; call initialize() first")

    def get_camera_info(self) -> dict[str, tuple[float, float, float]]:
        """Get the derived camera vectors for inspection.

        Returns:
            Dictionary with center, pixel00, pixel_delta_u, pixel_delta_v,
            defocus_disk_u, defocus_disk_v and the basis vectors u, v, w.

        Raises:
            RuntimeError: If the camera has not been initialized.
        """
        self.require_initialized()
        info = {
            "center": _read_vec(_camera_center),
            "pixel00": _read_vec(_pixel00_loc),
            "pixel_delta_u": _read_vec(_pixel_delta_u),
            "pixel_delta_v": _read_vec(_pixel_delta_v),
            "defocus_disk_u": _read_vec(_defocus_disk_u),
            "defocus_disk_v": _read_vec(_defocus_disk_v),
        }
        info.update(self._basis)
        return info

    def sample_ray(self, i: int, j: int) -> tuple[tuple[float, float, float], ...]:
        """Generate one jittered ray for pixel (i, j) from Python.

        Returns:
            Tuple of (origin, direction).

        Raises:
            RuntimeError: If the camera has not been initialized.
        """
        self.require_initialized()
        _sample_ray_kernel(i, j)
        return _read_vec(_sample_origin), _read_vec(_sample_direction)


def _read_vec(f) -> tuple[float, float, float]:
    value = f[None]
    return (float(value[0]), float(value[1]), float(value[2]))


# =============================================================================
# Ray Generation (Taichi-compatible, GPU-callable)
# =============================================================================


@ti.func
def pixel_sample_square() -> vec3:
    """Random offset within the square surrounding a pixel at the origin."""
    px = -0.5 + ti.random(ti.f32)
    py = -0.5 + ti.random(ti.f32)
    return px * _pixel_delta_u[None] + py * _pixel_delta_v[None]


@ti.func
def defocus_disk_sample() -> vec3:
    """Random point on the camera defocus disk."""
    p = random_in_unit_disk()
    return _camera_center[None] + p[0] * _defocus_disk_u[None] + p[1] * _defocus_disk_v[None]


@ti.func
def get_ray(i: ti.i32, j: ti.i32) -> Ray:
    """Generate a randomly sampled camera ray for pixel column i, row j.

    The ray passes through a jittered point inside the pixel and originates
    from the camera center, or from the defocus disk when depth of field is
    enabled.
    """
    pixel_center = _pixel00_loc[None] + i * _pixel_delta_u[None] + j * _pixel_delta_v[None]
    pixel_sample = pixel_center + pixel_sample_square()

    ray_origin = _camera_center[None]
    if _defocus_enabled[None] == 1:
        ray_origin = defocus_disk_sample()

    return make_ray(ray_origin, pixel_sample - ray_origin)


@ti.kernel
def _sample_ray_kernel(i: ti.i32, j: ti.i32):
    ray = get_ray(i, j)
    _sample_origin[None] = ray.origin
    _sample_direction[None] = ray.direction

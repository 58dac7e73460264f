"""Camera module for view and ray generation.

Components:
    camera: Thin-lens camera configuration, setup, and ray generation

Camera responsibilities:
    - Derive the view basis and viewport from look-at parameters
    - Apply anti-aliasing jitter within each pixel
    - Sample ray origins on the defocus disk for depth of field
    - Validate and clamp render options (image size, samples, workers)

Pixel coordinates are integer (column, row) with row 0 at the top of the
image.
"""

from .camera import (
    MAX_WORKERS,
    MIN_WORKERS,
    Camera,
    CameraConfig,
    get_ray,
)

__all__ = [
    "Camera",
    "CameraConfig",
    "get_ray",
    "MIN_WORKERS",
    "MAX_WORKERS",
]

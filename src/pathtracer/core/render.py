"""Parallel render driver.

This module renders a full image for an initialized Camera:
- Static row partitioning across a fixed pool of workers
- Per-pixel accumulation of samples_per_pixel traced samples
- Progress reporting of remaining scanlines (log + optional callback)
- Finalization to 8-bit color and PPM/PNG output

Row j of the image is owned by worker j % worker_count. The driver launches a
single kernel whose outer loop runs over worker indices on at most
worker_count CPU threads; each worker walks its own rows to completion, so no
frame-buffer cell is ever written by two workers and workers never wait on
each other. ti.sync() after the launch is the only barrier before the frame
buffer is read.

Example:
    >>> import sys
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.pathtracer.camera.camera import Camera, CameraConfig
    >>> from src.pathtracer.core.render import Renderer
    >>>
    >>> camera = Camera(CameraConfig(image_width=64, samples_per_pixel=4, worker_count=8))
    >>> renderer = Renderer(camera)
    >>> renderer.render()
    >>> renderer.write_ppm(sys.stdout)
"""

import logging
from collections.abc import Callable
from typing import TextIO

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.pathtracer.camera.camera import MAX_WORKERS, MIN_WORKERS, Camera
from src.pathtracer.core.integrator import (
    get_frame_buffer,
    get_frame_buffer_numpy,
    render_sample,
    sample_pixel,
    setup_render_target,
)
from src.pathtracer.preview.display import finalize_image
from src.pathtracer.preview.export import save_png_from_array, save_ppm, write_ppm

logger = logging.getLogger(__name__)

vec3 = tm.vec3

# Type alias for progress callback
# Callback receives (remaining_scanlines, total_scanlines)
ProgressCallback = Callable[[int, int], None]

# The renderer whose image currently lives in the frame buffer
_active_renderer: "Renderer | None" = None


def partition_rows(image_height: int, worker_count: int) -> list[list[int]]:
    """Assign every image row to exactly one worker.

    Row j belongs to worker j % worker_count. The worker count is clamped
    into [MIN_WORKERS, MAX_WORKERS].

    Args:
        image_height: Number of rows in the image.
        worker_count: Requested number of workers.

    Returns:
        One list of row indices per worker, each in increasing order.
    """
    workers = min(max(worker_count, MIN_WORKERS), MAX_WORKERS)
    return [list(range(w, image_height, workers)) for w in range(workers)]


@ti.kernel
def _render_rows(
    frame: ti.types.ndarray(dtype=vec3, ndim=2),
    worker_count: ti.template(),
    width: ti.i32,
    height: ti.i32,
    samples_per_pixel: ti.i32,
    max_depth: ti.i32,
):
    """Render every row, worker w taking rows w, w + worker_count, ..."""
    ti.loop_config(parallelize=worker_count, block_dim=1)
    for worker in range(worker_count):
        rows_per_worker = (height + worker_count - 1) // worker_count
        for k in range(rows_per_worker):
            row = worker + k * worker_count
            if row < height:
                for col in range(width):
                    pixel_color = vec3(0.0, 0.0, 0.0)
                    for _ in range(samples_per_pixel):
                        pixel_color += sample_pixel(col, row, max_depth)
                    frame[row, col] += pixel_color


class Renderer:
    """Renders the scene through a camera into the shared frame buffer.

    The scene is whatever is currently stored in the scene fields (see
    src.pathtracer.scene.manager.SceneManager); it must not change while
    render() runs.

    Attributes:
        camera: The camera used for ray generation and render options.
    """

    def __init__(self, camera: Camera) -> None:
        """Initialize the renderer, initializing the camera if needed.

        Raises:
            ValueError: If the camera view vectors are degenerate.
        """
        self.camera = camera
        if not camera.is_initialized:
            camera.initialize()
        self._rendered = False

    @property
    def width(self) -> int:
        """Get the image width."""
        return self.camera.image_width

    @property
    def height(self) -> int:
        """Get the image height."""
        return self.camera.image_height

    @property
    def samples_per_pixel(self) -> int:
        """Get the number of samples summed into each pixel."""
        return self.camera.samples_per_pixel

    @property
    def worker_count(self) -> int:
        """Get the clamped number of render workers."""
        return self.camera.worker_count

    @property
    def is_rendered(self) -> bool:
        """True if the frame buffer holds this renderer's finished image."""
        return self._rendered and _active_renderer is self

    def partition(self) -> list[list[int]]:
        """Get the rows owned by each worker for this image."""
        return partition_rows(self.height, self.worker_count)

    def render(self, callback: ProgressCallback | None = None) -> None:
        """Render the full image.

        Clears the frame buffer, then renders all rows in one kernel launch
        and waits for it. The number of remaining scanlines is logged at INFO
        and passed to the callback before the launch and after the barrier.

        Args:
            callback: Optional callback receiving
                (remaining_scanlines, total_scanlines).

        Raises:
            RuntimeError: If the camera is not (or no longer) initialized.
        """
        global _active_renderer

        self.camera.require_initialized()

        width, height = self.width, self.height
        workers = self.worker_count
        spp = self.samples_per_pixel
        depth = self.camera.max_depth

        setup_render_target(width, height)
        self._rendered = False
        _active_renderer = self

        logger.info(
            "Rendering %dx%d, %d samples per pixel, max depth %d, %d workers",
            width,
            height,
            spp,
            depth,
            workers,
        )

        self._report_progress(height, height, callback)
        _render_rows(get_frame_buffer(), workers, width, height, spp, depth)
        ti.sync()
        self._report_progress(0, height, callback)
        self._rendered = True
        logger.info("Done.")

    @staticmethod
    def _report_progress(remaining: int, total: int, callback: ProgressCallback | None) -> None:
        logger.info("Scanlines remaining: %d", remaining)
        if callback is not None:
            callback(remaining, total)

    def render_sample(self, pixel_i: int, pixel_j: int) -> tuple[float, float, float]:
        """Trace one sample for pixel column i, row j (not accumulated).

        Raises:
            RuntimeError: If the camera is not initialized.
            ValueError: If the pixel lies outside the image.
        """
        self.camera.require_initialized()
        if not (0 <= pixel_i < self.width and 0 <= pixel_j < self.height):
            raise ValueError(
                f"Pixel ({pixel_i}, {pixel_j}) is outside the {self.width}x{self.height} image"
            )
        return render_sample(pixel_i, pixel_j, self.camera.max_depth)

    def _check_rendered(self) -> None:
        if not self.is_rendered:
            raise RuntimeError("No rendered image available. Call render() first.")

    def get_sums_numpy(self) -> npt.NDArray[np.float32]:
        """Get the per-pixel color sums as an (H, W, 3) array.

        Raises:
            RuntimeError: If render() has not completed.
        """
        self._check_rendered()
        return get_frame_buffer_numpy()

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Get the linear per-pixel averages as an (H, W, 3) float32 array.

        Raises:
            RuntimeError: If render() has not completed.
        """
        sums = self.get_sums_numpy()
        return (sums / float(self.samples_per_pixel)).astype(np.float32)

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Get the finalized (gamma encoded, quantized) image.

        Raises:
            RuntimeError: If render() has not completed.
        """
        return finalize_image(self.get_sums_numpy(), self.samples_per_pixel)

    def write_ppm(self, stream: TextIO) -> None:
        """Write the finalized image as plain-text PPM to a text stream."""
        write_ppm(self.get_image_uint8(), stream)

    def save_ppm(self, filepath: str) -> None:
        """Save the finalized image as a plain-text PPM file."""
        save_ppm(self.get_image_uint8(), filepath)
        logger.info("Saved PPM to %s", filepath)

    def save_png(self, filepath: str) -> None:
        """Save the finalized image as a PNG file."""
        save_png_from_array(self.get_image_uint8(), filepath)
        logger.info("Saved PNG to %s", filepath)

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"Renderer(width={self.width}, height={self.height}, "
            f"samples={self.samples_per_pixel}, workers={self.worker_count})"
        )


def render_to_ppm(
    camera: Camera,
    stream: TextIO,
    callback: ProgressCallback | None = None,
) -> Renderer:
    """Render the current scene through camera and write PPM to stream.

    Returns:
        The Renderer holding the finished image.
    """
    renderer = Renderer(camera)
    renderer.render(callback=callback)
    renderer.write_ppm(stream)
    return renderer

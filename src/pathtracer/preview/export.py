"""Image export utilities for rendered images.

Supported formats:
    - PPM (plain-text P3, the renderer's native output)
    - PNG (8-bit via Pillow)

Both writers take an already finalized uint8 image of shape (H, W, 3), row 0
at the top.

Example:
    >>> import io
    >>> import numpy as np
    >>> from src.pathtracer.preview.export import write_ppm
    >>> buf = io.StringIO()
    >>> write_ppm(np.zeros((1, 2, 3), dtype=np.uint8), buf)
    >>> buf.getvalue()
    'P3\\n2 1\\n255\\n0 0 0\\n0 0 0\\n'
"""

from __future__ import annotations

from typing import TextIO

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage


def _check_image(image: npt.NDArray[np.uint8]) -> None:
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {image.shape}")


def write_ppm(image: npt.NDArray[np.uint8], stream: TextIO) -> None:
    """Write an 8-bit RGB image as plain-text PPM (P3).

    The header is "P3", the width and height, and the maximum value 255,
    followed by one "R G B" line per pixel, rows top to bottom.

    Args:
        image: Array of shape (H, W, 3) with values in [0, 255].
        stream: Text stream to write to.

    Raises:
        ValueError: If the image does not have shape (H, W, 3).
    """
    _check_image(image)
    height, width = image.shape[:2]

    stream.write(f"P3\n{width} {height}\n255\n")
    pixels = np.asarray(image, dtype=np.int64).reshape(-1, 3)
    stream.writelines(f"{r} {g} {b}\n" for r, g, b in pixels.tolist())


def save_ppm(image: npt.NDArray[np.uint8], filepath: str) -> None:
    """Save an 8-bit RGB image as a plain-text PPM file."""
    with open(filepath, "w", encoding="ascii") as f:
        write_ppm(image, f)


def save_png_from_array(image: npt.NDArray[np.uint8], filepath: str) -> None:
    """Save an 8-bit RGB image as a PNG file.

    Args:
        image: Array of shape (H, W, 3) with dtype uint8.
        filepath: Output file path (should end in .png).
    """
    _check_image(image)
    pil_image = PILImage.fromarray(np.ascontiguousarray(image, dtype=np.uint8))
    pil_image.save(filepath)


def compute_rmse(
    image_a: npt.NDArray[np.floating[npt.NBitBase]],
    image_b: npt.NDArray[np.floating[npt.NBitBase]],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(
            f"Image shapes must match: {image_a.shape} vs {image_b.shape}"
        )

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))

"""Frame finalization and Matplotlib-based preview display.

This module turns accumulated per-pixel color sums into displayable 8-bit
colors and shows the result with Matplotlib.

Finalization of one color component:
    1. Divide the sum by the number of samples (pixel average)
    2. Gamma 2 encoding: sqrt(x)
    3. Clamp to [0, 0.999]
    4. Quantize: int(256 * x), giving values in [0, 255]

Example:
    >>> import numpy as np
    >>> from src.pathtracer.preview.display import finalize_image
    >>> sums = np.full((1, 1, 3), 2.0, dtype=np.float32)
    >>> finalize_image(sums, samples=8)  # average 0.25, gamma -> 0.5
    array([[[128, 128, 128]]], dtype=uint8)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from src.pathtracer.core.render import Renderer


# Largest value a finalized component may take before quantization
INTENSITY_MAX = 0.999


def linear_to_gamma(linear: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Apply gamma 2 encoding to linear color values.

    Negative inputs map to 0. The transform is monotonic with
    linear_to_gamma(0) == 0 and linear_to_gamma(1) == 1.

    Args:
        linear: Scalar or array of linear color components.

    Returns:
        Gamma encoded values with the same shape as the input.
    """
    return np.sqrt(np.maximum(np.asarray(linear, dtype=np.float64), 0.0))


def finalize_image(
    sums: npt.NDArray[np.floating],
    samples: int,
) -> npt.NDArray[np.uint8]:
    """Convert per-pixel color sums into quantized 8-bit colors.

    Args:
        sums: Array of shape (H, W, 3) holding the sum of every sample.
        samples: Number of samples summed into each pixel.

    Returns:
        Array of shape (H, W, 3) with dtype uint8.

    Raises:
        ValueError: If samples is not positive.
    """
    if samples < 1:
        raise ValueError(f"samples must be positive, got {samples}")

    average = np.asarray(sums, dtype=np.float64) / float(samples)
    encoded = np.clip(linear_to_gamma(average), 0.0, INTENSITY_MAX)
    return (256.0 * encoded).astype(np.uint8)


def show_preview(
    renderer: Renderer,
    *,
    title: str | None = None,
    figsize: tuple[float, float] = (8, 5),
    block: bool = True,
) -> None:
    """Display the finished render as a Matplotlib figure.

    Args:
        renderer: A Renderer that has completed a render.
        title: Custom title (default shows size and sample count).
        figsize: Figure size in inches (width, height).
        block: Whether to block execution until figure is closed.

    Raises:
        RuntimeError: If the renderer has not rendered yet.
    """
    import matplotlib.pyplot as plt

    image = renderer.get_image_uint8()

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(image)
    ax.axis("off")

    if title is None:
        height, width = image.shape[:2]
        title = f"Render Preview - {width}x{height}, {renderer.samples_per_pixel} SPP"
    ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)

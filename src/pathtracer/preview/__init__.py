"""Preview module for image finalization, export and visualization.

Components:
    display: Gamma encoding, quantization, and Matplotlib preview
    export: PPM (P3) and PNG writers, image comparison

Example:
    >>> from src.pathtracer.preview import show_preview
    >>> renderer.render()
    >>> show_preview(renderer)
    >>> renderer.save_png("output.png")
"""

from src.pathtracer.preview.display import (
    INTENSITY_MAX,
    finalize_image,
    linear_to_gamma,
    show_preview,
)
from src.pathtracer.preview.export import (
    compute_rmse,
    save_png_from_array,
    save_ppm,
    write_ppm,
)

__all__ = [
    # Display functions
    "linear_to_gamma",
    "finalize_image",
    "show_preview",
    "INTENSITY_MAX",
    # Export functions
    "write_ppm",
    "save_ppm",
    "save_png_from_array",
    "compute_rmse",
]

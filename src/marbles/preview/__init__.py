"""Preview module for image output.

Components:
    export: Gamma encoding, 8-bit quantization and PPM/PNG writers

Example:
    >>> from marbles.preview import image_to_uint8, save_image
    >>> save_image(image_to_uint8(linear_image, gamma=2.0), "output.png")
"""

from marbles.preview.export import (
    DEFAULT_GAMMA,
    format_ppm,
    gamma_to_linear,
    image_to_uint8,
    linear_to_gamma,
    save_image,
    save_png,
    save_ppm,
)

__all__ = [
    "DEFAULT_GAMMA",
    "linear_to_gamma",
    "gamma_to_linear",
    "image_to_uint8",
    "format_ppm",
    "save_ppm",
    "save_png",
    "save_image",
]

"""Image export utilities for rendered images.

This module turns the renderer's linear colour buffer into files:

    linear -> gamma encode (c^(1/gamma)) -> 8-bit quantize -> PPM or PNG

Quantization maps an encoded value c to int(256 * clamp(c, 0, 0.999)), so
every 8-bit level covers an equal share of [0, 1).

Supported formats:
    - PPM (plain text P3)
    - PNG (8-bit via Pillow)

Example:
    >>> from marbles.preview.export import image_to_uint8, save_image
    >>> from marbles.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(400, 225)
    >>> renderer.render(100)
    >>> save_image(image_to_uint8(renderer.get_image_numpy()), "output.ppm")
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

logger = logging.getLogger(__name__)

DEFAULT_GAMMA = 2.0


def linear_to_gamma(
    image: npt.NDArray[np.floating],
    gamma: float = DEFAULT_GAMMA,
) -> npt.NDArray[np.float32]:
    """Gamma encode a linear image.

    Each component c becomes c^(1/gamma) for c > 0 and 0 otherwise.

    Args:
        image: Linear image (any shape).
        gamma: Gamma exponent (positive).

    Returns:
        The encoded image as float32.
    """
    if gamma <= 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")
    positive = np.clip(np.asarray(image, dtype=np.float32), 0.0, None)
    return np.power(positive, 1.0 / gamma).astype(np.float32)


def gamma_to_linear(
    image: npt.NDArray[np.floating],
    gamma: float = DEFAULT_GAMMA,
) -> npt.NDArray[np.float32]:
    """Decode a gamma encoded image back to linear (c^gamma, 0 for c <= 0)."""
    if gamma <= 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")
    positive = np.clip(np.asarray(image, dtype=np.float32), 0.0, None)
    return np.power(positive, gamma).astype(np.float32)


def image_to_uint8(
    image: npt.NDArray[np.floating],
    *,
    gamma: float = DEFAULT_GAMMA,
) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to 8-bit for display/export.

    NaN components (from degenerate paths) are written as 0.

    Args:
        image: Linear image array of shape (H, W, 3).
        gamma: Gamma exponent used for encoding.

    Returns:
        8-bit image array of shape (H, W, 3) with dtype uint8.
    """
    encoded = np.nan_to_num(linear_to_gamma(image, gamma), nan=0.0)
    return (256.0 * np.clip(encoded, 0.0, 0.999)).astype(np.uint8)


def _check_uint8_image(image: npt.NDArray[np.uint8]) -> None:
    if image.dtype != np.uint8 or image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(
            f"Expected a uint8 image of shape (H, W, 3), got {image.dtype} {image.shape}"
        )


def format_ppm(image: npt.NDArray[np.uint8]) -> str:
    """Format an 8-bit image as plain PPM (P3) text.

    The header is "P3", "<width> <height>" and "255" on separate lines,
    followed by one "r g b" line per pixel, row by row from the top.

    Raises:
        ValueError: If the image is not uint8 with shape (H, W, 3).
    """
    _check_uint8_image(image)
    height, width = image.shape[0], image.shape[1]
    lines = [f"P3\n{width} {height}\n255\n"]
    lines.extend(f"{r} {g} {b}\n" for r, g, b in image.reshape(-1, 3).tolist())
    return "".join(lines)


def save_ppm(image: npt.NDArray[np.uint8], filepath: str | Path) -> None:
    """Save an 8-bit image as a plain PPM file."""
    text = format_ppm(image)
    with open(filepath, "w", encoding="ascii") as f:
        f.write(text)
    logger.info("wrote %s", filepath)


def save_png(image: npt.NDArray[np.uint8], filepath: str | Path) -> None:
    """Save an 8-bit image as a PNG file using Pillow."""
    _check_uint8_image(image)
    pil_image = PILImage.fromarray(np.ascontiguousarray(image))
    pil_image.save(filepath, format="PNG")
    logger.info("wrote %s", filepath)


def save_image(image: npt.NDArray[np.uint8], filepath: str | Path) -> None:
    """Save an 8-bit image, choosing the format from the file extension.

    Args:
        image: 8-bit image array of shape (H, W, 3).
        filepath: Output path ending in .ppm or .png.

    Raises:
        ValueError: If the extension is not supported.
    """
    suffix = Path(filepath).suffix.lower()
    if suffix == ".ppm":
        save_ppm(image, filepath)
    elif suffix == ".png":
        save_png(image, filepath)
    else:
        raise ValueError(f"Unsupported image format '{suffix}' (use .ppm or .png)")

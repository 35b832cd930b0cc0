"""Textures for spatially varying albedo.

Three texture kinds are supported, selected by a type tag stored per texture:

    SOLID:   a constant colour.
    CHECKER: a 3-D checker pattern alternating two colours,
             odd where sin(f x) sin(f y) sin(f z) < 0, even elsewhere.
    IMAGE:   an RGB image looked up by surface (u, v) coordinates.

Texture parameters live in Structure-of-Arrays fields. Image texels of every
image texture are packed back to back into a single shared field; each image
texture records its offset and dimensions in that field.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from marbles.materials.texture import add_checker_texture
    >>> tex = add_checker_texture((0.2, 0.3, 0.1), (0.9, 0.9, 0.9), 10.0)
    >>> # texture_value(tex, u, v, point) within a Taichi kernel
"""

import logging
from enum import IntEnum
from pathlib import Path

import numpy as np
import taichi as ti
import taichi.math as tm
from PIL import Image

logger = logging.getLogger(__name__)

vec3 = tm.vec3


class TextureType(IntEnum):
    """Texture type identifiers."""

    SOLID = 0
    CHECKER = 1
    IMAGE = 2


# Maximum number of textures in the scene
MAX_TEXTURES = 512

# Total texel capacity shared by all image textures (1024 x 1024 RGB)
MAX_TEXELS = 1 << 20

texture_types = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_color_a = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TEXTURES)
texture_color_b = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TEXTURES)
texture_scales = ti.field(dtype=ti.f32, shape=MAX_TEXTURES)
texture_image_offsets = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_image_widths = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
texture_image_heights = ti.field(dtype=ti.i32, shape=MAX_TEXTURES)
num_textures = ti.field(dtype=ti.i32, shape=())

texels = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TEXELS)
num_texels = ti.field(dtype=ti.i32, shape=())


def _validate_color(name: str, color: tuple[float, float, float]) -> None:
    if len(color) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(color)}")
    for i, component in enumerate(color):
        if component < 0.0 or component > 1.0:
            raise ValueError(f"{name} component {i} = {component} is outside [0, 1].")


def clear_textures() -> None:
    """Clear all textures and release the shared texel storage."""
    num_textures[None] = 0
    num_texels[None] = 0


def _next_texture_index() -> int:
    idx = num_textures[None]
    if idx >= MAX_TEXTURES:
        raise RuntimeError(f"Maximum number of textures ({MAX_TEXTURES}) exceeded")
    return idx


def _store_texture(
    idx: int,
    texture_type: TextureType,
    color_a: tuple[float, float, float] = (0.0, 0.0, 0.0),
    color_b: tuple[float, float, float] = (0.0, 0.0, 0.0),
    scale: float = 1.0,
    image_offset: int = 0,
    image_width: int = 0,
    image_height: int = 0,
) -> None:
    texture_types[idx] = int(texture_type)
    texture_color_a[idx] = vec3(color_a[0], color_a[1], color_a[2])
    texture_color_b[idx] = vec3(color_b[0], color_b[1], color_b[2])
    texture_scales[idx] = scale
    texture_image_offsets[idx] = image_offset
    texture_image_widths[idx] = image_width
    texture_image_heights[idx] = image_height
    num_textures[None] = idx + 1


def add_solid_texture(color: tuple[float, float, float]) -> int:
    """Add a constant-colour texture.

    Args:
        color: The colour as (R, G, B), each component in [0, 1].

    Returns:
        The texture id.

    Raises:
        ValueError: If a component is outside [0, 1].
        RuntimeError: If the maximum number of textures is exceeded.
    """
    _validate_color("Color", color)
    idx = _next_texture_index()
    _store_texture(idx, TextureType.SOLID, color_a=color)
    return idx


def add_checker_texture(
    odd: tuple[float, float, float],
    even: tuple[float, float, float],
    frequency: float = 10.0,
) -> int:
    """Add a 3-D checker texture.

    Args:
        odd: Colour used where the sine product is negative.
        even: Colour used elsewhere.
        frequency: Spatial frequency of the pattern (positive).

    Returns:
        The texture id.

    Raises:
        ValueError: If a colour component is outside [0, 1] or the frequency
            is not positive.
        RuntimeError: If the maximum number of textures is exceeded.
    """
    _validate_color("Odd color", odd)
    _validate_color("Even color", even)
    if frequency <= 0.0:
        raise ValueError(f"Checker frequency = {frequency} must be positive.")
    idx = _next_texture_index()
    _store_texture(idx, TextureType.CHECKER, color_a=odd, color_b=even, scale=frequency)
    return idx


@ti.kernel
def _upload_texels(pixels: ti.types.ndarray(dtype=ti.f32, ndim=3), offset: ti.i32):
    width = pixels.shape[1]
    for row, col in ti.ndrange(pixels.shape[0], pixels.shape[1]):
        texels[offset + row * width + col] = vec3(
            pixels[row, col, 0], pixels[row, col, 1], pixels[row, col, 2]
        )


def load_image_pixels(path: str | Path) -> np.ndarray:
    """Load an image file as float32 RGB in [0, 1] with shape (H, W, 3)."""
    with Image.open(path) as img:
        rgb = img.convert("RGB")
        return np.asarray(rgb, dtype=np.float32) / 255.0


def image_texels(source: str | Path | np.ndarray) -> np.ndarray:
    """Normalise an image source to float32 RGB in [0, 1], shape (H, W, 3).

    Args:
        source: Path to an image file readable by Pillow, or an array of
            shape (H, W, 3). uint8 arrays are scaled by 1/255, other arrays
            must already hold values in [0, 1]. Row 0 is the top of the image.

    Raises:
        ValueError: If the array has the wrong shape, is empty or holds
            values outside [0, 1].
    """
    if isinstance(source, np.ndarray):
        if source.dtype == np.uint8:
            pixels = source.astype(np.float32) / 255.0
        else:
            pixels = np.asarray(source, dtype=np.float32)
    else:
        pixels = load_image_pixels(source)

    if pixels.ndim != 3 or pixels.shape[2] != 3:
        raise ValueError(f"Image texture must have shape (H, W, 3), got {pixels.shape}")
    if pixels.shape[0] == 0 or pixels.shape[1] == 0:
        raise ValueError("Image texture must not be empty")
    if not np.all((pixels >= 0.0) & (pixels <= 1.0)):
        raise ValueError("Image texels must lie in [0, 1]; pass uint8 for 0..255 data")
    return pixels


def add_image_texture(source: str | Path | np.ndarray) -> int:
    """Add an image texture and return its id.

    source is anything image_texels() accepts.

    Raises:
        ValueError: If the image is malformed (see image_texels).
        RuntimeError: If the texture or texel capacity is exceeded.
    """
    pixels = image_texels(source)
    height, width = int(pixels.shape[0]), int(pixels.shape[1])

    offset = num_texels[None]
    if offset + width * height > MAX_TEXELS:
        raise RuntimeError(
            f"Image texture of {width}x{height} exceeds texel capacity ({MAX_TEXELS})"
        )
    idx = _next_texture_index()

    _upload_texels(np.ascontiguousarray(pixels, dtype=np.float32), offset)
    num_texels[None] = offset + width * height
    _store_texture(
        idx,
        TextureType.IMAGE,
        image_offset=offset,
        image_width=width,
        image_height=height,
    )
    logger.debug("image texture %d: %dx%d at texel offset %d", idx, width, height, offset)
    return idx


def get_texture_count() -> int:
    """Get the number of textures in the registry."""
    return int(num_textures[None])


@ti.func
def _checker_value(texture_id: ti.i32, p: vec3) -> vec3:
    f = texture_scales[texture_id]
    sines = ti.sin(f * p.x) * ti.sin(f * p.y) * ti.sin(f * p.z)
    result = texture_color_b[texture_id]
    if sines < 0.0:
        result = texture_color_a[texture_id]
    return result


@ti.func
def _image_value(texture_id: ti.i32, u: ti.f32, v: ti.f32) -> vec3:
    width = texture_image_widths[texture_id]
    height = texture_image_heights[texture_id]
    uc = tm.clamp(u, 0.0, 1.0)
    # Image rows run top to bottom while v runs bottom to top
    vc = 1.0 - tm.clamp(v, 0.0, 1.0)
    x = ti.min(ti.cast(uc * width, ti.i32), width - 1)
    y = ti.min(ti.cast(vc * height, ti.i32), height - 1)
    return texels[texture_image_offsets[texture_id] + y * width + x]


@ti.func
def texture_value(texture_id: ti.i32, u: ti.f32, v: ti.f32, p: vec3) -> vec3:
    """Evaluate a texture at a surface point.

    Args:
        texture_id: The texture id.
        u: Surface coordinate in [0, 1].
        v: Surface coordinate in [0, 1].
        p: The hit point in world space.

    Returns:
        The RGB colour of the texture at the point.
    """
    tex_type = texture_types[texture_id]
    result = texture_color_a[texture_id]
    if tex_type == int(TextureType.CHECKER):
        result = _checker_value(texture_id, p)
    elif tex_type == int(TextureType.IMAGE):
        result = _image_value(texture_id, u, v)
    return result

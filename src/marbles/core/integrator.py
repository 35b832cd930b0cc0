"""Light transport integrator and render target.

This module implements the rendering kernel: a ray is traced from the camera
through the scene, bouncing off surfaces according to their material, until
it escapes to the background, is absorbed, or runs out of bounces.

The recursive definition

    color(ray, 0)     = black
    color(ray, depth) = background(ray)                      on a miss
                      = emitted + attenuation * color(scattered, depth - 1)
                                                             on a scatter
                      = emitted                              on absorption

is evaluated iteratively with a throughput accumulator (the product of the
attenuations met so far), which is how kernels express bounded recursion.

Key features:
    - Material dispatch (Lambertian, Metal, Dielectric, DiffuseLight)
    - Sky gradient background, configurable per scene
    - Progressive sample accumulation into a preallocated buffer
    - Jittered (anti-aliased) or pixel-center primary rays

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from marbles.core.integrator import render_image, setup_render_target
    >>> from marbles.scene.presets import create_three_spheres_scene
    >>> from marbles.camera.camera import setup_camera
    >>>
    >>> scene, camera = create_three_spheres_scene()
    >>> setup_camera(camera)
    >>> setup_render_target(camera.image_width, camera.image_height)
    >>> render_image(num_samples=100, max_depth=50)
"""

import logging

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from marbles.camera.camera import get_ray, get_ray_center
from marbles.core.interval import T_MAX, T_MIN, make_interval
from marbles.core.ray import Ray, lerp, normalize
from marbles.geometry.sphere import HitRecord
from marbles.materials.dielectric import scatter_dielectric_by_id
from marbles.materials.diffuse_light import (
    get_diffuse_light_emission_by_id,
    scatter_diffuse_light_by_id,
)
from marbles.materials.lambertian import scatter_lambertian_by_id
from marbles.materials.metal import scatter_metal_by_id
from marbles.materials.scatter import ScatterRecord, make_absorbed, scattered_ray
from marbles.scene.intersection import intersect_scene
from marbles.scene.manager import (
    DEFAULT_BACKGROUND_BOTTOM,
    DEFAULT_BACKGROUND_TOP,
    MaterialType,
    get_material_type,
    get_material_type_index,
)

logger = logging.getLogger(__name__)

vec3 = tm.vec3

DEFAULT_MAX_DEPTH = 50

# -----------------------------------------------------------------------------
# Background
# -----------------------------------------------------------------------------

_background_custom = ti.field(dtype=ti.i32, shape=())
_background_bottom = ti.Vector.field(3, dtype=ti.f32, shape=())
_background_top = ti.Vector.field(3, dtype=ti.f32, shape=())


def setup_background(
    bottom: tuple[float, float, float],
    top: tuple[float, float, float],
) -> None:
    """Set the gradient seen by rays that leave the scene.

    Args:
        bottom: Colour for rays pointing straight down.
        top: Colour for rays pointing straight up.
    """
    _background_bottom[None] = [bottom[0], bottom[1], bottom[2]]
    _background_top[None] = [top[0], top[1], top[2]]
    _background_custom[None] = 1


def reset_background() -> None:
    """Restore the default white to sky-blue gradient."""
    _background_custom[None] = 0


@ti.func
def background_color(direction: vec3) -> vec3:
    """Blend the background gradient by the height of the unit direction."""
    unit_direction = normalize(direction)
    a = 0.5 * (unit_direction.y + 1.0)
    bottom = vec3(
        DEFAULT_BACKGROUND_BOTTOM[0], DEFAULT_BACKGROUND_BOTTOM[1], DEFAULT_BACKGROUND_BOTTOM[2]
    )
    top = vec3(DEFAULT_BACKGROUND_TOP[0], DEFAULT_BACKGROUND_TOP[1], DEFAULT_BACKGROUND_TOP[2])
    if _background_custom[None] == 1:
        bottom = _background_bottom[None]
        top = _background_top[None]
    return lerp(bottom, top, a)


# -----------------------------------------------------------------------------
# Render Target
# -----------------------------------------------------------------------------

# Buffers are allocated once at the largest size; kernels only visit the
# active width x height corner.
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Running mean per pixel, indexed [i, j] with j = 0 the top row
_color_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

_render_target_ready = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Make width x height the active image size and zero the buffers.

    Raises:
        ValueError: If either side is below 1 or above the preallocated
            MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT.
    """
    if width < 1 or height < 1:
        raise ValueError(f"Image dimensions ({width}x{height}) must be positive")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) are larger than the "
            f"{MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT} render target"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_ready[None] = 1
    clear_render_target()


def clear_render_target() -> None:
    """Zero the accumulated colour and sample counts; the size is kept."""
    _color_buffer.fill(0.0)
    _sample_count.fill(0)


def reset_render_target() -> None:
    """Zero the buffers and forget the active size."""
    clear_render_target()
    _render_target_ready[None] = 0


def get_image_dimensions() -> tuple[int, int]:
    """(width, height) of the active image."""
    return int(_image_width[None]), int(_image_height[None])


def _require_render_target() -> None:
    if _render_target_ready[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# -----------------------------------------------------------------------------
# Material Dispatch
# -----------------------------------------------------------------------------


@ti.func
def _scatter_material(material_id: ti.i32, ray: Ray, rec: HitRecord) -> ScatterRecord:
    """Scatter off whatever material the hit carries; unknown ids absorb."""
    kind = get_material_type(material_id)
    slot = get_material_type_index(material_id)

    srec = make_absorbed()
    if kind == int(MaterialType.LAMBERTIAN):
        srec = scatter_lambertian_by_id(slot, ray, rec)
    elif kind == int(MaterialType.METAL):
        srec = scatter_metal_by_id(slot, ray, rec)
    elif kind == int(MaterialType.DIELECTRIC):
        srec = scatter_dielectric_by_id(slot, ray, rec)
    elif kind == int(MaterialType.DIFFUSE_LIGHT):
        srec = scatter_diffuse_light_by_id(slot, ray, rec)
    return srec


@ti.func
def _emitted(material_id: ti.i32) -> vec3:
    """Radiance leaving the hit surface on its own; black unless it is a light."""
    radiance = vec3(0.0)
    if get_material_type(material_id) == int(MaterialType.DIFFUSE_LIGHT):
        radiance = get_diffuse_light_emission_by_id(get_material_type_index(material_id))
    return radiance


# -----------------------------------------------------------------------------
# Path Tracing
# -----------------------------------------------------------------------------


@ti.func
def trace_ray(ray: Ray, max_depth: ti.i32) -> vec3:
    """Colour carried back along ray, following at most max_depth casts.

    Every cast uses the interval (T_MIN, T_MAX). A path ends when it escapes
    (adding the background), when a material absorbs it, or when the casts
    run out, in which case it adds nothing more. max_depth <= 0 is black.
    NaNs from degenerate geometry are passed through to the pixel.
    """
    color = vec3(0.0)
    throughput = vec3(1.0)
    current = ray

    # Kernels cannot break out of this loop, so a finished path goes idle
    active = 1

    for _ in range(max_depth):
        if active == 1:
            rec = intersect_scene(current, make_interval(T_MIN, T_MAX))

            if rec.hit == 0:
                color += throughput * background_color(current.direction)
                active = 0
            else:
                color += throughput * _emitted(rec.material_id)
                srec = _scatter_material(rec.material_id, current, rec)

                if srec.did_scatter == 0:
                    active = 0
                else:
                    throughput *= srec.attenuation
                    current = scattered_ray(srec)

    return color


@ti.func
def _camera_ray(i: ti.i32, j: ti.i32, jitter: ti.i32) -> Ray:
    ray = get_ray_center(i, j)
    if jitter == 1:
        ray = get_ray(i, j)
    return ray


@ti.kernel
def _accumulate_pass(width: ti.i32, height: ti.i32, max_depth: ti.i32, jitter: ti.i32):
    # Pixels run in parallel; each one owns its buffer slot
    for i, j in ti.ndrange(width, height):
        color = trace_ray(_camera_ray(i, j, jitter), max_depth)

        _sample_count[i, j] += 1
        n = ti.cast(_sample_count[i, j], ti.f32)
        _color_buffer[i, j] += (color - _color_buffer[i, j]) / n


@ti.kernel
def _trace_pixel(pixel_i: ti.i32, pixel_j: ti.i32, max_depth: ti.i32, jitter: ti.i32) -> vec3:
    return trace_ray(_camera_ray(pixel_i, pixel_j, jitter), max_depth)


# -----------------------------------------------------------------------------
# Python API
# -----------------------------------------------------------------------------


def render_sample(
    pixel_i: int,
    pixel_j: int,
    max_depth: int = DEFAULT_MAX_DEPTH,
    jitter: bool = True,
) -> tuple[float, float, float]:
    """Trace one sample through pixel (pixel_i, pixel_j) without accumulating.

    pixel_i counts columns from the left and pixel_j rows from the top.
    With jitter=False the ray goes through the pixel center.

    Raises:
        RuntimeError: If the render target is not set up.
    """
    _require_render_target()
    color = _trace_pixel(pixel_i, pixel_j, max_depth, 1 if jitter else 0)
    return (float(color[0]), float(color[1]), float(color[2]))


def render_image(
    num_samples: int = 1,
    max_depth: int = DEFAULT_MAX_DEPTH,
    jitter: bool = True,
) -> None:
    """Add num_samples samples to every pixel of the active image.

    Each sample is one parallel pass over all pixels. Calls accumulate
    until the render target is cleared.

    Raises:
        RuntimeError: If the render target is not set up.
    """
    _require_render_target()

    width, height = get_image_dimensions()
    jitter_flag = 1 if jitter else 0
    for _ in range(num_samples):
        _accumulate_pass(width, height, max_depth, jitter_flag)

    logger.debug("rendered %d spp at %dx%d (max_depth=%d)", num_samples, width, height, max_depth)


def get_total_samples() -> int:
    """Samples per pixel accumulated so far (every pixel has the same count).

    Raises:
        RuntimeError: If the render target is not set up.
    """
    _require_render_target()
    return int(_sample_count[0, 0])


def get_linear_image_numpy() -> npt.NDArray[np.float32]:
    """Copy out the accumulated image as (height, width, 3) float32.

    Values are the raw linear means: not clamped, not gamma encoded.

    Raises:
        RuntimeError: If the render target is not set up.
    """
    _require_render_target()

    width, height = get_image_dimensions()
    active = _color_buffer.to_numpy()[:width, :height, :]
    return np.ascontiguousarray(active.transpose(1, 0, 2), dtype=np.float32)

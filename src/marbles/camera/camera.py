"""Perspective camera with optional defocus blur.

The camera is placed with lookfrom, lookat and vup and framed by a vertical
field of view. setup_camera() turns a Camera into a right-handed frame
(u right, v up, w backward from lookat to lookfrom) plus a pixel grid, and
stores them in 0-d fields that get_ray() and get_ray_center() read inside
kernels. A positive defocus_angle turns the pinhole into a thin lens whose
rays start on a disk around lookfrom.

The viewport sits at focus_dist in front of the camera. Pixel (0, 0) is the
top-left pixel; i grows to the right and j grows downward, so the per-pixel
step along the viewport's vertical edge points down (-v).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from marbles.camera.camera import Camera, setup_camera, get_ray
    >>>
    >>> camera = Camera(
    ...     lookfrom=(0.0, 0.0, 0.0),
    ...     lookat=(0.0, 0.0, -1.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=90.0,
    ...     aspect_ratio=16.0 / 9.0,
    ...     image_width=400,
    ... )
    >>> setup_camera(camera)
    >>>
    >>> @ti.kernel
    ... def render():
    ...     ray = get_ray(200, 112)  # Jittered ray through pixel (200, 112)
"""

import logging
import math
from dataclasses import dataclass

import numpy as np
import taichi as ti

from marbles.core.ray import Ray, make_ray, random_in_unit_disk, vec3

logger = logging.getLogger(__name__)


@dataclass
class Camera:
    """Where the camera sits and what it frames.

    Attributes:
        lookfrom: Eye position.
        lookat: Point at the center of the image.
        vup: World direction that should appear upward.
        vfov: Vertical field of view in degrees.
        aspect_ratio: image_width / image_height before rounding.
        image_width: Output width in pixels.
        focus_dist: Distance from lookfrom to the plane of perfect focus.
        defocus_angle: Cone angle in degrees of rays through each pixel.
            0 disables defocus blur (pinhole camera).
    """

    lookfrom: tuple[float, float, float] = (0.0, 0.0, 0.0)
    lookat: tuple[float, float, float] = (0.0, 0.0, -1.0)
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 90.0
    aspect_ratio: float = 16.0 / 9.0
    image_width: int = 400
    focus_dist: float = 1.0
    defocus_angle: float = 0.0

    @property
    def image_height(self) -> int:
        """Image height in pixels, at least 1."""
        return max(1, int(self.image_width / self.aspect_ratio))

    def validate(self) -> None:
        """Check the configuration.

        Raises:
            ValueError: If a parameter is out of range or the view basis is
                degenerate.
        """
        if self.image_width < 1:
            raise ValueError(f"image_width must be at least 1, got {self.image_width}")
        if self.aspect_ratio <= 0.0:
            raise ValueError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if not 0.0 < self.vfov < 180.0:
            raise ValueError(f"vfov must be in (0, 180) degrees, got {self.vfov}")
        if self.focus_dist <= 0.0:
            raise ValueError(f"focus_dist must be positive, got {self.focus_dist}")
        if self.defocus_angle < 0.0:
            raise ValueError(f"defocus_angle must be non-negative, got {self.defocus_angle}")

        view = np.subtract(self.lookfrom, self.lookat)
        if np.linalg.norm(view) == 0.0:
            raise ValueError("lookfrom and lookat must differ")
        if np.linalg.norm(np.cross(self.vup, view)) == 0.0:
            raise ValueError("vup must not be parallel to the view direction")


# -----------------------------------------------------------------------------
# Device-side state
# -----------------------------------------------------------------------------

_camera_center = ti.Vector.field(3, dtype=ti.f32, shape=())

_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())

# Pixel grid on the viewport
_pixel00_loc = ti.Vector.field(3, dtype=ti.f32, shape=())  # Center of pixel (0, 0)
_pixel_delta_u = ti.Vector.field(3, dtype=ti.f32, shape=())  # Step to the next column
_pixel_delta_v = ti.Vector.field(3, dtype=ti.f32, shape=())  # Step to the next row

# Defocus disk
_defocus_disk_u = ti.Vector.field(3, dtype=ti.f32, shape=())
_defocus_disk_v = ti.Vector.field(3, dtype=ti.f32, shape=())
_defocus_enabled = ti.field(dtype=ti.i32, shape=())


def setup_camera(camera: Camera) -> None:
    """Validate camera and load its frame, pixel grid and lens into the fields.

    Call again whenever the camera changes; kernels always read the most
    recent setup.

    Raises:
        ValueError: If the configuration is invalid (see Camera.validate).
    """
    camera.validate()

    image_width = camera.image_width
    image_height = camera.image_height

    h = math.tan(math.radians(camera.vfov) / 2.0)

    # The viewport width follows the integer image size, not aspect_ratio,
    # so pixels stay square after rounding the height
    viewport_height = 2.0 * h * camera.focus_dist
    viewport_width = viewport_height * image_width / image_height

    lookfrom = np.array(camera.lookfrom, dtype=np.float64)
    lookat = np.array(camera.lookat, dtype=np.float64)
    vup = np.array(camera.vup, dtype=np.float64)

    w = lookfrom - lookat
    w = w / np.linalg.norm(w)
    u = np.cross(vup, w)
    u = u / np.linalg.norm(u)
    v = np.cross(w, u)

    viewport_u = viewport_width * u
    viewport_v = viewport_height * -v

    pixel_delta_u = viewport_u / image_width
    pixel_delta_v = viewport_v / image_height

    viewport_upper_left = lookfrom - camera.focus_dist * w - viewport_u / 2.0 - viewport_v / 2.0
    pixel00_loc = viewport_upper_left + 0.5 * (pixel_delta_u + pixel_delta_v)

    defocus_radius = camera.focus_dist * math.tan(math.radians(camera.defocus_angle / 2.0))

    _camera_center[None] = lookfrom.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()
    _pixel00_loc[None] = pixel00_loc.tolist()
    _pixel_delta_u[None] = pixel_delta_u.tolist()
    _pixel_delta_v[None] = pixel_delta_v.tolist()
    _defocus_disk_u[None] = (defocus_radius * u).tolist()
    _defocus_disk_v[None] = (defocus_radius * v).tolist()
    _defocus_enabled[None] = 1 if camera.defocus_angle > 0.0 else 0

    logger.debug(
        "camera: %dx%d vfov=%s focus_dist=%s defocus_angle=%s",
        image_width,
        image_height,
        camera.vfov,
        camera.focus_dist,
        camera.defocus_angle,
    )


# -----------------------------------------------------------------------------
# Ray generation
# -----------------------------------------------------------------------------


@ti.func
def pixel_sample(i: ti.i32, j: ti.i32, offset_u: ti.f32, offset_v: ti.f32) -> vec3:
    """Point on the viewport at a pixel plus a sub-pixel offset.

    Offsets are in pixels relative to the pixel center.
    """
    return (
        _pixel00_loc[None]
        + (ti.cast(i, ti.f32) + offset_u) * _pixel_delta_u[None]
        + (ti.cast(j, ti.f32) + offset_v) * _pixel_delta_v[None]
    )


@ti.func
def defocus_disk_sample() -> vec3:
    """Random point on the camera's defocus disk."""
    p = random_in_unit_disk()
    return _camera_center[None] + p.x * _defocus_disk_u[None] + p.y * _defocus_disk_v[None]


@ti.func
def get_ray(i: ti.i32, j: ti.i32) -> Ray:
    """Jittered ray through pixel (i, j), column i from the left, row j from the top.

    The target point is uniformly distributed over the pixel's square
    ([-0.5, 0.5) pixel deltas around its center). With defocus enabled the
    origin is a random point on the defocus disk; otherwise it is the camera
    center. The direction is not normalized.
    """
    target = pixel_sample(i, j, ti.random(ti.f32) - 0.5, ti.random(ti.f32) - 0.5)

    origin = _camera_center[None]
    if _defocus_enabled[None] == 1:
        origin = defocus_disk_sample()

    return make_ray(origin, target - origin)


@ti.func
def get_ray_center(i: ti.i32, j: ti.i32) -> Ray:
    """Ray from the camera center through the exact center of pixel (i, j).

    Ignores defocus, so BASIC renders are deterministic.
    """
    origin = _camera_center[None]
    return make_ray(origin, pixel_sample(i, j, 0.0, 0.0) - origin)


@ti.func
def get_camera_center() -> vec3:
    """Eye position set by the last setup_camera() call."""
    return _camera_center[None]


def get_camera_info() -> dict[str, tuple[float, float, float]]:
    """Read the frame back from the fields, keyed by center, u, v, w, pixel00, pixel_delta_u,
        pixel_delta_v, defocus_disk_u and defocus_disk_v. Used by tests and
    debug logging.
    """
    fields = {
        "center": _camera_center,
        "u": _camera_u,
        "v": _camera_v,
        "w": _camera_w,
        "pixel00": _pixel00_loc,
        "pixel_delta_u": _pixel_delta_u,
        "pixel_delta_v": _pixel_delta_v,
        "defocus_disk_u": _defocus_disk_u,
        "defocus_disk_v": _defocus_disk_v,
    }
    info = {}
    for name, value in fields.items():
        vec = value[None]
        info[name] = (float(vec[0]), float(vec[1]), float(vec[2]))
    return info

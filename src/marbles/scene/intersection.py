"""Scene-level sphere storage and nearest-hit queries.

Spheres are stored in Taichi fields (Structure-of-Arrays) so the whole scene
can be scanned from inside a kernel. Each sphere carries the unified material
id it shares with any other sphere using the same material.

The nearest-hit search is a single linear pass: every sphere is tested
against an interval whose upper bound shrinks to the closest t found so far,
so the surviving record is the globally nearest hit inside the original
interval. When two spheres report bit-identical t the first one stored wins.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from marbles.scene.intersection import add_sphere, clear_scene
    >>> clear_scene()
    >>> add_sphere((0.0, 0.0, -1.0), 0.5, material_id=0)
    0
"""

import logging

import taichi as ti

from marbles.core.interval import Interval, with_max
from marbles.core.ray import Ray
from marbles.geometry.sphere import HitRecord, Sphere, hit_sphere, make_miss_record

logger = logging.getLogger(__name__)

MAX_SPHERES = 1024

# One slot per sphere across parallel fields
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Empty the sphere list. Registered materials are left alone."""
    num_spheres[None] = 0


def add_sphere(
    center: tuple[float, float, float],
    radius: float,
    material_id: int = 0,
) -> int:
    """Append a sphere and return its slot.

    No validation happens here; SceneManager.add_sphere checks the radius
    and material id before calling this.

    Raises:
        RuntimeError: If all MAX_SPHERES slots are taken.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = [float(center[0]), float(center[1]), float(center[2])]
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    logger.debug("sphere %d: center=%s radius=%s material=%d", idx, center, radius, material_id)
    return idx


def get_sphere_count() -> int:
    """Number of spheres currently stored."""
    return int(num_spheres[None])


@ti.func
def get_sphere(index: ti.i32) -> Sphere:
    """Assemble the Sphere struct stored at an index."""
    return Sphere(
        center=sphere_centers[index],
        radius=sphere_radii[index],
        material_id=sphere_material_ids[index],
    )


@ti.func
def intersect_scene(ray: Ray, interval: Interval) -> HitRecord:
    """Nearest hit along ray within interval, or a miss record (hit == 0)."""
    closest_so_far = interval.max
    result = make_miss_record()

    for i in range(num_spheres[None]):
        rec = hit_sphere(ray, get_sphere(i), with_max(interval, closest_so_far))
        if rec.hit == 1:
            closest_so_far = rec.t
            result = rec

    return result

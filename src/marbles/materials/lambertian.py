"""Ideal diffuse surfaces.

A Lambertian surface scatters toward normal + a random unit vector, which
distributes outgoing directions with a cos(theta) density about the normal.
With that sampling the BRDF and cosine terms cancel against the PDF, so the
attenuation is just the surface albedo.

The albedo is not stored directly: each Lambertian material references a
texture, and the albedo is that texture evaluated at the hit's (u, v, point).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from marbles.materials.texture import add_solid_texture
    >>> from marbles.materials.lambertian import add_lambertian_material
    >>> mat_idx = add_lambertian_material(add_solid_texture((0.8, 0.3, 0.3)))
    >>> # srec = scatter_lambertian_by_id(mat_idx, ray, rec) within a kernel
"""

import taichi as ti
import taichi.math as tm

from marbles.core.ray import Ray, near_zero, random_unit_vector
from marbles.geometry.sphere import HitRecord
from marbles.materials.scatter import ScatterRecord, make_scattered
from marbles.materials.texture import get_texture_count, texture_value

vec3 = tm.vec3


@ti.func
def scatter_lambertian(albedo: vec3, rec: HitRecord) -> ScatterRecord:
    """Scatter toward rec.normal + random_unit_vector().

    A sum that nearly cancels to zero falls back to the normal. Always
    scatters, attenuating by albedo.
    """
    scatter_direction = rec.normal + random_unit_vector()

    if near_zero(scatter_direction):
        scatter_direction = rec.normal

    return make_scattered(albedo, rec.point, scatter_direction)


# -----------------------------------------------------------------------------
# Registry
# -----------------------------------------------------------------------------

MAX_LAMBERTIAN_MATERIALS = 512

lambertian_texture_ids = ti.field(dtype=ti.i32, shape=MAX_LAMBERTIAN_MATERIALS)
num_lambertian_materials = ti.field(dtype=ti.i32, shape=())


def clear_lambertian_materials() -> None:
    """Forget every registered Lambertian. Slots are reused from index 0."""
    num_lambertian_materials[None] = 0


def add_lambertian_material(texture_id: int) -> int:
    """Register a Lambertian that reads its albedo from texture_id.

    Returns the index among Lambertians.

    Raises:
        ValueError: If texture_id is not a registered texture.
        RuntimeError: If all MAX_LAMBERTIAN_MATERIALS slots are taken.
    """
    if texture_id < 0 or texture_id >= get_texture_count():
        raise ValueError(
            f"Invalid texture_id {texture_id}. "
            f"Valid range is [0, {get_texture_count() - 1}]."
        )

    idx = num_lambertian_materials[None]
    if idx >= MAX_LAMBERTIAN_MATERIALS:
        raise RuntimeError(
            f"Maximum number of Lambertian materials ({MAX_LAMBERTIAN_MATERIALS}) exceeded"
        )

    lambertian_texture_ids[idx] = texture_id
    num_lambertian_materials[None] = idx + 1
    return idx


def get_lambertian_material_count() -> int:
    """Number of Lambertians registered since the last clear."""
    return int(num_lambertian_materials[None])


@ti.func
def get_lambertian_texture_id(material_idx: ti.i32) -> ti.i32:
    """Texture id feeding the albedo of the Lambertian at material_idx."""
    return lambertian_texture_ids[material_idx]


@ti.func
def get_lambertian_albedo(material_idx: ti.i32, rec: HitRecord) -> vec3:
    """Texture color of material_idx at the hit's (u, v, point)."""
    return texture_value(get_lambertian_texture_id(material_idx), rec.u, rec.v, rec.point)


@ti.func
def scatter_lambertian_by_id(material_idx: ti.i32, ray: Ray, rec: HitRecord) -> ScatterRecord:
    """scatter_lambertian with the albedo looked up at the hit. ray is unused."""
    return scatter_lambertian(get_lambertian_albedo(material_idx, rec), rec)

"""Emissive surfaces.

A diffuse light emits a constant radiance, color * intensity, from every
point of its surface and in every direction. It never scatters, so a path
that reaches a light ends there after collecting the emission.

There is no explicit light sampling: emissive surfaces only contribute when
a path happens to hit them.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from marbles.materials.diffuse_light import add_diffuse_light_material
    >>> lamp = add_diffuse_light_material(color=(1.0, 0.9, 0.7), intensity=4.0)
"""

import taichi as ti
import taichi.math as tm

from marbles.core.ray import Ray
from marbles.geometry.sphere import HitRecord
from marbles.materials.scatter import ScatterRecord, make_absorbed

vec3 = tm.vec3


@ti.func
def get_diffuse_light_emission(color: vec3, intensity: ti.f32) -> vec3:
    """Emitted radiance, color * intensity."""
    return color * intensity


# -----------------------------------------------------------------------------
# Registry
# -----------------------------------------------------------------------------

MAX_DIFFUSE_LIGHT_MATERIALS = 64

diffuse_light_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_DIFFUSE_LIGHT_MATERIALS)
diffuse_light_intensities = ti.field(dtype=ti.f32, shape=MAX_DIFFUSE_LIGHT_MATERIALS)
num_diffuse_light_materials = ti.field(dtype=ti.i32, shape=())


def clear_diffuse_light_materials() -> None:
    """Forget every registered light. Slots are reused from index 0."""
    num_diffuse_light_materials[None] = 0


def add_diffuse_light_material(
    color: tuple[float, float, float],
    intensity: float = 1.0,
) -> int:
    """Register a light and return its index among lights.

    Color components may exceed 1.0.

    Raises:
        ValueError: If a color component or the intensity is negative.
        RuntimeError: If all MAX_DIFFUSE_LIGHT_MATERIALS slots are taken.
    """
    for i, component in enumerate(color):
        if component < 0.0:
            raise ValueError(f"Emission color component {i} = {component} is negative.")

    if intensity < 0.0:
        raise ValueError(f"Emission intensity = {intensity} is negative.")

    idx = num_diffuse_light_materials[None]
    if idx >= MAX_DIFFUSE_LIGHT_MATERIALS:
        raise RuntimeError(
            f"Maximum number of diffuse light materials "
            f"({MAX_DIFFUSE_LIGHT_MATERIALS}) exceeded"
        )

    diffuse_light_colors[idx] = vec3(color[0], color[1], color[2])
    diffuse_light_intensities[idx] = intensity
    num_diffuse_light_materials[None] = idx + 1
    return idx


def get_diffuse_light_material_count() -> int:
    """Number of lights registered since the last clear."""
    return int(num_diffuse_light_materials[None])


@ti.func
def get_diffuse_light_color(material_idx: ti.i32) -> vec3:
    """Emission color of the light at material_idx, before intensity."""
    return diffuse_light_colors[material_idx]


@ti.func
def get_diffuse_light_intensity(material_idx: ti.i32) -> ti.f32:
    """Intensity multiplier of the light at material_idx."""
    return diffuse_light_intensities[material_idx]


@ti.func
def get_diffuse_light_emission_by_id(material_idx: ti.i32) -> vec3:
    """Radiance emitted by the light stored at material_idx."""
    return get_diffuse_light_emission(
        get_diffuse_light_color(material_idx), get_diffuse_light_intensity(material_idx)
    )


@ti.func
def scatter_diffuse_light_by_id(material_idx: ti.i32, ray: Ray, rec: HitRecord) -> ScatterRecord:
    """Lights absorb every incoming ray."""
    return make_absorbed()

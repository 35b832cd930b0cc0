"""Clear refracting surfaces such as glass, water and air bubbles.

A hit either reflects or refracts. Reflection is forced when Snell's law
has no solution (total internal reflection) and otherwise chosen with the
Schlick reflectance as its probability, so glass turns mirror-like at
grazing angles. Attenuation is always white.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from marbles.materials.dielectric import add_dielectric_material
    >>> glass = add_dielectric_material(1.5)
    >>> bubble = add_dielectric_material(1.0 / 1.5)
"""

import taichi as ti
import taichi.math as tm

from marbles.core.ray import Ray, normalize, reflect, reflectance, refract
from marbles.geometry.sphere import HitRecord
from marbles.materials.scatter import ScatterRecord, make_scattered

vec3 = tm.vec3


@ti.func
def refraction_ratio(ior: ti.f32, front_face: ti.i32) -> ti.f32:
    """Ratio n_incident / n_transmitted for a ray crossing the surface.

    Entering from outside (front_face=1) gives 1/ior, leaving gives ior.
    """
    ratio = 1.0 / ior
    if front_face == 0:
        ratio = ior
    return ratio


@ti.func
def will_reflect(ior: ti.f32, ray: Ray, rec: HitRecord) -> ti.i32:
    """1 when the hit is past the critical angle and cannot refract."""
    ratio = refraction_ratio(ior, rec.front_face)
    cos_theta = tm.min(-tm.dot(normalize(ray.direction), rec.normal), 1.0)
    sin_theta = tm.sqrt(1.0 - cos_theta * cos_theta)
    return ratio * sin_theta > 1.0


@ti.func
def scatter_dielectric(ior: ti.f32, ray: Ray, rec: HitRecord) -> ScatterRecord:
    """Reflect or refract the incoming ray at rec.

    Always scatters. Consumes one uniform random number for the Fresnel
    choice.
    """
    ratio = refraction_ratio(ior, rec.front_face)
    unit_direction = normalize(ray.direction)
    cos_theta = tm.min(-tm.dot(unit_direction, rec.normal), 1.0)

    direction = vec3(0.0)
    if will_reflect(ior, ray, rec) or reflectance(cos_theta, ratio) > ti.random(ti.f32):
        direction = reflect(unit_direction, rec.normal)
    else:
        direction = refract(unit_direction, rec.normal, ratio)

    return make_scattered(vec3(1.0), rec.point, direction)


# -----------------------------------------------------------------------------
# Registry
# -----------------------------------------------------------------------------

MAX_DIELECTRIC_MATERIALS = 256

dielectric_iors = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Forget every registered dielectric. Slots are reused from index 0."""
    num_dielectric_materials[None] = 0


def add_dielectric_material(ior: float = 1.5) -> int:
    """Register a dielectric and return its index among dielectrics.

    An ior below 1.0 is allowed and models a pocket of lower index, for
    instance a hollow inside a glass shell.

    Raises:
        ValueError: If ior is zero or negative.
        RuntimeError: If all MAX_DIELECTRIC_MATERIALS slots are taken.
    """
    if ior <= 0.0:
        raise ValueError(f"Index of refraction = {ior} must be positive.")

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_iors[idx] = ior
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Number of dielectrics registered since the last clear."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ior(material_idx: ti.i32) -> ti.f32:
    """Index of refraction of a registered dielectric.

    Args:
        material_idx: Slot among dielectrics, not the scene-wide material id.

    Returns:
        The ior passed to add_dielectric_material.
    """
    return dielectric_iors[material_idx]


@ti.func
def scatter_dielectric_by_id(material_idx: ti.i32, ray: Ray, rec: HitRecord) -> ScatterRecord:
    """scatter_dielectric using the ior stored at material_idx."""
    return scatter_dielectric(get_dielectric_ior(material_idx), ray, rec)

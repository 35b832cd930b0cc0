"""Mirror-like metal surfaces with optional fuzz.

The incident direction is mirrored about the normal, R = I - 2(I . N)N, and
then pushed by a random unit vector scaled by fuzz. Polished metal uses
fuzz 0; brushed metal uses something around 0.3. A pushed direction that
points back into the surface is absorbed.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from marbles.materials.metal import add_metal_material
    >>> gold = add_metal_material((0.8, 0.6, 0.2), fuzz=0.0)
"""

import taichi as ti
import taichi.math as tm

from marbles.core.ray import Ray, normalize, random_unit_vector, reflect
from marbles.geometry.sphere import HitRecord
from marbles.materials.scatter import ScatterRecord, make_absorbed, make_scattered

vec3 = tm.vec3


@ti.func
def scatter_metal(albedo: vec3, fuzz: ti.f32, ray: Ray, rec: HitRecord) -> ScatterRecord:
    """Reflect the incoming ray at rec, perturbed by fuzz.

    The scattered direction is not renormalized. Returns an absorbed record
    when dot(direction, normal) <= 0, otherwise attenuation is the albedo.
    """
    reflected = reflect(normalize(ray.direction), rec.normal)
    scattered_direction = reflected + fuzz * random_unit_vector()

    result = make_absorbed()
    if tm.dot(scattered_direction, rec.normal) > 0.0:
        result = make_scattered(albedo, rec.point, scattered_direction)

    return result


# -----------------------------------------------------------------------------
# Registry
# -----------------------------------------------------------------------------

MAX_METAL_MATERIALS = 256

metal_albedos = ti.Vector.field(3, dtype=ti.f32, shape=MAX_METAL_MATERIALS)
metal_fuzzes = ti.field(dtype=ti.f32, shape=MAX_METAL_MATERIALS)
num_metal_materials = ti.field(dtype=ti.i32, shape=())


def clear_metal_materials() -> None:
    """Forget every registered metal. Slots are reused from index 0."""
    num_metal_materials[None] = 0


def add_metal_material(
    albedo: tuple[float, float, float],
    fuzz: float = 0.0,
) -> int:
    """Register a metal and return its index among metals.

    Raises:
        ValueError: If an albedo component or fuzz lies outside [0, 1].
        RuntimeError: If all MAX_METAL_MATERIALS slots are taken.
    """
    for i, component in enumerate(albedo):
        if not 0.0 <= component <= 1.0:
            raise ValueError(f"Albedo component {i} = {component} is outside [0, 1].")

    if not 0.0 <= fuzz <= 1.0:
        raise ValueError(f"Fuzz = {fuzz} is outside [0, 1].")

    idx = num_metal_materials[None]
    if idx >= MAX_METAL_MATERIALS:
        raise RuntimeError(f"Maximum number of metal materials ({MAX_METAL_MATERIALS}) exceeded")

    metal_albedos[idx] = vec3(albedo[0], albedo[1], albedo[2])
    metal_fuzzes[idx] = fuzz
    num_metal_materials[None] = idx + 1
    return idx


def get_metal_material_count() -> int:
    """Number of metals registered since the last clear."""
    return int(num_metal_materials[None])


@ti.func
def get_metal_albedo(material_idx: ti.i32) -> vec3:
    """Reflection tint of a registered metal.

    Args:
        material_idx: Slot among metals, not the scene-wide material id.

    Returns:
        The RGB albedo.
    """
    return metal_albedos[material_idx]


@ti.func
def get_metal_fuzz(material_idx: ti.i32) -> ti.f32:
    """Fuzz in [0, 1] of the metal at material_idx."""
    return metal_fuzzes[material_idx]


@ti.func
def scatter_metal_by_id(material_idx: ti.i32, ray: Ray, rec: HitRecord) -> ScatterRecord:
    """scatter_metal using the albedo and fuzz stored at material_idx."""
    return scatter_metal(get_metal_albedo(material_idx), get_metal_fuzz(material_idx), ray, rec)

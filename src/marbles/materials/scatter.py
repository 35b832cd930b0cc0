"""Scatter result shared by all material models.

A material either absorbs the incoming ray or produces a single scattered ray
together with the colour attenuation applied to whatever that ray gathers.
Taichi functions cannot return an optional, so absorption is a flag.
"""

import taichi as ti
import taichi.math as tm

from marbles.core.ray import Ray

vec3 = tm.vec3


@ti.dataclass
class ScatterRecord:
    """Outcome of a material interaction.

    Attributes:
        did_scatter: 1 if a ray was scattered, 0 if the ray was absorbed.
        attenuation: Per-channel colour multiplier for the scattered ray.
        origin: Origin of the scattered ray (the hit point).
        direction: Direction of the scattered ray (not normalized).
    """

    did_scatter: ti.i32
    attenuation: vec3
    origin: vec3
    direction: vec3


@ti.func
def make_scattered(attenuation: vec3, origin: vec3, direction: vec3) -> ScatterRecord:
    """Create a record for a scattered ray."""
    return ScatterRecord(
        did_scatter=1,
        attenuation=attenuation,
        origin=origin,
        direction=direction,
    )


@ti.func
def make_absorbed() -> ScatterRecord:
    """Create a record for an absorbed ray."""
    return ScatterRecord(
        did_scatter=0,
        attenuation=vec3(0.0, 0.0, 0.0),
        origin=vec3(0.0, 0.0, 0.0),
        direction=vec3(0.0, 0.0, 0.0),
    )


@ti.func
def scattered_ray(srec: ScatterRecord) -> Ray:
    """Build the outgoing Ray of a scatter record."""
    return Ray(origin=srec.origin, direction=srec.direction)

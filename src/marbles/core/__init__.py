"""Core rendering module.

This module contains the fundamental building blocks for ray tracing:

Components:
    ray: Ray data structure, vector helpers and random sampling
    interval: Admissible ranges of the ray parameter t
    integrator: Light transport (iterative path tracing) and the render target
    progressive: Batched accumulation with callbacks and a time budget
    render: One-call entry point returning an 8-bit image

All compute-intensive operations use Taichi kernels.
"""

from .interval import (
    T_MAX,
    T_MIN,
    Interval,
    clamp,
    contains,
    make_interval,
    size,
    surrounds,
    with_max,
)
from .ray import (
    Ray,
    cross,
    dot,
    length,
    length_squared,
    lerp,
    make_ray,
    near_zero,
    normalize,
    random_in_unit_disk,
    random_in_unit_sphere,
    random_on_hemisphere,
    random_unit_vector,
    random_vec3,
    ray_at,
    reflect,
    reflectance,
    refract,
    vec3,
)

# Note: integrator, progressive and render are NOT imported here because they
# declare Taichi fields and depend on the scene package.
# Import directly from marbles.core.integrator, marbles.core.progressive or
# marbles.core.render when needed.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "lerp",
    "reflect",
    "refract",
    "reflectance",
    "near_zero",
    "random_vec3",
    "random_in_unit_sphere",
    "random_unit_vector",
    "random_on_hemisphere",
    "random_in_unit_disk",
    "Interval",
    "make_interval",
    "size",
    "contains",
    "surrounds",
    "clamp",
    "with_max",
    "T_MIN",
    "T_MAX",
]

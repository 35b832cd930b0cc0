"""Spheres and the hit record shared by every surface query.

hit_sphere solves the ray-sphere quadratic in its half-b form, taking the
roots from the cancellation-free formula in Ray Tracing Gems so grazing
rays (b^2 close to 4ac) keep their precision.

Surface coordinates (u, v) are derived from the outward normal, which for a
sphere is the hit point on the unit sphere around the center:

    u = 1 - (atan2(n.z, n.x) + pi) / (2 pi)
    v = (asin(n.y) + pi / 2) / pi

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from marbles.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5, material_id=0)
"""

import taichi as ti
import taichi.math as tm

from marbles.core.interval import Interval, surrounds
from marbles.core.ray import Ray, ray_at

vec3 = tm.vec3

# Squared direction lengths below this are treated as degenerate rays
MIN_DIRECTION_LENGTH_SQUARED = 1e-12


@ti.dataclass
class Sphere:
    """center, radius (positive) and the unified material id."""

    center: vec3
    radius: ti.f32
    material_id: ti.i32


@ti.dataclass
class HitRecord:
    """Outcome of a surface query.

    Attributes:
        hit: 1 on a hit, 0 on a miss.
        t: Ray parameter of the hit.
        point: ray_at(ray, t).
        normal: The unit surface normal at the hit, always facing against
            the incoming ray.
        front_face: 1 if the ray arrived from outside (the outward normal
            was kept), 0 if it arrived from inside (the normal was flipped).
        material_id: The material of the hit surface, -1 on a miss.
        u, v: Surface coordinates, both in [0, 1].

    All fields other than hit are only meaningful when hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    material_id: ti.i32
    u: ti.f32
    v: ti.f32


@ti.func
def make_miss_record() -> HitRecord:
    """HitRecord with hit = 0 and material_id = -1; other fields zeroed."""
    return HitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0),
        normal=vec3(0.0),
        front_face=0,
        material_id=-1,
        u=0.0,
        v=0.0,
    )


@ti.func
def face_normal(ray_direction: vec3, outward_normal: vec3):
    """Return (normal, front_face) with normal facing against ray_direction.

    front_face is 1 when outward_normal already faced against it.
    """
    front_face = 1
    normal = outward_normal
    if tm.dot(ray_direction, outward_normal) > 0.0:
        front_face = 0
        normal = -outward_normal
    return normal, front_face


@ti.func
def sphere_uv(outward_normal: vec3):
    """(u, v) in [0, 1] for a point on the unit sphere."""
    phi = ti.atan2(outward_normal.z, outward_normal.x)
    theta = ti.asin(tm.clamp(outward_normal.y, -1.0, 1.0))
    u = 1.0 - (phi + tm.pi) / (2.0 * tm.pi)
    v = (theta + tm.pi / 2.0) / tm.pi
    return u, v


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Roots (t0 <= t1) of a*t^2 + 2*h*t + c = 0, given sqrt(h^2 - a*c)."""
    # q shares the sign of -h, so h + sign_h * sqrt_d never cancels
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-10:
        # h and the discriminant are both ~0; fall back to the textbook form
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        swap = t0
        t0 = t1
        t1 = swap

    return t0, t1


@ti.func
def hit_sphere(ray: Ray, sphere: Sphere, interval: Interval) -> HitRecord:
    """Nearest hit of ray on sphere with t strictly inside interval.

    Solves |ray.origin + t * ray.direction - center|^2 = radius^2, which
    expands to a*t^2 + 2*h*t + c = 0 with

        a = dot(direction, direction)
        h = dot(direction, oc)
        c = dot(oc, oc) - radius^2
        oc = origin - center

    The smaller root is accepted if the interval surrounds it, otherwise the
    larger one is tried. A tangent ray (discriminant exactly zero) yields a
    single root. Degenerate (near-zero) directions never hit.

    The direction need not be unit length.
    """
    oc = ray.origin - sphere.center

    a = tm.dot(ray.direction, ray.direction)
    h = tm.dot(ray.direction, oc)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius

    discriminant = h * h - a * c

    result = make_miss_record()

    if a > MIN_DIRECTION_LENGTH_SQUARED and discriminant >= 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t0, t1 = _solve_quadratic_robust(h, a, c, sqrt_d)

        t = t0
        valid = surrounds(interval, t)
        if not valid:
            t = t1
            valid = surrounds(interval, t)

        if valid:
            point = ray_at(ray, t)
            outward_normal = (point - sphere.center) / sphere.radius
            normal, front_face = face_normal(ray.direction, outward_normal)
            u, v = sphere_uv(outward_normal)
            result = HitRecord(
                hit=1,
                t=t,
                point=point,
                normal=normal,
                front_face=front_face,
                material_id=sphere.material_id,
                u=u,
                v=v,
            )

    return result


@ti.func
def make_sphere(center: vec3, radius: ti.f32, material_id: ti.i32) -> Sphere:
    """Build a Sphere inside a kernel. The radius is not checked here."""
    return Sphere(center=center, radius=radius, material_id=material_id)

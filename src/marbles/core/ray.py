"""Rays plus the vector and sampling helpers the kernels are built from.

Everything below except MAX_REJECTION_TRIES is a Taichi function and can
only be called from inside a kernel (or another ti.func).

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> ray = Ray(origin=ti.math.vec3(0.0), direction=ti.math.vec3(0.0, 0.0, -1.0))
    >>> # inside a kernel: ray_at(ray, 5.0) -> (0, 0, -5)
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# Upper bound on draws for the rejection samplers below
MAX_REJECTION_TRIES = 64


@ti.dataclass
class Ray:
    """origin + t * direction. The direction is not required to be unit length."""

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Point reached after travelling t direction-lengths from the origin.

    Args:
        ray: The ray to walk along.
        t: Ray parameter; negative values lie behind the origin.

    Returns:
        ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Build a Ray inside a kernel; direction is stored as given."""
    return Ray(origin=origin, direction=direction)


# -----------------------------------------------------------------------------
# Vector helpers
# -----------------------------------------------------------------------------


@ti.func
def length(v: vec3) -> ti.f32:
    """Euclidean norm of v."""
    return tm.length(v)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Squared norm of v, for comparisons that do not need the root."""
    return tm.dot(v, v)


@ti.func
def normalize(v: vec3) -> vec3:
    """v scaled to unit length. v must not be the zero vector."""
    return tm.normalize(v)


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    """Scalar product a . b."""
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    """Right-handed vector product a x b."""
    return tm.cross(a, b)


@ti.func
def lerp(a: vec3, b: vec3, t: ti.f32) -> vec3:
    """a at t = 0, b at t = 1."""
    return (1.0 - t) * a + t * b


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """1 when every component is within 1e-8 of zero."""
    s = 1e-8
    return ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Mirror incident about a unit normal: I - 2(I . N)N."""
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(unit_direction: vec3, normal: vec3, etai_over_etat: ti.f32) -> vec3:
    """Bend a unit direction across a surface by Snell's law.

    With eta = etai_over_etat and cos_theta = min(-d . n, 1):

        perp = eta * (d + cos_theta * n)
        parallel = -sqrt(|1 - |perp|^2|) * n

    normal must face against unit_direction. Total internal reflection is
    not detected here; check for it before calling.
    """
    cos_theta = tm.min(-tm.dot(unit_direction, normal), 1.0)
    r_out_perp = etai_over_etat * (unit_direction + cos_theta * normal)
    r_out_parallel = -ti.sqrt(ti.abs(1.0 - length_squared(r_out_perp))) * normal
    return r_out_perp + r_out_parallel


@ti.func
def reflectance(cosine: ti.f32, ref_idx: ti.f32) -> ti.f32:
    """Schlick's approximation of the Fresnel reflectance.

    r0 = ((1 - n) / (1 + n))^2 gives the same value for n and 1/n, so
    ref_idx may be either the material ior or the refraction ratio.
    """
    r0 = ((1.0 - ref_idx) / (1.0 + ref_idx)) ** 2
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


# -----------------------------------------------------------------------------
# Sampling
# -----------------------------------------------------------------------------


@ti.func
def random_vec3(lo: ti.f32, hi: ti.f32) -> vec3:
    """Vector whose components are independent uniform draws in [lo, hi)."""
    span = hi - lo
    return vec3(
        lo + span * ti.random(ti.f32),
        lo + span * ti.random(ti.f32),
        lo + span * ti.random(ti.f32),
    )


@ti.func
def random_in_unit_sphere() -> vec3:
    """Uniform point with 1e-12 < |p|^2 < 1, found by rejection.

    The lower bound keeps the point safe to normalize. If every draw is
    rejected the result is (0, 0, 1).
    """
    p = vec3(0.0, 0.0, 1.0)
    found = False
    for _ in range(MAX_REJECTION_TRIES):
        if not found:
            candidate = random_vec3(-1.0, 1.0)
            len_sq = length_squared(candidate)
            if 1e-12 < len_sq and len_sq < 1.0:
                p = candidate
                found = True
    return p


@ti.func
def random_unit_vector() -> vec3:
    """Uniform direction on the unit sphere."""
    return normalize(random_in_unit_sphere())


@ti.func
def random_on_hemisphere(normal: vec3) -> vec3:
    """Uniform direction on the side of the sphere that normal points to."""
    on_sphere = random_unit_vector()
    result = on_sphere
    if tm.dot(on_sphere, normal) < 0.0:
        result = -on_sphere
    return result


@ti.func
def random_in_unit_disk() -> vec3:
    """Uniform point (x, y, 0) with x^2 + y^2 < 1, for defocus sampling."""
    p = vec3(0.0)
    found = False
    for _ in range(MAX_REJECTION_TRIES):
        if not found:
            candidate = vec3(
                ti.random(ti.f32) * 2.0 - 1.0,
                ti.random(ti.f32) * 2.0 - 1.0,
                0.0,
            )
            if candidate.x * candidate.x + candidate.y * candidate.y < 1.0:
                p = candidate
                found = True
    return p

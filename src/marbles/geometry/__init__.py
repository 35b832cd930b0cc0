"""Geometry module for shape primitives.

Components:
    sphere: Sphere primitive with ray-sphere intersection and the HitRecord
        every intersection routine returns

All intersection routines are implemented as Taichi functions (@ti.func) so
they can be called from rendering kernels. Intersections are clipped to an
Interval of the ray parameter:
    rec = hit_sphere(ray, sphere, interval)
"""

from .sphere import (
    HitRecord,
    Sphere,
    face_normal,
    hit_sphere,
    make_miss_record,
    make_sphere,
    sphere_uv,
)

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "make_sphere",
    "make_miss_record",
    "face_normal",
    "sphere_uv",
]

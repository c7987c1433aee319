"""Device primitives and their ray intersection routines.

Every routine is a Taichi function with the signature

    hit_<shape>(origin, direction, shape, ..., t_min, t_max) -> HitRecord

and returns the nearest hit with t in (t_min, t_max), its normal turned
against the ray.
"""

from .ellipsoid import Ellipsoid, hit_ellipsoid
from .plane import Plane, hit_plane
from .sphere import (
    HitRecord,
    Sphere,
    hit_sphere,
    hits_bounding_sphere,
    make_hit,
    make_miss,
    make_sphere,
)
from .triangle import Triangle, hit_triangle, triangle_contains

__all__ = [
    "HitRecord",
    "make_hit",
    "make_miss",
    "Plane",
    "hit_plane",
    "Sphere",
    "hit_sphere",
    "hits_bounding_sphere",
    "make_sphere",
    "Ellipsoid",
    "hit_ellipsoid",
    "Triangle",
    "hit_triangle",
    "triangle_contains",
]

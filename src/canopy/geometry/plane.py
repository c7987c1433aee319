"""Infinite plane primitive.

A plane is defined by a point on it and a unit normal. The intersection
parameter solves

    dot(origin + t * direction - point, normal) = 0
    t = dot(point - origin, normal) / dot(direction, normal)

Rays almost parallel to the plane (|dot(direction, normal)| below the
parallel epsilon) are rejected instead of producing huge, unstable t values.
The returned normal always faces the incoming ray.
"""

import taichi as ti
import taichi.math as tm

from .sphere import HitRecord, make_hit, make_miss

vec3 = tm.vec3


@ti.dataclass
class Plane:
    """A plane through point with unit normal."""

    point: vec3
    normal: vec3


@ti.func
def hit_plane(
    ray_origin: vec3,
    ray_direction: vec3,
    plane: Plane,
    parallel_epsilon: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-plane intersection.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The unit direction of the ray.
        plane: The plane to test.
        parallel_epsilon: Rays with |dot(direction, normal)| below this miss.
        t_min: Minimum t value to consider a valid hit (exclusive).
        t_max: Maximum t value to consider a valid hit (exclusive).

    Returns:
        A HitRecord; hit == 0 when parallel or out of range.
    """
    rec = make_miss()
    denom = tm.dot(ray_direction, plane.normal)
    if ti.abs(denom) >= parallel_epsilon:
        t = tm.dot(plane.point - ray_origin, plane.normal) / denom
        if t > t_min and t < t_max:
            rec = make_hit(t, ray_origin + t * ray_direction, plane.normal, ray_direction)
    return rec

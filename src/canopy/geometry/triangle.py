"""Triangle primitive with solver-based containment.

A triangle ABC is intersected in two steps: the ray is first intersected with
the triangle's supporting plane, then the hit point is expressed in the basis
(B - A, C - A, n):

    p - A = x * (B - A) + y * (C - A) + z * n

The point lies inside the triangle iff the barycentric weights
(1 - x - y, x, y) are all non-negative. Degenerate triangles make the system
singular; the solver reports "no solution" and the ray misses.

The normal n is computed on the host from snapped vertices (see
src.canopy.scene.objects.Triangle) and uploaded with the vertices.
"""

import taichi as ti
import taichi.math as tm

from src.canopy.core.linalg import solve_3x3

from .plane import Plane, hit_plane
from .sphere import HitRecord, make_miss

vec3 = tm.vec3


@ti.dataclass
class Triangle:
    """A triangle with vertices a, b, c and unit normal."""

    a: vec3
    b: vec3
    c: vec3
    normal: vec3


@ti.func
def triangle_contains(triangle: Triangle, point: vec3) -> ti.i32:
    """Check whether a point of the triangle's plane lies inside it.

    Args:
        triangle: The triangle.
        point: A point on the triangle's supporting plane.

    Returns:
        1 if all barycentric weights are >= 0, 0 otherwise (including when the
        triangle is degenerate).
    """
    solved, w = solve_3x3(
        triangle.b - triangle.a,
        triangle.c - triangle.a,
        triangle.normal,
        point - triangle.a,
    )
    inside = 0
    if solved == 1:
        if w.x >= 0.0 and w.y >= 0.0 and 1.0 - w.x - w.y >= 0.0:
            inside = 1
    return inside


@ti.func
def hit_triangle(
    ray_origin: vec3,
    ray_direction: vec3,
    triangle: Triangle,
    parallel_epsilon: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-triangle intersection.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The unit direction of the ray.
        triangle: The triangle to test.
        parallel_epsilon: Threshold of the supporting-plane parallelism test.
        t_min: Minimum t value to consider a valid hit (exclusive).
        t_max: Maximum t value to consider a valid hit (exclusive).

    Returns:
        A HitRecord; the normal faces the incoming ray.
    """
    plane = Plane(point=triangle.a, normal=triangle.normal)
    rec = hit_plane(ray_origin, ray_direction, plane, parallel_epsilon, t_min, t_max)
    result = make_miss()
    if rec.hit == 1:
        if triangle_contains(triangle, rec.point) == 1:
            result = rec
    return result

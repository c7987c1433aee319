"""Rays and the vector helpers shared by the Taichi kernels.

Camera rays and diffuse bounce rays are always built with a unit direction,
so t measures distance along the ray. The thin wrappers around taichi.math
(dot, cross, normalize) keep the kernels readable and give the vocabulary of
the light-transport equations: mix, near_zero, random_in_unit_sphere.

Everything here is a Taichi function and is callable from kernels only.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> # Inside a kernel:
    >>> # ray = make_ray(eye, direction)
    >>> # hit_point = ray_at(ray, rec.t)
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# Components below this magnitude count as zero in near_zero()
NEAR_ZERO = 1e-8


@ti.dataclass
class Ray:
    """Origin and (unit) direction."""

    origin: vec3
    direction: vec3


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    return Ray(origin=origin, direction=direction)


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Point at parameter t; negative t lies behind the origin."""
    return ray.origin + t * ray.direction


# =============================================================================
# Vector helpers
# =============================================================================


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    return tm.cross(a, b)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    return tm.dot(v, v)


@ti.func
def normalize(v: vec3) -> vec3:
    """Unit vector along v. v must not be zero."""
    return tm.normalize(v)


@ti.func
def mix(a: vec3, b: vec3, c: ti.f32) -> vec3:
    """Blend a * (1 - c) + b * c; c = 0 gives a, c = 1 gives b."""
    return a * (1.0 - c) + b * c


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """1 when every component of v is smaller than NEAR_ZERO in magnitude."""
    return ti.abs(v).max() < NEAR_ZERO


# =============================================================================
# Sampling
# =============================================================================


@ti.func
def random_in_unit_sphere() -> vec3:
    """Uniform point of the open unit ball, by rejection from the cube.

    About half of the cube's candidates are accepted, so the loop ends after
    two draws on average.
    """
    p = 2.0 * vec3(ti.random(ti.f32), ti.random(ti.f32), ti.random(ti.f32)) - 1.0
    while length_squared(p) >= 1.0:
        p = 2.0 * vec3(ti.random(ti.f32), ti.random(ti.f32), ti.random(ti.f32)) - 1.0
    return p

"""Core rendering module.

Components:
    ray: Ray structure and vector helpers for Taichi functions
    color: Conversion between colours in [0, 1] and 8-bit pixels
    linalg: 3x3 linear solver used by the triangle containment test
    integrator: Colour of a ray (sky, sun, diffuse bounces)
    progressive: Resumable, interruptible tile renderer

integrator and progressive allocate Taichi fields and are NOT imported here.
Import them directly after ti.init():

    from src.canopy.core.progressive import ResumableRenderer
"""

from .color import color_to_bytes, color_to_pixel, mix, pixel_to_color, rgb
from .linalg import PIVOT_EPSILON, solve_3x3
from .ray import (
    Ray,
    cross,
    dot,
    length_squared,
    make_ray,
    near_zero,
    normalize,
    random_in_unit_sphere,
    ray_at,
    vec3,
)

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "near_zero",
    "random_in_unit_sphere",
    "color_to_pixel",
    "color_to_bytes",
    "pixel_to_color",
    "rgb",
    "mix",
    "solve_3x3",
    "PIVOT_EPSILON",
]

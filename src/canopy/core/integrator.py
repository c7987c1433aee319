"""Light-transport integrator.

This module implements the colour of a ray:

    color(ray, depth):
        nearest hit of ray in the scene
        no hit              -> sky gradient between horizon and zenith,
                               parameterized by |direction.y|
        hit, depth > max    -> black
        hit                 -> color(diffuse bounce, depth + 1) * surface colour
                               (the surface colour alone when diffuse is off)
        with a sun          -> mix(c, sun colour, 1 - softness) when the point
                               sees the sun, c * softness when it is shadowed

Taichi functions cannot recurse, so the recursion is unrolled into a loop:
every level maps the colour returned by the next one affinely,

    c_k = scale_k * albedo_k * c_(k+1) + b_k

with scale_k = softness (or 1 without a sun) and b_k = sun * (1 - softness)
for lit points (0 otherwise). The loop accumulates (radiance, throughput)
front to back, which gives exactly the recursive result.

A pixel's colour is the average of nsamples jittered samples inside the pixel.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.canopy.core.integrator import setup_render_config, setup_sun
    >>> from src.canopy.config import RenderConfig
    >>> setup_render_config(RenderConfig())
    >>> setup_sun(None)
"""

import math

import taichi as ti
import taichi.math as tm

from src.canopy.camera.angular import get_ray, get_ray_jittered
from src.canopy.config import T_MAX, RenderConfig
from src.canopy.core.ray import mix
from src.canopy.materials.lambertian import scatter_lambertian
from src.canopy.scene.intersection import (
    intersect_scene,
    intersect_scene_any,
    set_parallel_epsilon,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Render Configuration (uploaded by setup_render_config)
# =============================================================================

_depth_max = ti.field(dtype=ti.i32, shape=())
_t_min = ti.field(dtype=ti.f32, shape=())
_shadow_epsilon = ti.field(dtype=ti.f32, shape=())
_diffuse = ti.field(dtype=ti.i32, shape=())
_shadows = ti.field(dtype=ti.i32, shape=())
_sun_on_bounces = ti.field(dtype=ti.i32, shape=())
_sky_horizon = ti.Vector.field(3, dtype=ti.f32, shape=())
_sky_zenith = ti.Vector.field(3, dtype=ti.f32, shape=())

# Directional light
_sun_enabled = ti.field(dtype=ti.i32, shape=())
_sun_direction = ti.Vector.field(3, dtype=ti.f32, shape=())
_sun_color = ti.Vector.field(3, dtype=ti.f32, shape=())
_sun_softness = ti.field(dtype=ti.f32, shape=())


def setup_render_config(config: RenderConfig) -> None:
    """Upload the integrator tuning constants.

    Args:
        config: The render configuration.
    """
    _depth_max[None] = config.depth_max
    _t_min[None] = config.t_min
    _shadow_epsilon[None] = config.shadow_epsilon
    _diffuse[None] = int(config.diffuse)
    _shadows[None] = int(config.shadows)
    _sun_on_bounces[None] = int(config.sun_on_bounces)
    _sky_horizon[None] = list(config.sky_horizon)
    _sky_zenith[None] = list(config.sky_zenith)
    set_parallel_epsilon(config.parallel_epsilon)


def setup_sun(sun) -> None:
    """Configure the directional light.

    Args:
        sun: A src.canopy.scene.manager.Sun, or None to disable the light.
    """
    if sun is None:
        _sun_enabled[None] = 0
        return
    dx, dy, dz = sun.direction
    length = math.sqrt(dx * dx + dy * dy + dz * dz)
    _sun_enabled[None] = 1
    _sun_direction[None] = [dx / length, dy / length, dz / length]
    _sun_color[None] = list(sun.color)
    _sun_softness[None] = sun.softness


def is_sun_enabled() -> bool:
    """Check if the directional light is enabled."""
    return bool(_sun_enabled[None])


# =============================================================================
# Light Transport Core
# =============================================================================


@ti.func
def sky_color(direction: vec3) -> vec3:
    """Two-stop sky gradient, horizon at |y| = 0 and zenith at |y| = 1."""
    return mix(_sky_horizon[None], _sky_zenith[None], ti.abs(tm.normalize(direction).y))


@ti.func
def _sun_terms(point: vec3, normal: vec3):
    """Affine sun terms (scale, bias) at a hit point.

    Returns:
        (softness, sun * (1 - softness)) when the shadow ray escapes,
        (softness, 0) when it is blocked.
    """
    softness = _sun_softness[None]
    origin = point + _shadow_epsilon[None] * normal
    occluded = intersect_scene_any(origin, _sun_direction[None], _t_min[None], T_MAX)
    bias = vec3(0.0, 0.0, 0.0)
    if occluded == 0:
        bias = _sun_color[None] * (1.0 - softness)
    return softness, bias


@ti.func
def trace_color(origin: vec3, direction: vec3) -> vec3:
    """Colour seen along a ray.

    Args:
        origin: Ray origin.
        direction: Unit ray direction.

    Returns:
        The colour (RGB, not clamped).
    """
    radiance = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    depth_max = _depth_max[None]

    # Taichi doesn't support break in ti.func loops
    active = 1

    for depth in range(depth_max + 2):
        if active == 1:
            rec = intersect_scene(origin, direction, _t_min[None], T_MAX)

            if rec.hit == 0:
                radiance += throughput * sky_color(direction)
                active = 0
            elif _diffuse[None] == 1 and depth > depth_max:
                # Too deep: this path contributes black
                active = 0
            else:
                scale = 1.0
                bias = vec3(0.0, 0.0, 0.0)
                if _shadows[None] == 1 and _sun_enabled[None] == 1:
                    if depth == 0 or _sun_on_bounces[None] == 1:
                        scale, bias = _sun_terms(rec.point, rec.normal)

                if _diffuse[None] == 1:
                    radiance += throughput * bias
                    new_direction, attenuation = scatter_lambertian(rec.color, rec.normal)
                    throughput *= attenuation * scale
                    origin = rec.point
                    direction = new_direction
                else:
                    radiance += throughput * (rec.color * scale + bias)
                    active = 0

    return radiance


@ti.func
def render_pixel(x: ti.i32, y: ti.i32, width: ti.i32, height: ti.i32, nsamples: ti.i32) -> vec3:
    """Average of nsamples jittered samples of pixel (x, y), row 0 on top."""
    total = vec3(0.0, 0.0, 0.0)
    for _ in range(nsamples):
        ray = get_ray_jittered(x, y, width, height)
        total += trace_color(ray.origin, ray.direction)
    return total / ti.cast(nsamples, ti.f32)


# =============================================================================
# Kernels for single queries
# =============================================================================


@ti.kernel
def _trace_ij(i: ti.f32, j: ti.f32) -> vec3:
    ray = get_ray(i, j)
    return trace_color(ray.origin, ray.direction)


@ti.kernel
def _trace_ray(origin: vec3, direction: vec3) -> vec3:
    return trace_color(origin, tm.normalize(direction))


def render_sample(i: float, j: float) -> tuple[float, float, float]:
    """Trace one camera ray through image coordinate (i, j).

    Python-callable for testing; production rendering goes through
    src.canopy.core.progressive.ResumableRenderer.

    Returns:
        Tuple of (R, G, B) colour values.
    """
    color = _trace_ij(i, j)
    return (float(color[0]), float(color[1]), float(color[2]))


def trace_ray(
    origin: tuple[float, float, float], direction: tuple[float, float, float]
) -> tuple[float, float, float]:
    """Trace an arbitrary ray (direction normalized here).

    Returns:
        Tuple of (R, G, B) colour values.
    """
    color = _trace_ray(vec3(*origin), vec3(*direction))
    return (float(color[0]), float(color[1]), float(color[2]))

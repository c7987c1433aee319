"""Lambertian (ideal diffuse) scattering.

Every surface of the scene is diffuse. A bounce direction is sampled by adding
a uniformly random point of the unit ball to the surface normal, which gives
a cosine-weighted-ish distribution over the hemisphere around the normal. The
surface colour attenuates the light carried back along the bounce.

Example:
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation = scatter_lambertian(color, normal)
"""

import taichi as ti
import taichi.math as tm

from src.canopy.core.ray import near_zero, random_in_unit_sphere

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.func
def scatter_lambertian(albedo: vec3, normal: vec3):
    """Sample a scattered ray direction for a diffuse surface.

    Args:
        albedo: The surface colour (RGB, each component in [0, 1]).
        normal: The unit surface normal at the hit point, facing the
            incoming ray.

    Returns:
        A tuple of (scattered_direction, attenuation) where the direction is
        normalized and the attenuation equals the albedo.
    """
    scattered_direction = normal + random_in_unit_sphere()

    # The sample can cancel the normal almost exactly
    if near_zero(scattered_direction):
        scattered_direction = normal

    return tm.normalize(scattered_direction), albedo

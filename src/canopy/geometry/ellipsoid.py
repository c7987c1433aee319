"""Axis-aligned ellipsoid primitive.

The ellipsoid is intersected by an affine change of basis instead of its own
quadratic: the ray is translated by -center and scaled by 1/radii per axis,
which turns the ellipsoid into the unit sphere at the origin. Because the
direction is scaled without renormalizing, the ray parameter t is the same
in both frames, so the hit point maps back as origin + t * direction.

The surface normal of the unit sphere is the local hit point; mapping it back
to world space uses the inverse-transpose of the scale, i.e. a division by
the radii, followed by renormalization.
"""

import taichi as ti
import taichi.math as tm

from .sphere import HitRecord, Sphere, hit_sphere, make_hit, make_miss

vec3 = tm.vec3


@ti.dataclass
class Ellipsoid:
    """An axis-aligned ellipsoid.

    Attributes:
        center: The center of the ellipsoid.
        radii: Semi-axis lengths along x, y and z (all positive).
    """

    center: vec3
    radii: vec3


@ti.func
def hit_ellipsoid(
    ray_origin: vec3,
    ray_direction: vec3,
    ellipsoid: Ellipsoid,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-ellipsoid intersection.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        ellipsoid: The ellipsoid to test.
        t_min: Minimum t value to consider a valid hit (exclusive).
        t_max: Maximum t value to consider a valid hit (exclusive).

    Returns:
        A HitRecord in world space with a unit normal facing the ray.
    """
    local_origin = (ray_origin - ellipsoid.center) / ellipsoid.radii
    local_direction = ray_direction / ellipsoid.radii
    local = hit_sphere(
        local_origin, local_direction, Sphere(center=vec3(0.0, 0.0, 0.0), radius=1.0), t_min, t_max
    )

    rec = make_miss()
    if local.hit == 1:
        # Unit-sphere normal = local point; inverse-transpose of the scale
        outward = tm.normalize((local_origin + local.t * local_direction) / ellipsoid.radii)
        rec = make_hit(local.t, ray_origin + local.t * ray_direction, outward, ray_direction)
    return rec

"""Sphere primitive and the hit record shared by every primitive.

Besides the exact ray-sphere test this module holds the helpers the other
primitives build their records with (make_hit, make_miss) and the solid
bounding-sphere test that rejects whole aggregates before their children are
visited.

The roots are computed with the cancellation-free form of the quadratic
formula (q = -(h + sign(h) sqrt(D)), t = q / a and c / q), which keeps the
near root accurate for small spheres far from the eye.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.canopy.geometry.sphere import Sphere, hit_sphere
    >>> ball = Sphere(center=ti.math.vec3(0, 1, 6), radius=1.0)
    >>> # hit_sphere(origin, direction, ball, t_min, t_max) inside a kernel
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """Center and (positive) radius."""

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Result of a ray-primitive test.

    Attributes:
        hit: 1 on a hit inside (t_min, t_max), 0 otherwise. The other fields
            are meaningless when hit == 0.
        t: Ray parameter of the hit.
        point: World-space hit point.
        normal: Unit normal, turned to face the incoming ray.
        front_face: 1 if the ray arrived on the outward side of the surface.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32


@ti.func
def make_miss() -> HitRecord:
    return HitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
    )


@ti.func
def make_hit(t: ti.f32, point: vec3, outward: vec3, ray_direction: vec3) -> HitRecord:
    """Build a hit record, flipping the outward normal toward the ray."""
    front = 1
    normal = outward
    if tm.dot(ray_direction, outward) > 0.0:
        front = 0
        normal = -outward
    return HitRecord(hit=1, t=t, point=point, normal=normal, front_face=front)


@ti.func
def sphere_roots(oc: vec3, direction: vec3, radius: ti.f32):
    """Roots of |oc + t * direction|^2 = radius^2.

    Returns:
        (found, t_near, t_far). found is 0 when the discriminant is not
        strictly positive; a grazing tangent counts as a miss.
    """
    a = tm.dot(direction, direction)
    h = tm.dot(direction, oc)
    c = tm.dot(oc, oc) - radius * radius
    disc = h * h - a * c

    found = 0
    t_near = 0.0
    t_far = 0.0
    if disc > 0.0:
        found = 1
        sqrt_d = ti.sqrt(disc)
        q = -(h + ti.select(h < 0.0, -sqrt_d, sqrt_d))
        if ti.abs(q) < 1e-10:
            t_near = (-h - sqrt_d) / a
            t_far = (-h + sqrt_d) / a
        else:
            t_near = ti.min(q / a, c / q)
            t_far = ti.max(q / a, c / q)
    return found, t_near, t_far


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection.

    The near root is taken when it lies in (t_min, t_max), else the far one,
    so a ray starting inside the sphere reports the back face.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The ray direction. It need not be normalized; the
            ellipsoid test passes a scaled direction.
        sphere: The sphere.
        t_min: Minimum t value to consider a valid hit (exclusive).
        t_max: Maximum t value to consider a valid hit (exclusive).
    """
    rec = make_miss()
    found, t_near, t_far = sphere_roots(ray_origin - sphere.center, ray_direction, sphere.radius)
    if found == 1:
        t = t_near
        if not (t > t_min and t < t_max):
            t = t_far
        if t > t_min and t < t_max:
            point = ray_origin + t * ray_direction
            rec = make_hit(t, point, (point - sphere.center) / sphere.radius, ray_direction)
    return rec


@ti.func
def hits_bounding_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    center: vec3,
    radius: ti.f32,
    t_min: ti.f32,
    t_max: ti.f32,
) -> ti.i32:
    """Check whether the segment (t_min, t_max) overlaps the solid sphere.

    A segment that starts inside and ends before leaving still counts:
    children of an aggregate may lie anywhere inside its bounds.
    """
    found, t_enter, t_exit = sphere_roots(ray_origin - center, ray_direction, radius)
    result = 0
    if found == 1 and t_exit > t_min and t_enter < t_max:
        result = 1
    return result


@ti.func
def make_sphere(center: vec3, radius: ti.f32) -> Sphere:
    return Sphere(center=center, radius=radius)

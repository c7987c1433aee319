"""Scene-level primitive intersection testing.

This module stores the flattened scene in Taichi fields and provides the
scene-level ray queries used by the integrator:

* intersect_scene: nearest hit with the surface colour,
* intersect_scene_any: occlusion test for shadow rays (early out).

Scene objects are stored in two structure-of-arrays tables. The primitive
table holds every device primitive (plane, sphere, ellipsoid, triangle) in
slots p0/p1/p2/normal/radius whose meaning depends on the kind. The object
table groups consecutive primitives into objects with an optional bounding
sphere; an object whose bounding sphere the ray segment misses is skipped
without testing its children.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.canopy.scene.intersection import upload_scene, intersect_scene
    >>> from src.canopy.scene.objects import Sphere
    >>> upload_scene([Sphere((0.0, 0.0, 5.0), 1.0)])
    >>> # Use intersect_scene within a Taichi kernel
"""

import logging
from collections.abc import Sequence

import numpy as np
import taichi as ti
import taichi.math as tm

from src.canopy.config import MAX_OBJECTS, MAX_PRIMITIVES, PARALLEL_EPSILON
from src.canopy.geometry.ellipsoid import Ellipsoid, hit_ellipsoid
from src.canopy.geometry.plane import Plane, hit_plane
from src.canopy.geometry.sphere import (
    HitRecord,
    Sphere,
    hit_sphere,
    hits_bounding_sphere,
    make_miss,
)
from src.canopy.geometry.triangle import Triangle, hit_triangle
from src.canopy.scene.objects import PrimitiveKind, SceneObject

logger = logging.getLogger(__name__)

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

KIND_PLANE = int(PrimitiveKind.PLANE)
KIND_SPHERE = int(PrimitiveKind.SPHERE)
KIND_ELLIPSOID = int(PrimitiveKind.ELLIPSOID)
KIND_TRIANGLE = int(PrimitiveKind.TRIANGLE)


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection with the surface colour.

    Attributes:
        hit: Whether the ray intersected any primitive (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
        point: The 3D point where the ray intersected the surface.
        normal: The unit surface normal, facing the ray origin.
        front_face: Whether the ray hit the front face (1) or back face (0).
        color: The colour of the primitive that was hit.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    color: vec3


# Primitive storage: Structure of Arrays layout
prim_kind = ti.field(dtype=ti.i32, shape=MAX_PRIMITIVES)
prim_p0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_p1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_p2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_normal = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_radius = ti.field(dtype=ti.f32, shape=MAX_PRIMITIVES)
prim_color = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PRIMITIVES)
num_primitives = ti.field(dtype=ti.i32, shape=())

# Object storage: a contiguous range of primitives plus a bounding sphere
# (bound_radius <= 0 means "no bounding sphere, test the children directly")
obj_first = ti.field(dtype=ti.i32, shape=MAX_OBJECTS)
obj_count = ti.field(dtype=ti.i32, shape=MAX_OBJECTS)
obj_bound_center = ti.Vector.field(3, dtype=ti.f32, shape=MAX_OBJECTS)
obj_bound_radius = ti.field(dtype=ti.f32, shape=MAX_OBJECTS)
num_objects = ti.field(dtype=ti.i32, shape=())

parallel_epsilon = ti.field(dtype=ti.f32, shape=())


def clear_scene() -> None:
    """Remove every object from the device tables."""
    num_objects[None] = 0
    num_primitives[None] = 0


def set_parallel_epsilon(value: float) -> None:
    """Set the threshold of the ray/plane parallelism test."""
    parallel_epsilon[None] = value


def upload_scene(
    objects: Sequence[SceneObject], parallel_eps: float = PARALLEL_EPSILON
) -> int:
    """Flatten scene objects into the device tables.

    Every field is written with a single from_numpy call.

    Args:
        objects: The scene objects, in scene order.
        parallel_eps: Threshold of the ray/plane parallelism test.

    Returns:
        The number of primitives uploaded.

    Raises:
        RuntimeError: If the scene exceeds MAX_OBJECTS or MAX_PRIMITIVES.
    """
    if len(objects) > MAX_OBJECTS:
        raise RuntimeError(f"Maximum number of objects ({MAX_OBJECTS}) exceeded")

    kind = np.zeros(MAX_PRIMITIVES, dtype=np.int32)
    p0 = np.zeros((MAX_PRIMITIVES, 3), dtype=np.float32)
    p1 = np.zeros((MAX_PRIMITIVES, 3), dtype=np.float32)
    p2 = np.zeros((MAX_PRIMITIVES, 3), dtype=np.float32)
    normal = np.zeros((MAX_PRIMITIVES, 3), dtype=np.float32)
    radius = np.zeros(MAX_PRIMITIVES, dtype=np.float32)
    color = np.zeros((MAX_PRIMITIVES, 3), dtype=np.float32)

    first = np.zeros(MAX_OBJECTS, dtype=np.int32)
    count = np.zeros(MAX_OBJECTS, dtype=np.int32)
    bound_center = np.zeros((MAX_OBJECTS, 3), dtype=np.float32)
    bound_radius = np.zeros(MAX_OBJECTS, dtype=np.float32)

    n = 0
    for index, obj in enumerate(objects):
        prims = obj.primitives()
        if n + len(prims) > MAX_PRIMITIVES:
            raise RuntimeError(f"Maximum number of primitives ({MAX_PRIMITIVES}) exceeded")
        first[index] = n
        count[index] = len(prims)
        bounds = obj.bounds()
        if bounds is not None:
            bound_center[index] = bounds[0]
            bound_radius[index] = bounds[1]
        for prim in prims:
            kind[n] = int(prim.kind)
            p0[n] = prim.p0
            p1[n] = prim.p1
            p2[n] = prim.p2
            normal[n] = prim.normal
            radius[n] = prim.radius
            color[n] = prim.color
            n += 1

    prim_kind.from_numpy(kind)
    prim_p0.from_numpy(p0)
    prim_p1.from_numpy(p1)
    prim_p2.from_numpy(p2)
    prim_normal.from_numpy(normal)
    prim_radius.from_numpy(radius)
    prim_color.from_numpy(color)
    obj_first.from_numpy(first)
    obj_count.from_numpy(count)
    obj_bound_center.from_numpy(bound_center)
    obj_bound_radius.from_numpy(bound_radius)
    num_objects[None] = len(objects)
    num_primitives[None] = n
    parallel_epsilon[None] = parallel_eps

    logger.info("uploaded %d objects (%d primitives)", len(objects), n)
    return n


def get_object_count() -> int:
    """Get the number of objects on the device."""
    return int(num_objects[None])


def get_primitive_count() -> int:
    """Get the number of flattened primitives on the device."""
    return int(num_primitives[None])


@ti.func
def hit_primitive(
    index: ti.i32,
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Dispatch the intersection test on the kind of primitive ``index``."""
    kind = prim_kind[index]
    rec = make_miss()
    if kind == KIND_PLANE:
        plane = Plane(point=prim_p0[index], normal=prim_normal[index])
        rec = hit_plane(
            ray_origin, ray_direction, plane, parallel_epsilon[None], t_min, t_max
        )
    elif kind == KIND_SPHERE:
        sphere = Sphere(center=prim_p0[index], radius=prim_radius[index])
        rec = hit_sphere(ray_origin, ray_direction, sphere, t_min, t_max)
    elif kind == KIND_ELLIPSOID:
        ellipsoid = Ellipsoid(center=prim_p0[index], radii=prim_p1[index])
        rec = hit_ellipsoid(ray_origin, ray_direction, ellipsoid, t_min, t_max)
    elif kind == KIND_TRIANGLE:
        triangle = Triangle(
            a=prim_p0[index],
            b=prim_p1[index],
            c=prim_p2[index],
            normal=prim_normal[index],
        )
        rec = hit_triangle(
            ray_origin, ray_direction, triangle, parallel_epsilon[None], t_min, t_max
        )
    return rec


@ti.func
def _object_candidate(
    obj: ti.i32, ray_origin: vec3, ray_direction: vec3, t_min: ti.f32, t_max: ti.f32
) -> ti.i32:
    """1 if the children of ``obj`` have to be tested against the ray."""
    result = 1
    if obj_bound_radius[obj] > 0.0:
        result = hits_bounding_sphere(
            ray_origin,
            ray_direction,
            obj_bound_center[obj],
            obj_bound_radius[obj],
            t_min,
            t_max,
        )
    return result


@ti.func
def _make_miss_record() -> SceneHitRecord:
    """Create a SceneHitRecord indicating no intersection."""
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        color=vec3(0.0, 0.0, 0.0),
    )


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Test ray against all objects in the scene.

    Each candidate primitive is tested with the current closest t as upper
    bound, so the result is the globally nearest hit in (t_min, t_max).

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        A SceneHitRecord containing the closest intersection, or a miss
        record if no intersection was found.
    """
    closest_t = t_max
    result = _make_miss_record()

    for obj in range(num_objects[None]):
        if _object_candidate(obj, ray_origin, ray_direction, t_min, closest_t) == 1:
            start = obj_first[obj]
            for k in range(start, start + obj_count[obj]):
                rec = hit_primitive(k, ray_origin, ray_direction, t_min, closest_t)
                if rec.hit == 1:
                    closest_t = rec.t
                    result = SceneHitRecord(
                        hit=1,
                        t=rec.t,
                        point=rec.point,
                        normal=rec.normal,
                        front_face=rec.front_face,
                        color=prim_color[k],
                    )

    return result


@ti.func
def intersect_scene_any(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> ti.i32:
    """Test if ray hits any primitive in the scene (shadow ray query).

    Returns:
        1 if any primitive was hit, 0 otherwise.
    """
    hit_any = 0

    for obj in range(num_objects[None]):
        if hit_any == 0:
            if _object_candidate(obj, ray_origin, ray_direction, t_min, t_max) == 1:
                start = obj_first[obj]
                for k in range(start, start + obj_count[obj]):
                    if hit_any == 0:
                        rec = hit_primitive(k, ray_origin, ray_direction, t_min, t_max)
                        if rec.hit == 1:
                            hit_any = 1

    return hit_any

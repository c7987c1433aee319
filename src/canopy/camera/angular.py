"""Angular camera model for primary ray generation.

This module uploads a CameraContext into Taichi fields and generates primary
rays on the device with the angular mapping described in
src.canopy.camera.eye: the image coordinate is turned into a vertical and a
horizontal angle around the viewing direction, with a 90 degree horizontal
field of view. Unlike a planar image plane this keeps wide views free of
stretching at the borders.

All ray generation is Taichi-compatible.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.canopy.camera.angular import setup_camera, get_ray
    >>> from src.canopy.camera.eye import CameraContext, Eye
    >>> setup_camera(CameraContext(Eye((0, 1, 0), (0, 0, 1)), 320, 240))
    >>>
    >>> @ti.kernel
    ... def render():
    ...     ray = get_ray(0.5, 0.5)  # Ray along the viewing direction
"""

import math

import taichi as ti
import taichi.math as tm

from src.canopy.core.ray import Ray, make_ray

from .eye import CameraContext

# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_direction = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_right = ti.Vector.field(3, dtype=ti.f32, shape=())
_camera_up = ti.Vector.field(3, dtype=ti.f32, shape=())
_aspect_ratio = ti.field(dtype=ti.f32, shape=())


def setup_camera(camera: CameraContext) -> None:
    """Upload the camera basis. Must be called before rendering.

    Args:
        camera: Camera context with validated basis vectors.
    """
    _camera_origin[None] = camera.origin.tolist()
    _camera_direction[None] = camera.direction.tolist()
    _camera_right[None] = camera.right.tolist()
    _camera_up[None] = camera.up.tolist()
    _aspect_ratio[None] = camera.aspect_ratio


@ti.func
def get_ray(i: ti.f32, j: ti.f32) -> Ray:
    """Generate a ray through normalized image coordinates (i, j).

    - i = 0: left edge, i = 1: right edge
    - j = 0: bottom edge, j = 1: top edge

    Args:
        i: Horizontal coordinate.
        j: Vertical coordinate.

    Returns:
        A Ray with origin at the eye and a unit direction.
    """
    direction = _camera_direction[None]
    vangle = (math.pi / 2.0) * (j - 0.5) / _aspect_ratio[None]
    hangle = (math.pi / 2.0) * (i - 0.5)

    v = tm.normalize(ti.sin(vangle) * _camera_up[None] + ti.cos(vangle) * direction)
    h = tm.normalize(ti.sin(hangle) * _camera_right[None] + ti.cos(hangle) * direction)

    return make_ray(_camera_origin[None], tm.normalize(v + h - direction))


@ti.func
def get_ray_jittered(x: ti.i32, y: ti.i32, width: ti.i32, height: ti.i32) -> Ray:
    """Generate a jittered ray inside pixel (x, y) for anti-aliasing.

    Pixel rows are counted from the top of the image, as in the output
    buffer, so the vertical coordinate is flipped.

    Args:
        x: Pixel column (0 = left).
        y: Pixel row (0 = top).
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        A Ray through a uniformly random point of the pixel.
    """
    i = (ti.cast(x, ti.f32) + ti.random(ti.f32)) / ti.cast(width, ti.f32)
    j = 1.0 - (ti.cast(y, ti.f32) + ti.random(ti.f32)) / ti.cast(height, ti.f32)
    return get_ray(i, j)

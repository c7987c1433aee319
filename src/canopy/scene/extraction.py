"""Approximate a photo with a grid of coloured spheres.

The view is tiled by spheres placed along camera rays: for every cell of a
nb_h x nb_v grid there is a front sphere at distance f and a slightly larger
back sphere, shifted by half a cell, behind it, which fills the gaps between
the front ones. Each sphere takes the average colour of the photo pixels its
silhouette covers, weighted by how many of four sub-pixel rays hit it.

With n vertical spheres the radius is chosen so that neighbouring spheres
touch:

    radius = 2 pi / (4 n aspect - pi)
    f      = 2 + radius

The colours are computed by one Taichi kernel with a thread per sphere; the
photo and the camera are shared read-only.
"""

import logging
import math

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.canopy.camera.angular import get_ray, setup_camera
from src.canopy.camera.eye import CameraContext
from src.canopy.config import T_MAX
from src.canopy.geometry.sphere import Sphere as DeviceSphere
from src.canopy.geometry.sphere import hit_sphere
from src.canopy.scene.manager import Scene
from src.canopy.scene.objects import Sphere

logger = logging.getLogger(__name__)

vec3 = tm.vec3

# The back spheres are this much larger than the front ones
BACK_SCALE = 1.1


@ti.kernel
def _sphere_colors(
    photo: ti.types.ndarray(dtype=ti.u8, ndim=3),
    centers: ti.types.ndarray(dtype=ti.f32, ndim=2),
    radii: ti.types.ndarray(dtype=ti.f32, ndim=1),
    screen: ti.types.ndarray(dtype=ti.f32, ndim=2),
    half_i: ti.f32,
    half_j: ti.f32,
    out: ti.types.ndarray(dtype=ti.i32, ndim=2),
):
    """Coverage-weighted colour sums (r, g, b, weight) of every sphere."""
    height = photo.shape[0]
    width = photo.shape[1]
    fw = ti.cast(width, ti.f32)
    fh = ti.cast(height, ti.f32)

    for s in range(radii.shape[0]):
        sphere = DeviceSphere(
            center=vec3(centers[s, 0], centers[s, 1], centers[s, 2]), radius=radii[s]
        )
        ci = screen[s, 0]
        cj = screen[s, 1]

        # Screen rectangle of the sphere, in pixels (rows from the bottom)
        x0 = ti.min(ti.max(ti.cast(ti.floor((ci - half_i) * fw), ti.i32), 0), width - 1)
        y0 = ti.min(ti.max(ti.cast(ti.floor((cj - half_j) * fh), ti.i32), 0), height - 1)
        x1 = ti.min(ti.max(ti.cast(ti.ceil((ci + half_i) * fw), ti.i32), 0), width)
        y1 = ti.min(ti.max(ti.cast(ti.ceil((cj + half_j) * fh), ti.i32), 0), height)

        r = 0
        g = 0
        b = 0
        w = 0
        for y in range(y0, y1):
            for x in range(x0, x1):
                hits = 0
                for k in ti.static(range(4)):
                    i = (ti.cast(x, ti.f32) + 0.25 + 0.5 * (k // 2)) / fw
                    j = (ti.cast(y, ti.f32) + 0.25 + 0.5 * (k % 2)) / fh
                    ray = get_ray(i, j)
                    rec = hit_sphere(ray.origin, ray.direction, sphere, 0.0, T_MAX)
                    hits += rec.hit
                if hits > 0:
                    row = height - 1 - y
                    r += ti.cast(photo[row, x, 0], ti.i32) * hits
                    g += ti.cast(photo[row, x, 1], ti.i32) * hits
                    b += ti.cast(photo[row, x, 2], ti.i32) * hits
                    w += hits

        out[s, 0] = r
        out[s, 1] = g
        out[s, 2] = b
        out[s, 3] = w


def grid_geometry(nb_vert_spheres: int, aspect_ratio: float) -> tuple[float, float, int, int]:
    """Sphere radius, front distance and grid size for n vertical spheres.

    Returns:
        (radius, distance, nb_h, nb_v).

    Raises:
        ValueError: If the grid would be degenerate.
    """
    n = nb_vert_spheres
    denominator = 4.0 * n * aspect_ratio - math.pi
    if n < 1 or denominator <= 0.0:
        raise ValueError(f"number of spheres too small: {n}")
    radius = 2.0 * math.pi / denominator
    nb_h = math.ceil(n * aspect_ratio)
    nb_v = n + 1
    if nb_h < 2:
        raise ValueError(f"number of spheres too small for aspect ratio {aspect_ratio:.3f}")
    return radius, 2.0 + radius, nb_h, nb_v


def generate_from_image(
    scene: Scene,
    camera: CameraContext,
    photo: npt.NDArray[np.uint8],
    nb_vert_spheres: int,
    rng: np.random.Generator | None = None,
) -> int:
    """Add a sphere grid approximating ``photo`` to the scene.

    Requires ti.init() to have been called. The device camera is set to
    ``camera``.

    Args:
        scene: Scene receiving the spheres.
        camera: Camera the photo is seen from; its resolution must be the
            photo's.
        photo: (height, width, 3) uint8 image.
        nb_vert_spheres: Number of spheres along the vertical axis.
        rng: Generator for the colour of spheres covering no pixel.

    Returns:
        The number of spheres added.

    Raises:
        ValueError: For a resolution mismatch or a degenerate grid.
    """
    height, width = photo.shape[:2]
    if (width, height) != (camera.width, camera.height):
        raise ValueError(
            f"photo is {width}x{height} but the camera is {camera.width}x{camera.height}"
        )
    rng = rng or np.random.default_rng()

    radius, distance, nb_h, nb_v = grid_geometry(nb_vert_spheres, camera.aspect_ratio)
    half_i = 1.0 / nb_h / 2.0
    half_j = 1.0 / nb_v / 2.0
    logger.info(
        "extract: radius %.4f, distance %.4f, grid %dx%d", radius, distance, nb_h, nb_v
    )

    count = 2 * nb_h * nb_v
    centers = np.zeros((count, 3), dtype=np.float32)
    radii = np.zeros(count, dtype=np.float32)
    screen = np.zeros((count, 2), dtype=np.float32)

    s = 0
    for idx in range(nb_h * nb_v):
        y, x = divmod(idx, nb_h)
        fi = x / (nb_h - 1.0)
        fj = y / (nb_v - 1.0)
        placements = (
            (fi, fj, distance, radius),
            (fi + half_i, fj + half_j, distance + BACK_SCALE * radius, BACK_SCALE * radius),
        )
        for i, j, dist, r in placements:
            centers[s] = camera.origin + dist * camera.ray_direction(i, j)
            radii[s] = r
            screen[s] = (i, j)
            s += 1

    setup_camera(camera)
    sums = np.zeros((count, 4), dtype=np.int32)
    _sphere_colors(np.ascontiguousarray(photo), centers, radii, screen, half_i, half_j, sums)

    uncovered = 0
    for k in range(count):
        r, g, b, w = (int(v) for v in sums[k])
        if w > 0:
            color = (r // w / 255.0, g // w / 255.0, b // w / 255.0)
        else:
            uncovered += 1
            color = tuple(float(c) / 255.0 for c in rng.integers(0, 256, size=3))
        scene.add(
            Sphere(
                center=(float(centers[k, 0]), float(centers[k, 1]), float(centers[k, 2])),
                radius=float(radii[k]),
                color=color,
            )
        )

    if uncovered:
        logger.warning("extract: %d spheres cover no pixel, using random colours", uncovered)
    logger.info("extract: added %d spheres", count)
    return count

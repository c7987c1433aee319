"""Monte Carlo forest placement.

Conifers are scattered over the ground footprint of the camera by rejection
sampling. Each accepted tree reserves an exclusion circle in the ground
plane; a candidate is rejected when its circle crosses an accepted one,

    (r0 - r1)^2 <= d^2 <= (r0 + r1)^2

with d the distance between centers in the xz plane. After more than
MAX_TRIES consecutive rejections the working width and radius shrink by
SHRINK_FACTOR, so smaller trees fill the remaining gaps and the loop always
terminates. Placement stops once the circles cover ``threshold`` of the
footprint surface. A candidate whose area would bring the covered total up
to the whole footprint surface is rejected as well, so the covered area
always stays below it.

The accepted circles live in a CircleSet, which tests a candidate against
all of them with one numpy expression.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from src.canopy.camera.footprint import Footprint
from src.canopy.config import SNAP_EPSILON
from src.canopy.scene.manager import Scene
from src.canopy.scene.objects import Conifer

logger = logging.getLogger(__name__)

INITIAL_WIDTH = 1.5
CONIFER_LEVELS = 5
MAX_TRIES = 50
SHRINK_FACTOR = 0.8

# Every level of a conifer is a tetrahedron of four triangles
PRIMITIVES_PER_TREE = 4 * CONIFER_LEVELS


@dataclass(frozen=True)
class Circle:
    """Exclusion disk in the ground plane (y is ignored)."""

    center: tuple[float, float, float]
    radius: float

    def intersects(self, other: Circle) -> bool:
        dx = self.center[0] - other.center[0]
        dz = self.center[2] - other.center[2]
        d2 = dx * dx + dz * dz
        r0 = self.radius
        r1 = other.radius
        return (r0 - r1) * (r0 - r1) <= d2 <= (r0 + r1) * (r0 + r1)


class CircleSet:
    """Growable collection of circles with a vectorised crossing test.

    Centers (x, z) and radii are kept in numpy arrays whose capacity doubles
    when full.
    """

    def __init__(self, circles: Iterable[Circle] = (), capacity: int = 1024) -> None:
        self._xz = np.empty((capacity, 2), dtype=np.float64)
        self._radius = np.empty(capacity, dtype=np.float64)
        self._size = 0
        for circle in circles:
            self.add(circle)

    def __len__(self) -> int:
        return self._size

    def add(self, circle: Circle) -> None:
        if self._size == len(self._radius):
            capacity = 2 * max(len(self._radius), 1)
            xz = np.empty((capacity, 2), dtype=np.float64)
            radius = np.empty(capacity, dtype=np.float64)
            xz[: self._size] = self._xz[: self._size]
            radius[: self._size] = self._radius[: self._size]
            self._xz, self._radius = xz, radius
        self._xz[self._size] = (circle.center[0], circle.center[2])
        self._radius[self._size] = circle.radius
        self._size += 1

    def intersects(self, circle: Circle) -> bool:
        """True if ``circle`` crosses any circle of the set."""
        if self._size == 0:
            return False
        offset = self._xz[: self._size] - (circle.center[0], circle.center[2])
        d2 = np.einsum("ij,ij->i", offset, offset)
        radius = self._radius[: self._size]
        lo = (radius - circle.radius) ** 2
        hi = (radius + circle.radius) ** 2
        return bool(np.any((lo <= d2) & (d2 <= hi)))


def generate_forest(
    scene: Scene,
    footprint: Footprint,
    threshold: float,
    rng: np.random.Generator | None = None,
    reserved: Iterable[Circle] = (),
    snap_epsilon: float = SNAP_EPSILON,
    max_trees: int | None = None,
) -> int:
    """Populate the scene with non-overlapping conifers.

    Args:
        scene: The scene the conifers are added to.
        footprint: Ground quadrilateral to cover.
        threshold: Share of the footprint surface to cover, in (0, 1).
        rng: Random generator; a fresh unseeded one when None.
        reserved: Circles that are already taken (e.g. around an owl). They
            block placement but do not count towards the covered area.
        snap_epsilon: Snap threshold of the conifer triangles.
        max_trees: Upper bound on the number of conifers, None for no bound.

    Returns:
        The number of conifers placed.

    Raises:
        ValueError: If the footprint is infinite, threshold is outside (0, 1)
            or the coverage needs more than max_trees conifers.
    """
    if not 0.0 < threshold < 1.0:
        raise ValueError(f"threshold must be in (0, 1), got {threshold}")
    if not footprint.is_finite():
        raise ValueError("footprint is infinite: the camera must look down at the ground")

    surface_total = footprint.surface()
    surface_max = surface_total * threshold
    if surface_max <= 0.0:
        raise ValueError("footprint has no surface")

    rng = rng or np.random.default_rng()
    width = INITIAL_WIDTH
    radius = width / 4.0
    surface = 0.0
    circles = CircleSet(reserved)
    trees = 0
    tries = 0

    while surface < surface_max:
        i, j = rng.random(2)
        pos = footprint.position(i, j)
        factor = 0.7 + 0.6 * rng.random()
        this_radius = radius * factor
        this_width = width * factor
        this_surface = math.pi * this_radius * this_radius
        candidate = Circle((float(pos[0]), float(pos[1]), float(pos[2])), this_radius)

        if surface + this_surface >= surface_total or circles.intersects(candidate):
            tries += 1
            if tries > MAX_TRIES:
                width *= SHRINK_FACTOR
                radius *= SHRINK_FACTOR
                tries = 0
                logger.debug("forest: shrinking trees to width %.4f", width)
            continue

        if max_trees is not None and trees >= max_trees:
            raise ValueError(
                f"forest needs more than {max_trees} conifers "
                f"(covered {surface:.1f} of {surface_max:.1f}): lower the density "
                "or look at a smaller piece of ground"
            )

        tries = 0
        scene.add(Conifer(candidate.center, this_width, CONIFER_LEVELS, snap_epsilon=snap_epsilon))
        circles.add(candidate)
        trees += 1
        surface += this_surface

    logger.info(
        "forest: placed %d conifers covering %.1f of %.1f",
        trees,
        surface,
        surface_total,
    )
    return trees

"""Host-side camera model: eye, angular ray mapping and ground footprint.

The camera looks along a unit ``direction`` from ``origin``. Its image-plane
basis is derived from the fixed world up (0, 1, 0) by cross products:

    right = normalize(world_up x direction)
    up    = direction x right

A normalized image coordinate (i, j) in [0, 1]^2, with the origin at the
bottom-left corner, maps to a direction through two angular offsets around
the center of the image, with a 90 degree horizontal field of view and the
vertical one compensated by the aspect ratio:

    vangle = pi/2 * (j - 1/2) / aspect
    hangle = pi/2 * (i - 1/2)
    v = normalize(sin(vangle) * up    + cos(vangle) * direction)
    h = normalize(sin(hangle) * right + cos(hangle) * direction)
    ray direction = normalize(v + h - direction)

The same mapping runs on the device in src.canopy.camera.angular; this module
is used for scene construction (footprint, extraction, signature) and for
uploading the camera.

Example:
    >>> from src.canopy.camera.eye import CameraContext, Eye
    >>> camera = CameraContext(Eye((0.0, 2.0, 0.0), (0.0, -3.0, 1.0)), 640, 480)
    >>> footprint = camera.footprint()
    >>> footprint.surface() > 0
    True
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from .footprint import Footprint

WORLD_UP = np.array([0.0, 1.0, 0.0])

# The footprint corners are cast slightly outside the image to over-cover it
FOOTPRINT_MARGIN = 0.05

# Directions closer to world up than this are rejected
_PARALLEL_TOLERANCE = 1e-9


@dataclass
class Eye:
    """Eye position and viewing direction.

    Attributes:
        origin: Eye position in world space (x, y, z).
        direction: Viewing direction; normalized by CameraContext.
    """

    origin: tuple[float, float, float]
    direction: tuple[float, float, float]


@dataclass
class CameraContext:
    """Camera basis and image geometry derived from an Eye.

    Attributes:
        eye: The eye the context was built from.
        width: Image width in pixels.
        height: Image height in pixels.
        origin: Eye origin as a NumPy array.
        direction: Unit viewing direction.
        right: Unit vector pointing right in the image plane.
        up: Unit vector pointing up in the image plane.
        aspect_ratio: width / height.

    Raises:
        ValueError: For a zero direction, a direction parallel to world up or
            a non-positive resolution.
    """

    eye: Eye
    width: int
    height: int
    origin: np.ndarray = field(init=False, repr=False)
    direction: np.ndarray = field(init=False, repr=False)
    right: np.ndarray = field(init=False, repr=False)
    up: np.ndarray = field(init=False, repr=False)
    aspect_ratio: float = field(init=False)

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"resolution must be positive, got {self.width}x{self.height}")

        direction = np.asarray(self.eye.direction, dtype=np.float64)
        length = np.linalg.norm(direction)
        if length == 0.0 or not np.isfinite(length):
            raise ValueError(f"eye direction must be a non-zero vector, got {self.eye.direction}")
        direction = direction / length

        right = np.cross(WORLD_UP, direction)
        right_length = np.linalg.norm(right)
        if right_length < _PARALLEL_TOLERANCE:
            raise ValueError("eye direction must not be parallel to world up (0, 1, 0)")

        self.origin = np.asarray(self.eye.origin, dtype=np.float64)
        self.direction = direction
        self.right = right / right_length
        self.up = np.cross(direction, self.right)
        self.aspect_ratio = self.width / self.height

    def ray_direction(self, i: float, j: float) -> np.ndarray:
        """Unit world direction through image coordinate (i, j)."""
        vangle = math.pi / 2.0 * (j - 0.5) / self.aspect_ratio
        hangle = math.pi / 2.0 * (i - 0.5)
        v = math.sin(vangle) * self.up + math.cos(vangle) * self.direction
        v = v / np.linalg.norm(v)
        h = math.sin(hangle) * self.right + math.cos(hangle) * self.direction
        h = h / np.linalg.norm(h)
        d = v + h - self.direction
        return d / np.linalg.norm(d)

    def screen_point(self, i: float, j: float) -> np.ndarray:
        """Point (i, j) of the planar screen one unit in front of the eye.

        The screen spans [-1, 1] along ``right`` and [-1/aspect, 1/aspect]
        along ``up``.
        """
        center = self.origin + self.direction
        return (
            center
            + (2.0 * i - 1.0) * self.right
            + (2.0 * j - 1.0) * self.up / self.aspect_ratio
        )

    def screen_corner(self) -> np.ndarray:
        """Bottom-right corner of the unit-distance screen."""
        return self.screen_point(1.0, 0.0)

    def ground_point(self, i: float, j: float, ground_y: float = 0.0) -> np.ndarray:
        """Where the ray through (i, j) meets the plane y = ground_y.

        Returns:
            The intersection point, or a vector of +inf when the ray looks at
            or above the horizon (or the eye is under the plane).
        """
        d = self.ray_direction(i, j)
        if d[1] >= 0.0:
            return np.full(3, np.inf)
        t = (ground_y - self.origin[1]) / d[1]
        if t <= 0.0:
            return np.full(3, np.inf)
        return self.origin + t * d

    def footprint(self, ground_y: float = 0.0) -> Footprint:
        """Quadrilateral where the camera frustum meets the ground plane.

        The corner rays are cast at -0.05 and 1.05 so that the footprint
        slightly over-covers the image.
        """
        lo = -FOOTPRINT_MARGIN
        hi = 1.0 + FOOTPRINT_MARGIN
        return Footprint(
            bottom_left=self.ground_point(lo, lo, ground_y),
            bottom_right=self.ground_point(hi, lo, ground_y),
            top_right=self.ground_point(hi, hi, ground_y),
            top_left=self.ground_point(lo, hi, ground_y),
        )

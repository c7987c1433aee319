"""Ground footprint of the camera frustum."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass
class Footprint:
    """Four world-space points where the frustum corners meet the ground.

    A corner whose ray misses the ground (looks above the horizon) holds
    +inf in every component.
    """

    bottom_left: np.ndarray
    bottom_right: np.ndarray
    top_right: np.ndarray
    top_left: np.ndarray

    def corners(self) -> list[np.ndarray]:
        return [self.bottom_left, self.bottom_right, self.top_right, self.top_left]

    def is_finite(self) -> bool:
        """True if all four corners hit the ground."""
        return all(np.all(np.isfinite(c)) for c in self.corners())

    def position(self, i: float, j: float) -> np.ndarray:
        """Bilinear interpolation of the corners; (0, 0) is bottom-left."""
        bottom = self.bottom_left + i * (self.bottom_right - self.bottom_left)
        top = self.top_left + i * (self.top_right - self.top_left)
        return bottom + j * (top - bottom)

    def surface(self) -> float:
        """Area of the quadrilateral projected on the ground (xz) plane.

        Returns:
            The area from the shoelace formula, or +inf when a corner is
            infinite.
        """
        if not self.is_finite():
            return float("inf")
        xs = [float(c[0]) for c in self.corners()]
        zs = [float(c[2]) for c in self.corners()]
        twice_area = 0.0
        for k in range(4):
            twice_area += xs[k] * zs[(k + 1) % 4] - xs[(k + 1) % 4] * zs[k]
        return abs(twice_area) / 2.0

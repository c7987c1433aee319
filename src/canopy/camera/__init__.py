"""Camera model.

Components:
    eye: Host camera (eye, basis, angular mapping, ground footprint)
    footprint: Ground quadrilateral seen by the camera
    angular: Device ray generation; allocates Taichi fields, import it
        after ti.init()
"""

from .eye import FOOTPRINT_MARGIN, WORLD_UP, CameraContext, Eye
from .footprint import Footprint

__all__ = [
    "Eye",
    "CameraContext",
    "Footprint",
    "FOOTPRINT_MARGIN",
    "WORLD_UP",
]

"""Scene description, persistence and procedural generation.

Components:
    objects: Host scene objects and their flattening into primitives
    manager: Scene container, sun presets, JSON persistence, device upload
    forest: Monte Carlo conifer placement
    signature: Dot-font label stamped in the corner of the view
    intersection: Device scene tables and nearest-hit queries (import after
        ti.init())
    extraction: Photo to sphere grid (import after ti.init())
"""

from .forest import Circle, generate_forest
from .manager import BLUE_SUN, GOLDEN_SUN, SUN_PRESETS, Scene, Sun
from .objects import (
    Conifer,
    Ellipsoid,
    Owl,
    Plane,
    Primitive,
    PrimitiveKind,
    SceneObject,
    Signature,
    Sphere,
    Tetrahedron,
    Triangle,
    object_from_dict,
)
from .signature import make_signature

__all__ = [
    "Scene",
    "Sun",
    "GOLDEN_SUN",
    "BLUE_SUN",
    "SUN_PRESETS",
    "SceneObject",
    "Primitive",
    "PrimitiveKind",
    "Plane",
    "Sphere",
    "Ellipsoid",
    "Triangle",
    "Tetrahedron",
    "Conifer",
    "Owl",
    "Signature",
    "object_from_dict",
    "Circle",
    "generate_forest",
    "make_signature",
]

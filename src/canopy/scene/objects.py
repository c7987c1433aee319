"""Host-side scene objects.

Every object a scene can hold is a plain dataclass that knows how to

* flatten itself into device primitives (``primitives()``),
* report an optional bounding sphere (``bounds()``), used to reject the whole
  object before its children are tested,
* serialize itself (``to_dict()`` / ``from_dict()``).

The primitive kinds understood by the render kernels form a closed set
(PrimitiveKind); compound objects such as Tetrahedron, Conifer, Owl and
Signature are made of those kinds only. This module does not import Taichi,
so scenes can be built, saved and loaded without initializing a backend.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, ClassVar

import numpy as np

from src.canopy.config import SNAP_EPSILON
from src.canopy.core.color import rgb

logger = logging.getLogger(__name__)

Vec3 = tuple[float, float, float]

GREY: Vec3 = (0.5, 0.5, 0.5)
GROUND_GREEN = rgb(86, 125, 70)
CONIFER_GREEN = rgb(34, 85, 40)
OWL_BROWN = rgb(120, 85, 60)
OWL_HEAD = rgb(140, 100, 70)
OWL_EYE = rgb(240, 230, 200)
OWL_PUPIL = rgb(20, 20, 20)
OWL_BEAK = rgb(230, 170, 40)
SIGNATURE_RED = rgb(254, 55, 32)


class PrimitiveKind(IntEnum):
    """Device primitive kinds, dispatched by hit_primitive."""

    PLANE = 0
    SPHERE = 1
    ELLIPSOID = 2
    TRIANGLE = 3


@dataclass(frozen=True)
class Primitive:
    """One flattened device primitive.

    The meaning of the slots depends on the kind:

    ========= =========== =========== ====== ======== ======
    kind      p0          p1          p2     normal   radius
    ========= =========== =========== ====== ======== ======
    PLANE     point       .           .      normal   .
    SPHERE    center      .           .      .        radius
    ELLIPSOID center      radii       .      .        .
    TRIANGLE  a           b           c      normal   .
    ========= =========== =========== ====== ======== ======
    """

    kind: PrimitiveKind
    color: Vec3
    p0: Vec3 = (0.0, 0.0, 0.0)
    p1: Vec3 = (0.0, 0.0, 0.0)
    p2: Vec3 = (0.0, 0.0, 0.0)
    normal: Vec3 = (0.0, 0.0, 0.0)
    radius: float = 0.0

    def extent(self) -> tuple[np.ndarray, np.ndarray] | None:
        """Axis-aligned box (lo, hi) around the primitive, None if unbounded."""
        if self.kind == PrimitiveKind.PLANE:
            return None
        if self.kind == PrimitiveKind.SPHERE:
            c = np.asarray(self.p0)
            return c - self.radius, c + self.radius
        if self.kind == PrimitiveKind.ELLIPSOID:
            c = np.asarray(self.p0)
            r = np.abs(np.asarray(self.p1))
            return c - r, c + r
        pts = np.array([self.p0, self.p1, self.p2])
        return pts.min(axis=0), pts.max(axis=0)


# =============================================================================
# Helpers
# =============================================================================


def as_vec3(value: Any, name: str = "vector") -> Vec3:
    """Convert a 3-sequence of numbers to a float tuple.

    Raises:
        ValueError: If value does not hold exactly three numbers.
    """
    try:
        items = [float(x) for x in value]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be 3 numbers, got {value!r}") from exc
    if len(items) != 3:
        raise ValueError(f"{name} must be 3 numbers, got {len(items)}")
    return (items[0], items[1], items[2])


def snap(v: Sequence[float], epsilon: float = SNAP_EPSILON) -> Vec3:
    """Replace components with magnitude below epsilon by an exact 0.0."""
    return tuple(0.0 if abs(x) < epsilon else float(x) for x in v)  # type: ignore[return-value]


def normalized(v: Sequence[float]) -> Vec3:
    """Return v scaled to unit length. v must not be the zero vector."""
    arr = np.asarray(v, dtype=np.float64)
    arr = arr / np.linalg.norm(arr)
    return (float(arr[0]), float(arr[1]), float(arr[2]))


def bounding_sphere(prims: Iterable[Primitive]) -> tuple[Vec3, float] | None:
    """Sphere enclosing the bounding box of all bounded primitives."""
    boxes = [box for box in (p.extent() for p in prims) if box is not None]
    if not boxes:
        return None
    lo = np.min([b[0] for b in boxes], axis=0)
    hi = np.max([b[1] for b in boxes], axis=0)
    center = (lo + hi) / 2.0
    radius = float(np.linalg.norm(hi - lo) / 2.0)
    return (float(center[0]), float(center[1]), float(center[2])), radius


def _vec_to_list(v: Sequence[float]) -> list[float]:
    return [float(x) for x in v]


def _require(data: dict[str, Any], key: str) -> Any:
    if key not in data:
        raise ValueError(f"missing key '{key}'")
    return data[key]


# =============================================================================
# Scene objects
# =============================================================================


class SceneObject:
    """Base class of everything a Scene holds."""

    type_name: ClassVar[str] = ""

    def primitives(self) -> list[Primitive]:
        raise NotImplementedError

    def bounds(self) -> tuple[Vec3, float] | None:
        """Bounding sphere (center, radius), or None to test children directly."""
        return None

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SceneObject:
        raise NotImplementedError


@dataclass
class Plane(SceneObject):
    """Infinite plane through point with the given normal."""

    type_name: ClassVar[str] = "plane"

    point: Vec3
    normal: Vec3
    color: Vec3 = GROUND_GREEN

    def primitives(self) -> list[Primitive]:
        return [
            Primitive(
                kind=PrimitiveKind.PLANE,
                color=self.color,
                p0=self.point,
                normal=normalized(self.normal),
            )
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "point": _vec_to_list(self.point),
            "normal": _vec_to_list(self.normal),
            "color": _vec_to_list(self.color),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Plane:
        normal = as_vec3(_require(data, "normal"), "normal")
        if not any(normal):
            raise ValueError("key 'normal' must not be the zero vector")
        return cls(
            point=as_vec3(_require(data, "point"), "point"),
            normal=normal,
            color=as_vec3(data.get("color", GROUND_GREEN), "color"),
        )


@dataclass
class Sphere(SceneObject):
    """Sphere with center and radius."""

    type_name: ClassVar[str] = "sphere"

    center: Vec3
    radius: float
    color: Vec3 = GREY

    def primitives(self) -> list[Primitive]:
        return [
            Primitive(
                kind=PrimitiveKind.SPHERE,
                color=self.color,
                p0=self.center,
                radius=self.radius,
            )
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "center": _vec_to_list(self.center),
            "radius": float(self.radius),
            "color": _vec_to_list(self.color),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Sphere:
        radius = float(_require(data, "radius"))
        if radius <= 0.0:
            raise ValueError(f"key 'radius' must be positive, got {radius}")
        return cls(
            center=as_vec3(_require(data, "center"), "center"),
            radius=radius,
            color=as_vec3(data.get("color", GREY), "color"),
        )


@dataclass
class Ellipsoid(SceneObject):
    """Axis-aligned ellipsoid with per-axis radii."""

    type_name: ClassVar[str] = "ellipsoid"

    center: Vec3
    radii: Vec3
    color: Vec3 = GREY

    def primitives(self) -> list[Primitive]:
        return [
            Primitive(
                kind=PrimitiveKind.ELLIPSOID,
                color=self.color,
                p0=self.center,
                p1=self.radii,
            )
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "center": _vec_to_list(self.center),
            "radii": _vec_to_list(self.radii),
            "color": _vec_to_list(self.color),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Ellipsoid:
        radii = as_vec3(_require(data, "radii"), "radii")
        if min(radii) <= 0.0:
            raise ValueError(f"key 'radii' must be positive, got {radii}")
        return cls(
            center=as_vec3(_require(data, "center"), "center"),
            radii=radii,
            color=as_vec3(data.get("color", GREY), "color"),
        )


@dataclass
class Triangle(SceneObject):
    """Triangle ABC.

    Vertex components closer to zero than snap_epsilon are snapped to exactly
    0.0 at construction, which removes the sign noise trigonometric vertex
    placement leaves behind before the normal is computed.
    """

    type_name: ClassVar[str] = "triangle"

    a: Vec3
    b: Vec3
    c: Vec3
    color: Vec3 = GREY
    snap_epsilon: float = field(default=SNAP_EPSILON, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.a = snap(self.a, self.snap_epsilon)
        self.b = snap(self.b, self.snap_epsilon)
        self.c = snap(self.c, self.snap_epsilon)

    @property
    def normal(self) -> Vec3:
        """Unit normal of (B - A) x (C - A); zero for a degenerate triangle."""
        a = np.asarray(self.a)
        n = np.cross(np.asarray(self.b) - a, np.asarray(self.c) - a)
        length = np.linalg.norm(n)
        if length == 0.0:
            return (0.0, 0.0, 0.0)
        n = n / length
        return (float(n[0]), float(n[1]), float(n[2]))

    def primitives(self) -> list[Primitive]:
        normal = self.normal
        if normal == (0.0, 0.0, 0.0):
            logger.warning("degenerate triangle %s %s %s", self.a, self.b, self.c)
        return [
            Primitive(
                kind=PrimitiveKind.TRIANGLE,
                color=self.color,
                p0=self.a,
                p1=self.b,
                p2=self.c,
                normal=normal,
            )
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "a": _vec_to_list(self.a),
            "b": _vec_to_list(self.b),
            "c": _vec_to_list(self.c),
            "color": _vec_to_list(self.color),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Triangle:
        return cls(
            a=as_vec3(_require(data, "a"), "a"),
            b=as_vec3(_require(data, "b"), "b"),
            c=as_vec3(_require(data, "c"), "c"),
            color=as_vec3(data.get("color", GREY), "color"),
        )


@dataclass
class Tetrahedron(SceneObject):
    """Tetrahedron standing on a horizontal triangular base.

    The three base vertices lie on a circle of radius ``width`` around
    ``base_center``, at 120 degree steps starting at ``rotation`` radians.
    The apex is ``height`` above the base center (below it when height is
    negative).
    """

    type_name: ClassVar[str] = "tetrahedron"

    base_center: Vec3
    width: float
    height: float
    rotation: float = 0.0
    color: Vec3 = GREY
    snap_epsilon: float = field(default=SNAP_EPSILON, repr=False, compare=False)

    def vertices(self) -> tuple[Vec3, Vec3, Vec3, Vec3]:
        """Base vertices b0, b1, b2 followed by the apex."""
        cx, cy, cz = self.base_center
        base = []
        for k in range(3):
            angle = self.rotation + k * 2.0 * math.pi / 3.0
            base.append(
                (
                    cx + self.width * math.cos(angle),
                    cy,
                    cz + self.width * math.sin(angle),
                )
            )
        apex = (cx, cy + self.height, cz)
        return base[0], base[1], base[2], apex

    def faces(self) -> list[Triangle]:
        b0, b1, b2, apex = self.vertices()
        eps = self.snap_epsilon
        return [
            Triangle(b0, b1, b2, self.color, eps),
            Triangle(b0, b1, apex, self.color, eps),
            Triangle(b1, b2, apex, self.color, eps),
            Triangle(b2, b0, apex, self.color, eps),
        ]

    def primitives(self) -> list[Primitive]:
        return [p for face in self.faces() for p in face.primitives()]

    def bounds(self) -> tuple[Vec3, float] | None:
        return bounding_sphere(self.primitives())

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "base_center": _vec_to_list(self.base_center),
            "width": float(self.width),
            "height": float(self.height),
            "rotation": float(self.rotation),
            "color": _vec_to_list(self.color),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Tetrahedron:
        return cls(
            base_center=as_vec3(_require(data, "base_center"), "base_center"),
            width=float(_require(data, "width")),
            height=float(_require(data, "height")),
            rotation=float(data.get("rotation", 0.0)),
            color=as_vec3(data.get("color", GREY), "color"),
        )


@dataclass
class Conifer(SceneObject):
    """A fir tree: a stack of tetrahedra of decreasing size.

    Level k (0 at the bottom) has its base at height width * (0.15 + 0.35 k)
    above ``position`` and shrinks linearly with k. Every other level is
    rotated by 180 degrees so that the branches interleave.
    """

    type_name: ClassVar[str] = "conifer"

    position: Vec3
    width: float
    levels: int = 5
    color: Vec3 = CONIFER_GREEN
    snap_epsilon: float = field(default=SNAP_EPSILON, repr=False, compare=False)

    def tetrahedra(self) -> list[Tetrahedron]:
        x, y, z = self.position
        w = self.width
        n = self.levels
        result = []
        for k in range(n):
            shrink = 1.0 - k / (n + 1.0)
            result.append(
                Tetrahedron(
                    base_center=(x, y + w * (0.15 + 0.35 * k), z),
                    width=0.5 * w * shrink,
                    height=0.9 * w * shrink,
                    rotation=math.pi if k % 2 else 0.0,
                    color=self.color,
                    snap_epsilon=self.snap_epsilon,
                )
            )
        return result

    def primitives(self) -> list[Primitive]:
        return [p for tet in self.tetrahedra() for p in tet.primitives()]

    def bounds(self) -> tuple[Vec3, float] | None:
        return bounding_sphere(self.primitives())

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "position": _vec_to_list(self.position),
            "width": float(self.width),
            "levels": int(self.levels),
            "color": _vec_to_list(self.color),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Conifer:
        levels = _require(data, "levels")
        if not isinstance(levels, int) or levels < 1:
            raise ValueError(f"key 'levels' must be a positive integer, got {levels!r}")
        return cls(
            position=as_vec3(_require(data, "position"), "position"),
            width=float(_require(data, "width")),
            levels=levels,
            color=as_vec3(data.get("color", CONIFER_GREEN), "color"),
        )


@dataclass
class Owl(SceneObject):
    """A perched owl facing -z, built from a few primitives.

    ``center`` is the center of the body; every part scales with ``scale``.
    """

    type_name: ClassVar[str] = "owl"

    center: Vec3
    scale: float = 1.0

    def parts(self) -> list[SceneObject]:
        cx, cy, cz = self.center
        s = self.scale
        head_y = cy + 0.95 * s
        parts: list[SceneObject] = [
            Ellipsoid((cx, cy, cz), (0.5 * s, 0.7 * s, 0.45 * s), OWL_BROWN),
            Sphere((cx, head_y, cz), 0.4 * s, OWL_HEAD),
        ]
        for side in (-1.0, 1.0):
            ex = cx + side * 0.16 * s
            parts.append(Sphere((ex, head_y + 0.05 * s, cz - 0.33 * s), 0.12 * s, OWL_EYE))
            parts.append(Sphere((ex, head_y + 0.05 * s, cz - 0.43 * s), 0.05 * s, OWL_PUPIL))
            parts.append(
                Tetrahedron(
                    base_center=(cx + side * 0.22 * s, head_y + 0.3 * s, cz),
                    width=0.1 * s,
                    height=0.25 * s,
                    color=OWL_HEAD,
                )
            )
        # Downward-pointing beak between the eyes
        parts.append(
            Tetrahedron(
                base_center=(cx, head_y - 0.05 * s, cz - 0.38 * s),
                width=0.07 * s,
                height=-0.15 * s,
                rotation=math.pi / 2.0,
                color=OWL_BEAK,
            )
        )
        return parts

    def primitives(self) -> list[Primitive]:
        return [p for part in self.parts() for p in part.primitives()]

    def bounds(self) -> tuple[Vec3, float] | None:
        return bounding_sphere(self.primitives())

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "center": _vec_to_list(self.center),
            "scale": float(self.scale),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Owl:
        return cls(
            center=as_vec3(_require(data, "center"), "center"),
            scale=float(data.get("scale", 1.0)),
        )


@dataclass
class Signature(SceneObject):
    """A label stamped as a grid of small spheres.

    Build it with src.canopy.scene.signature.make_signature(), which positions
    the dots relative to the camera.
    """

    type_name: ClassVar[str] = "signature"

    centers: list[Vec3]
    radius: float
    color: Vec3 = SIGNATURE_RED

    def primitives(self) -> list[Primitive]:
        return [
            Primitive(kind=PrimitiveKind.SPHERE, color=self.color, p0=c, radius=self.radius)
            for c in self.centers
        ]

    def bounds(self) -> tuple[Vec3, float] | None:
        return bounding_sphere(self.primitives())

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type_name,
            "centers": [_vec_to_list(c) for c in self.centers],
            "radius": float(self.radius),
            "color": _vec_to_list(self.color),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Signature:
        centers = _require(data, "centers")
        if not isinstance(centers, list):
            raise ValueError("key 'centers' must be a list")
        return cls(
            centers=[as_vec3(c, "centers") for c in centers],
            radius=float(_require(data, "radius")),
            color=as_vec3(data.get("color", SIGNATURE_RED), "color"),
        )


OBJECT_TYPES: dict[str, type[SceneObject]] = {
    cls.type_name: cls
    for cls in (Plane, Sphere, Ellipsoid, Triangle, Tetrahedron, Conifer, Owl, Signature)
}


def object_from_dict(data: dict[str, Any]) -> SceneObject:
    """Rebuild a scene object from its to_dict() form.

    Raises:
        ValueError: If the type is unknown or a key is missing or malformed.
    """
    if not isinstance(data, dict):
        raise ValueError(f"object must be a mapping, got {type(data).__name__}")
    type_name = data.get("type")
    cls = OBJECT_TYPES.get(type_name)  # type: ignore[arg-type]
    if cls is None:
        raise ValueError(f"unknown object type {type_name!r}")
    return cls.from_dict(data)

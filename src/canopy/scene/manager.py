"""Scene container: objects, directional light and persistence.

A Scene is an ordered list of scene objects (see src.canopy.scene.objects)
plus an optional Sun. It is built on the host, optionally saved to and
loaded from JSON, and uploaded once into the device tables before
rendering. Rendering never mutates it.

The JSON layout is::

    {
      "objects": [{"type": "conifer", "position": [...], ...}, ...],
      "sun": {"direction": [...], "color": [...], "softness": 0.8} | null
    }

Floats are written with their shortest round-tripping repr, so a loaded scene
is identical to the saved one bit for bit.

Example:
    >>> from src.canopy.scene.manager import Scene
    >>> from src.canopy.scene.objects import Sphere
    >>> scene = Scene()
    >>> scene.add_ground()
    >>> scene.add(Sphere((0.0, 1.0, 5.0), 1.0))
    >>> scene.set_golden_sun()
    >>> scene.save("scene.json")
"""

from __future__ import annotations

import json
import logging
import math
import os
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from src.canopy.config import RenderConfig
from src.canopy.core.color import rgb
from src.canopy.scene.objects import (
    Plane,
    SceneObject,
    as_vec3,
    object_from_dict,
)

logger = logging.getLogger(__name__)

Vec3 = tuple[float, float, float]


@dataclass(frozen=True)
class Sun:
    """Directional light.

    Attributes:
        direction: Direction towards the sun (normalized when uploaded).
        color: Light colour (RGB in [0, 1]).
        softness: Shadow intensity control in (0, 1]. Lit points are blended
            towards the sun colour by 1 - softness, shadowed points are
            scaled by softness.
    """

    direction: Vec3
    color: Vec3
    softness: float

    def __post_init__(self) -> None:
        if not 0.0 < self.softness <= 1.0:
            raise ValueError(f"softness must be in (0, 1], got {self.softness}")
        if not any(self.direction):
            raise ValueError("sun direction must not be the zero vector")

    def to_dict(self) -> dict[str, Any]:
        return {
            "direction": list(self.direction),
            "color": list(self.color),
            "softness": self.softness,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Sun:
        for key in ("direction", "color", "softness"):
            if key not in data:
                raise ValueError(f"sun: missing key '{key}'")
        return cls(
            direction=as_vec3(data["direction"], "sun direction"),
            color=as_vec3(data["color"], "sun color"),
            softness=float(data["softness"]),
        )


def _normalized(v: Vec3) -> Vec3:
    length = math.sqrt(v[0] * v[0] + v[1] * v[1] + v[2] * v[2])
    return (v[0] / length, v[1] / length, v[2] / length)


GOLDEN_SUN = Sun(_normalized((3.0, 1.0, -3.0)), rgb(242, 144, 45), 0.8)
BLUE_SUN = Sun(_normalized((-3.0, 1.0, 0.0)), rgb(21, 116, 196), 0.9)

SUN_PRESETS: dict[str, Sun | None] = {
    "golden": GOLDEN_SUN,
    "blue": BLUE_SUN,
    "none": None,
}


class Scene:
    """Ordered collection of scene objects with an optional sun.

    Attributes:
        objects: The scene objects in insertion order.
        sun: The directional light, or None.
    """

    def __init__(
        self, objects: Iterable[SceneObject] = (), sun: Sun | None = None
    ) -> None:
        self.objects: list[SceneObject] = list(objects)
        self.sun = sun

    def __len__(self) -> int:
        return len(self.objects)

    def __iter__(self) -> Iterator[SceneObject]:
        return iter(self.objects)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Scene):
            return NotImplemented
        return self.objects == other.objects and self.sun == other.sun

    def __repr__(self) -> str:
        return f"Scene(objects={len(self.objects)}, sun={self.sun!r})"

    # =========================================================================
    # Construction
    # =========================================================================

    def add(self, obj: SceneObject) -> None:
        """Append an object to the scene."""
        self.objects.append(obj)

    def extend(self, objects: Iterable[SceneObject]) -> None:
        self.objects.extend(objects)

    def add_ground(self, y: float = 0.0) -> Plane:
        """Add the horizontal ground plane y = ``y``."""
        ground = Plane(point=(0.0, y, 0.0), normal=(0.0, 1.0, 0.0))
        self.add(ground)
        return ground

    def set_sun(self, sun: Sun | None) -> None:
        self.sun = sun

    def set_golden_sun(self) -> None:
        """Low warm sun from the back right."""
        self.set_sun(GOLDEN_SUN)

    def set_blue_sun(self) -> None:
        """Cold light from the left."""
        self.set_sun(BLUE_SUN)

    def primitive_count(self) -> int:
        """Number of device primitives the scene flattens into."""
        return sum(len(obj.primitives()) for obj in self.objects)

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        return {
            "objects": [obj.to_dict() for obj in self.objects],
            "sun": None if self.sun is None else self.sun.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Scene:
        """Load a scene from a dictionary.

        Args:
            data: Dictionary with 'objects' and 'sun' keys.

        Raises:
            ValueError: If the data is malformed. The message names the index
                of the offending object.
        """
        if not isinstance(data, dict):
            raise ValueError("scene must be a JSON object")
        raw_objects = data.get("objects")
        if not isinstance(raw_objects, list):
            raise ValueError("scene: 'objects' must be a list")

        objects = []
        for index, raw in enumerate(raw_objects):
            try:
                objects.append(object_from_dict(raw))
            except ValueError as exc:
                raise ValueError(f"object {index}: {exc}") from exc

        raw_sun = data.get("sun")
        sun = None
        if raw_sun is not None:
            if not isinstance(raw_sun, dict):
                raise ValueError("scene: 'sun' must be an object or null")
            sun = Sun.from_dict(raw_sun)
        return cls(objects, sun)

    def save(self, filepath: str | os.PathLike[str]) -> None:
        """Write the scene as pretty-printed JSON."""
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
            f.write("\n")
        logger.info("saved %d objects to %s", len(self.objects), filepath)

    @classmethod
    def load(cls, filepath: str | os.PathLike[str]) -> Scene:
        """Read a scene written by save().

        Raises:
            OSError: If the file cannot be read.
            ValueError: If the file is not valid JSON or not a valid scene.
        """
        with open(filepath, encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as exc:
                raise ValueError(f"{filepath}: invalid JSON: {exc}") from exc
        scene = cls.from_dict(data)
        logger.info("loaded %d objects from %s", len(scene.objects), filepath)
        return scene

    # =========================================================================
    # Device upload
    # =========================================================================

    def upload(self, config: RenderConfig | None = None) -> int:
        """Upload objects, sun and render configuration to the device.

        Requires ti.init() to have been called.

        Args:
            config: Integrator settings; defaults to RenderConfig().

        Returns:
            The number of device primitives.
        """
        from src.canopy.core.integrator import setup_render_config, setup_sun
        from src.canopy.scene.intersection import upload_scene

        config = config or RenderConfig()
        count = upload_scene(self.objects, config.parallel_epsilon)
        setup_render_config(config)
        setup_sun(self.sun)
        return count

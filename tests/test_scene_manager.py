"""Unit tests for the Scene container.

Tests cover:
- Object and ground insertion
- Sun presets and validation
- Primitive counting
- JSON serialization (to_dict, from_dict, save, load)
- Error reporting for malformed scene files
- Device upload
"""

import json

import pytest

from src.canopy.scene.manager import BLUE_SUN, GOLDEN_SUN, SUN_PRESETS, Scene, Sun
from src.canopy.scene.objects import Conifer, Ellipsoid, Owl, Plane, Sphere, Triangle


@pytest.fixture
def forest_scene():
    """A small scene holding one object of each kind and a sun."""
    scene = Scene()
    scene.add_ground()
    scene.add(Sphere((0.0, 1.0, 5.0), 1.0, color=(0.9, 0.1, 0.1)))
    scene.add(Ellipsoid((2.0, 1.0, 6.0), (0.5, 1.0, 0.5)))
    scene.add(Triangle((0.0, 0.0, 1.0), (1.0, 0.0, 1.0), (0.0, 1.0, 1.0)))
    scene.add(Conifer((-2.0, 0.0, 8.0), 1.2))
    scene.add(Owl((1.0, 0.7, 4.0), 0.5))
    scene.set_golden_sun()
    return scene


class TestConstruction:
    """Tests for building scenes."""

    def test_empty_scene(self):
        scene = Scene()
        assert len(scene) == 0
        assert scene.sun is None
        assert scene.primitive_count() == 0

    def test_add_ground(self):
        scene = Scene()
        ground = scene.add_ground(y=-1.0)
        assert isinstance(ground, Plane)
        assert ground.point == (0.0, -1.0, 0.0)
        assert ground.normal == (0.0, 1.0, 0.0)
        assert list(scene) == [ground]

    def test_insertion_order(self):
        scene = Scene()
        a = Sphere((0.0, 0.0, 1.0), 1.0)
        b = Sphere((0.0, 0.0, 2.0), 2.0)
        scene.add(a)
        scene.extend([b])
        assert scene.objects == [a, b]

    def test_primitive_count(self, forest_scene):
        # plane + sphere + ellipsoid + triangle + 5 levels x 4 faces + owl
        assert forest_scene.primitive_count() == 1 + 1 + 1 + 1 + 20 + 18

    def test_sun_presets(self):
        scene = Scene()
        scene.set_golden_sun()
        assert scene.sun is GOLDEN_SUN
        scene.set_blue_sun()
        assert scene.sun is BLUE_SUN
        scene.set_sun(SUN_PRESETS["none"])
        assert scene.sun is None

    def test_preset_directions_are_unit(self):
        for sun in (GOLDEN_SUN, BLUE_SUN):
            assert sum(c * c for c in sun.direction) == pytest.approx(1.0)
            assert sun.direction[1] > 0.0


class TestSun:
    """Tests for Sun validation."""

    @pytest.mark.parametrize("softness", [0.0, -0.5, 1.5])
    def test_softness_out_of_range(self, softness):
        with pytest.raises(ValueError, match="softness"):
            Sun((0.0, 1.0, 0.0), (1.0, 1.0, 1.0), softness)

    def test_softness_one_allowed(self):
        sun = Sun((0.0, 1.0, 0.0), (1.0, 1.0, 1.0), 1.0)
        assert sun.softness == 1.0

    def test_zero_direction(self):
        with pytest.raises(ValueError, match="zero vector"):
            Sun((0.0, 0.0, 0.0), (1.0, 1.0, 1.0), 0.5)

    def test_missing_key(self):
        with pytest.raises(ValueError, match="softness"):
            Sun.from_dict({"direction": [0, 1, 0], "color": [1, 1, 1]})


class TestSerialization:
    """Tests for scene serialization."""

    def test_dict_round_trip(self, forest_scene):
        restored = Scene.from_dict(forest_scene.to_dict())
        assert restored == forest_scene

    def test_dict_is_json_compatible(self, forest_scene):
        data = json.loads(json.dumps(forest_scene.to_dict()))
        assert Scene.from_dict(data) == forest_scene

    def test_file_round_trip(self, forest_scene, tmp_path):
        path = tmp_path / "forest.json"
        forest_scene.save(path)
        assert Scene.load(path) == forest_scene

    def test_scene_without_sun(self, tmp_path):
        scene = Scene([Sphere((0.0, 0.0, 3.0), 0.5)])
        path = tmp_path / "nosun.json"
        scene.save(path)
        data = json.loads(path.read_text())
        assert data["sun"] is None
        assert Scene.load(path).sun is None

    def test_floats_survive_exactly(self, tmp_path):
        scene = Scene([Sphere((0.1, 1.0 / 3.0, 2.0 / 7.0), 0.7)])
        path = tmp_path / "exact.json"
        scene.save(path)
        assert Scene.load(path).objects[0].center == (0.1, 1.0 / 3.0, 2.0 / 7.0)


class TestMalformedScenes:
    """Tests for error reporting while loading."""

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{ not json")
        with pytest.raises(ValueError, match="invalid JSON"):
            Scene.load(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            Scene.load(tmp_path / "missing.json")

    def test_not_an_object(self):
        with pytest.raises(ValueError, match="JSON object"):
            Scene.from_dict([1, 2, 3])

    def test_objects_not_a_list(self):
        with pytest.raises(ValueError, match="'objects' must be a list"):
            Scene.from_dict({"objects": {}, "sun": None})

    def test_bad_object_names_its_index(self):
        data = {
            "objects": [
                {"type": "sphere", "center": [0, 0, 1], "radius": 1.0},
                {"type": "sphere", "center": [0, 0, 1]},
            ],
            "sun": None,
        }
        with pytest.raises(ValueError, match="object 1: missing key 'radius'"):
            Scene.from_dict(data)

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="object 0: unknown object type 'cube'"):
            Scene.from_dict({"objects": [{"type": "cube"}], "sun": None})

    def test_bad_sun(self):
        with pytest.raises(ValueError, match="'sun' must be an object"):
            Scene.from_dict({"objects": [], "sun": "golden"})

    def test_bad_sun_softness(self):
        data = {
            "objects": [],
            "sun": {"direction": [0, 1, 0], "color": [1, 1, 1], "softness": 2.0},
        }
        with pytest.raises(ValueError, match="softness"):
            Scene.from_dict(data)


class TestUpload:
    """Tests for uploading a scene to the device tables."""

    def test_upload_returns_primitive_count(self, forest_scene):
        from src.canopy.core.integrator import is_sun_enabled
        from src.canopy.scene.intersection import get_object_count, get_primitive_count

        count = forest_scene.upload()
        assert count == forest_scene.primitive_count()
        assert get_primitive_count() == count
        assert get_object_count() == len(forest_scene)
        assert is_sun_enabled()

    def test_upload_without_sun(self):
        from src.canopy.core.integrator import is_sun_enabled

        scene = Scene([Sphere((0.0, 0.0, 3.0), 0.5)])
        assert scene.upload() == 1
        assert not is_sun_enabled()

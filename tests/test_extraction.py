"""Tests for photo extraction into a sphere grid."""

import math

import numpy as np
import pytest


class TestGridGeometry:
    def test_radius_and_distance(self):
        from src.canopy.scene.extraction import grid_geometry

        radius, distance, nb_h, nb_v = grid_geometry(10, 1.0)
        assert radius == pytest.approx(2.0 * math.pi / (40.0 - math.pi))
        assert distance == pytest.approx(2.0 + radius)
        assert nb_h == 10
        assert nb_v == 11

    def test_wide_image_has_more_columns(self):
        from src.canopy.scene.extraction import grid_geometry

        _, _, nb_h, nb_v = grid_geometry(9, 2.0)
        assert nb_h == 18
        assert nb_v == 10

    @pytest.mark.parametrize("n", [0, -3])
    def test_too_few_spheres(self, n):
        from src.canopy.scene.extraction import grid_geometry

        with pytest.raises(ValueError, match="too small"):
            grid_geometry(n, 1.0)

    def test_single_column(self):
        from src.canopy.scene.extraction import grid_geometry

        with pytest.raises(ValueError, match="too small"):
            grid_geometry(1, 0.9)


class TestGenerateFromImage:
    WIDTH = 8
    HEIGHT = 6

    def _camera(self):
        from src.canopy.camera.eye import CameraContext, Eye

        return CameraContext(Eye((0.0, 0.0, 0.0), (0.0, 0.0, 1.0)), self.WIDTH, self.HEIGHT)

    def _photo(self):
        """Left half red, right half blue."""
        photo = np.zeros((self.HEIGHT, self.WIDTH, 3), dtype=np.uint8)
        photo[:, : self.WIDTH // 2] = (255, 0, 0)
        photo[:, self.WIDTH // 2 :] = (0, 0, 255)
        return photo

    def test_sphere_count_and_layout(self):
        from src.canopy.scene.extraction import BACK_SCALE, generate_from_image, grid_geometry
        from src.canopy.scene.manager import Scene

        camera = self._camera()
        scene = Scene()
        count = generate_from_image(
            scene, camera, self._photo(), 3, rng=np.random.default_rng(0)
        )
        radius, distance, nb_h, nb_v = grid_geometry(3, camera.aspect_ratio)
        assert count == len(scene) == 2 * nb_h * nb_v

        front, back = scene.objects[0], scene.objects[1]
        assert front.radius == pytest.approx(radius, rel=1e-6)
        assert back.radius == pytest.approx(BACK_SCALE * radius, rel=1e-6)
        assert np.linalg.norm(front.center) == pytest.approx(distance, rel=1e-6)
        assert np.linalg.norm(back.center) == pytest.approx(
            distance + BACK_SCALE * radius, rel=1e-6
        )

    def test_colors_follow_the_photo(self):
        from src.canopy.scene.extraction import generate_from_image, grid_geometry
        from src.canopy.scene.manager import Scene

        camera = self._camera()
        scene = Scene()
        generate_from_image(scene, camera, self._photo(), 3, rng=np.random.default_rng(0))
        _, _, nb_h, _ = grid_geometry(3, camera.aspect_ratio)

        # Front spheres of the bottom row: first is on the left edge, last on the right
        left = scene.objects[0]
        right = scene.objects[2 * (nb_h - 1)]
        assert left.color == pytest.approx((1.0, 0.0, 0.0))
        assert right.color == pytest.approx((0.0, 0.0, 1.0))

    def test_uniform_photo(self):
        """Every covered sphere takes the (integer) average colour."""
        from src.canopy.scene.extraction import generate_from_image
        from src.canopy.scene.manager import Scene

        photo = np.full((self.HEIGHT, self.WIDTH, 3), (200, 100, 50), dtype=np.uint8)
        scene = Scene()
        generate_from_image(scene, self._camera(), photo, 3, rng=np.random.default_rng(0))
        expected = (200 / 255.0, 100 / 255.0, 50 / 255.0)
        matching = [obj for obj in scene if obj.color == pytest.approx(expected)]
        assert len(matching) >= len(scene) // 2

    def test_resolution_mismatch(self):
        from src.canopy.scene.extraction import generate_from_image
        from src.canopy.scene.manager import Scene

        photo = np.zeros((4, 4, 3), dtype=np.uint8)
        with pytest.raises(ValueError, match="4x4"):
            generate_from_image(Scene(), self._camera(), photo, 3)

"""Unit tests for the camera model and its ground footprint.

Tests cover:
- Basis construction and validation
- The angular image mapping (host)
- Agreement between the host and device mappings
- Ground points and footprint surface
"""

import math

import numpy as np
import pytest
import taichi as ti


class TestCameraContext:
    """Tests for CameraContext basis and validation."""

    def test_basis_for_forward_camera(self, forward_camera):
        np.testing.assert_allclose(forward_camera.direction, [0.0, 0.0, 1.0])
        np.testing.assert_allclose(forward_camera.right, [1.0, 0.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(forward_camera.up, [0.0, 1.0, 0.0], atol=1e-12)
        assert forward_camera.aspect_ratio == pytest.approx(32 / 24)

    def test_basis_is_orthonormal(self):
        from src.canopy.camera.eye import CameraContext, Eye

        cam = CameraContext(Eye((1.0, 5.0, -2.0), (0.3, -2.0, 1.0)), 64, 48)
        for v in (cam.direction, cam.right, cam.up):
            assert np.linalg.norm(v) == pytest.approx(1.0)
        assert np.dot(cam.direction, cam.right) == pytest.approx(0.0, abs=1e-12)
        assert np.dot(cam.direction, cam.up) == pytest.approx(0.0, abs=1e-12)
        assert np.dot(cam.right, cam.up) == pytest.approx(0.0, abs=1e-12)
        # Up points to the sky
        assert cam.up[1] > 0.0

    def test_rejects_vertical_direction(self):
        from src.canopy.camera.eye import CameraContext, Eye

        with pytest.raises(ValueError, match="parallel to world up"):
            CameraContext(Eye((0.0, 1.0, 0.0), (0.0, -1.0, 0.0)), 32, 24)

    def test_rejects_zero_direction(self):
        from src.canopy.camera.eye import CameraContext, Eye

        with pytest.raises(ValueError, match="non-zero"):
            CameraContext(Eye((0.0, 1.0, 0.0), (0.0, 0.0, 0.0)), 32, 24)

    def test_rejects_bad_resolution(self):
        from src.canopy.camera.eye import CameraContext, Eye

        with pytest.raises(ValueError, match="resolution"):
            CameraContext(Eye((0.0, 1.0, 0.0), (0.0, 0.0, 1.0)), 0, 24)


class TestAngularMapping:
    """Tests for the host-side image mapping."""

    def test_center_is_view_direction(self, forward_camera):
        np.testing.assert_allclose(forward_camera.ray_direction(0.5, 0.5), [0, 0, 1], atol=1e-12)

    def test_horizontal_field_of_view(self, forward_camera):
        """The left and right edges are 45 degrees off axis."""
        d = forward_camera.ray_direction(1.0, 0.5)
        assert math.degrees(math.atan2(d[0], d[2])) == pytest.approx(45.0)
        d = forward_camera.ray_direction(0.0, 0.5)
        assert math.degrees(math.atan2(d[0], d[2])) == pytest.approx(-45.0)

    def test_vertical_field_scaled_by_aspect(self, forward_camera):
        d = forward_camera.ray_direction(0.5, 1.0)
        expected = 45.0 / forward_camera.aspect_ratio
        assert math.degrees(math.atan2(d[1], d[2])) == pytest.approx(expected)

    def test_directions_are_unit(self, forward_camera):
        for i, j in [(0.0, 0.0), (0.2, 0.9), (1.0, 1.0)]:
            assert np.linalg.norm(forward_camera.ray_direction(i, j)) == pytest.approx(1.0)

    def test_screen_corner(self, forward_camera):
        corner = forward_camera.screen_corner()
        np.testing.assert_allclose(corner, [1.0, -24 / 32, 1.0], atol=1e-12)


class TestDeviceCamera:
    """The device mapping agrees with the host one."""

    def test_get_ray_matches_host(self):
        from src.canopy.camera.angular import get_ray, setup_camera
        from src.canopy.camera.eye import CameraContext, Eye

        cam = CameraContext(Eye((1.0, 4.0, -3.0), (0.2, -1.0, 1.0)), 40, 30)
        setup_camera(cam)

        coords = [(0.0, 0.0), (0.5, 0.5), (1.0, 0.25), (0.1, 0.9)]
        n = len(coords)
        origins = ti.Vector.field(3, dtype=ti.f32, shape=n)
        directions = ti.Vector.field(3, dtype=ti.f32, shape=n)
        ij = ti.Vector.field(2, dtype=ti.f32, shape=n)
        ij.from_numpy(np.array(coords, dtype=np.float32))

        @ti.kernel
        def test_kernel():
            for k in range(n):
                ray = get_ray(ij[k][0], ij[k][1])
                origins[k] = ray.origin
                directions[k] = ray.direction

        test_kernel()
        for k, (i, j) in enumerate(coords):
            np.testing.assert_allclose(origins[k].to_numpy(), cam.origin, atol=1e-5)
            np.testing.assert_allclose(
                directions[k].to_numpy(), cam.ray_direction(i, j), atol=1e-5
            )

    def test_jittered_rays_stay_in_pixel(self, forward_camera):
        """Top-left pixel rays point up and left; rows count from the top."""
        from src.canopy.camera.angular import get_ray_jittered, setup_camera

        setup_camera(forward_camera)
        n = 64
        directions = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                directions[k] = get_ray_jittered(0, 0, 32, 24).direction

        test_kernel()
        d = directions.to_numpy()
        corner = forward_camera.ray_direction(0.0, 1.0)
        assert np.all(d[:, 0] < 0.0)
        assert np.all(d[:, 1] > 0.0)
        # Every sample is close to the top-left corner ray
        assert np.all(d @ corner > 0.99)


class TestFootprint:
    """Tests for ground points and the footprint quadrilateral."""

    def test_ground_point(self):
        from src.canopy.camera.eye import CameraContext, Eye

        cam = CameraContext(Eye((0.0, 2.0, 0.0), (0.0, -1.0, 1.0)), 32, 32)
        p = cam.ground_point(0.5, 0.5)
        np.testing.assert_allclose(p, [0.0, 0.0, 2.0], atol=1e-12)

    def test_ground_point_above_horizon_is_infinite(self, forward_camera):
        assert np.all(np.isinf(forward_camera.ground_point(0.5, 0.9)))

    def test_footprint_of_horizontal_camera_is_infinite(self, forward_camera):
        footprint = forward_camera.footprint()
        assert not footprint.is_finite()
        assert footprint.surface() == float("inf")

    def test_footprint_looking_down(self):
        from src.canopy.camera.eye import CameraContext, Eye

        cam = CameraContext(Eye((0.0, 5.0, 0.0), (0.0, -3.0, 1.0)), 40, 30)
        footprint = cam.footprint()
        assert footprint.is_finite()
        assert footprint.surface() > 0.0
        for corner in footprint.corners():
            assert corner[1] == pytest.approx(0.0, abs=1e-9)
        # The far edge is wider than the near one
        near = np.linalg.norm(footprint.bottom_right - footprint.bottom_left)
        far = np.linalg.norm(footprint.top_right - footprint.top_left)
        assert far > near

    def test_position_interpolates_corners(self):
        from src.canopy.camera.footprint import Footprint

        fp = Footprint(
            bottom_left=np.array([0.0, 0.0, 0.0]),
            bottom_right=np.array([2.0, 0.0, 0.0]),
            top_right=np.array([2.0, 0.0, 4.0]),
            top_left=np.array([0.0, 0.0, 4.0]),
        )
        np.testing.assert_allclose(fp.position(0.0, 0.0), [0.0, 0.0, 0.0])
        np.testing.assert_allclose(fp.position(1.0, 1.0), [2.0, 0.0, 4.0])
        np.testing.assert_allclose(fp.position(0.5, 0.25), [1.0, 0.0, 1.0])
        assert fp.surface() == pytest.approx(8.0)

    def test_surface_of_trapezoid(self):
        from src.canopy.camera.footprint import Footprint

        fp = Footprint(
            bottom_left=np.array([-1.0, 0.0, 0.0]),
            bottom_right=np.array([1.0, 0.0, 0.0]),
            top_right=np.array([2.0, 0.0, 3.0]),
            top_left=np.array([-2.0, 0.0, 3.0]),
        )
        assert fp.surface() == pytest.approx((2.0 + 4.0) / 2.0 * 3.0)

"""Unit tests for sphere intersection.

Tests cover:
- Ray hitting sphere from outside (front face)
- Ray missing sphere
- Ray starting inside sphere (back face)
- Ray tangent to sphere (reported as a miss)
- The bounding-sphere segment test used by aggregates
"""

import numpy as np
import pytest
import taichi as ti


def _hit_sphere(origin, direction, center, radius, t_min=1e-4, t_max=1e10):
    """Run hit_sphere in a kernel and return the record as Python values."""
    from src.canopy.geometry.sphere import Sphere, hit_sphere, vec3

    hit = ti.field(dtype=ti.i32, shape=())
    t_val = ti.field(dtype=ti.f32, shape=())
    point = ti.Vector.field(3, dtype=ti.f32, shape=())
    normal = ti.Vector.field(3, dtype=ti.f32, shape=())
    front_face = ti.field(dtype=ti.i32, shape=())

    @ti.kernel
    def test_kernel(o: vec3, d: vec3, c: vec3, r: ti.f32, t0: ti.f32, t1: ti.f32):
        record = hit_sphere(o, d, Sphere(center=c, radius=r), t0, t1)
        hit[None] = record.hit
        t_val[None] = record.t
        point[None] = record.point
        normal[None] = record.normal
        front_face[None] = record.front_face

    test_kernel(vec3(*origin), vec3(*direction), vec3(*center), radius, t_min, t_max)
    return (
        hit[None],
        t_val[None],
        point[None].to_numpy(),
        normal[None].to_numpy(),
        front_face[None],
    )


class TestSphereBasics:
    """Tests for Sphere dataclass and basic operations."""

    def test_make_sphere(self):
        """Test make_sphere convenience function."""
        from src.canopy.geometry.sphere import make_sphere, vec3

        center_result = ti.Vector.field(3, dtype=ti.f32, shape=())
        radius_result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            sphere = make_sphere(vec3(1.0, 2.0, 3.0), 0.5)
            center_result[None] = sphere.center
            radius_result[None] = sphere.radius

        test_kernel()
        np.testing.assert_allclose(center_result[None].to_numpy(), [1.0, 2.0, 3.0])
        assert radius_result[None] == pytest.approx(0.5)


class TestSphereIntersection:
    """Tests for ray-sphere intersection."""

    def test_direct_hit(self):
        """A ray aimed at the center hits at distance - radius."""
        hit, t, point, normal, front = _hit_sphere(
            (0.0, 0.0, 0.0), (0.0, 0.0, 1.0), (0.0, 0.0, 5.0), 1.0
        )
        assert hit == 1
        assert t == pytest.approx(4.0, abs=1e-5)
        np.testing.assert_allclose(point, [0.0, 0.0, 4.0], atol=1e-5)
        np.testing.assert_allclose(normal, [0.0, 0.0, -1.0], atol=1e-5)
        assert front == 1

    def test_normal_is_unit_and_outward(self):
        """An off-center hit has a unit normal pointing away from the center."""
        hit, _, point, normal, _ = _hit_sphere(
            (0.3, 0.2, 0.0), (0.0, 0.0, 1.0), (0.0, 0.0, 5.0), 1.0
        )
        assert hit == 1
        assert np.linalg.norm(normal) == pytest.approx(1.0, abs=1e-5)
        assert np.dot(normal, point - np.array([0.0, 0.0, 5.0])) > 0.0

    def test_miss(self):
        hit, *_ = _hit_sphere((0.0, 2.0, 0.0), (0.0, 0.0, 1.0), (0.0, 0.0, 5.0), 1.0)
        assert hit == 0

    def test_sphere_behind_ray(self):
        hit, *_ = _hit_sphere((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), (0.0, 0.0, 5.0), 1.0)
        assert hit == 0

    def test_tangent_is_a_miss(self):
        """A grazing ray (zero discriminant) does not hit."""
        hit, *_ = _hit_sphere((1.0, 0.0, 0.0), (0.0, 0.0, 1.0), (0.0, 0.0, 5.0), 1.0)
        assert hit == 0

    def test_inside_hits_back_face(self):
        """From inside, the far root is used and the normal faces the ray."""
        hit, t, _, normal, front = _hit_sphere(
            (0.0, 0.0, 5.0), (0.0, 0.0, 1.0), (0.0, 0.0, 5.0), 1.0
        )
        assert hit == 1
        assert t == pytest.approx(1.0, abs=1e-5)
        np.testing.assert_allclose(normal, [0.0, 0.0, -1.0], atol=1e-5)
        assert front == 0

    def test_t_max_excludes_far_hit(self):
        hit, *_ = _hit_sphere(
            (0.0, 0.0, 0.0), (0.0, 0.0, 1.0), (0.0, 0.0, 5.0), 1.0, t_max=3.0
        )
        assert hit == 0


class TestBoundingSphere:
    """Tests for hits_bounding_sphere."""

    def _bounds(self, origin, direction, center, radius, t_min, t_max):
        from src.canopy.geometry.sphere import hits_bounding_sphere, vec3

        result = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel(o: vec3, d: vec3, c: vec3, r: ti.f32, t0: ti.f32, t1: ti.f32):
            result[None] = hits_bounding_sphere(o, d, c, r, t0, t1)

        test_kernel(vec3(*origin), vec3(*direction), vec3(*center), radius, t_min, t_max)
        return result[None]

    def test_segment_crossing(self):
        assert self._bounds((0, 0, 0), (0, 0, 1), (0, 0, 5), 1.0, 1e-4, 1e10) == 1

    def test_segment_inside(self):
        """A short segment that starts and ends inside still overlaps."""
        assert self._bounds((0, 0, 5), (0, 0, 1), (0, 0, 5), 1.0, 1e-4, 0.5) == 1

    def test_segment_ends_before(self):
        assert self._bounds((0, 0, 0), (0, 0, 1), (0, 0, 5), 1.0, 1e-4, 3.0) == 0

    def test_miss(self):
        assert self._bounds((0, 3, 0), (0, 0, 1), (0, 0, 5), 1.0, 1e-4, 1e10) == 0

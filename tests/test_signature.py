"""Tests for the signature stamp."""

import numpy as np
import pytest

from src.canopy.scene.signature import (
    DOT_SCALE,
    FONT,
    GLYPH_HEIGHT,
    GLYPH_WIDTH,
    label_dots,
    label_width,
    make_signature,
)


class TestFont:
    def test_glyph_shapes(self):
        for char, glyph in FONT.items():
            assert len(glyph) == GLYPH_HEIGHT, char
            assert all(len(row) == GLYPH_WIDTH for row in glyph), char

    def test_label_dots(self):
        """'I' is a full top and bottom bar and a center stem."""
        dots = set(label_dots("I"))
        assert {(0, 4), (1, 4), (2, 4), (0, 0), (1, 0), (2, 0)} <= dots
        assert (1, 2) in dots
        assert (0, 2) not in dots

    def test_glyphs_are_spaced(self):
        dots = label_dots("II")
        assert max(x for x, _ in dots) == 2 * GLYPH_WIDTH + 1 - 1
        assert label_width("II") == 7

    def test_lowercase_is_accepted(self):
        assert label_dots("abc") == label_dots("ABC")

    def test_unsupported_character(self):
        with pytest.raises(ValueError, match="unsupported character"):
            label_dots("A&B")

    def test_empty_label(self):
        assert label_dots("") == []
        assert label_width("") == 0


class TestMakeSignature:
    def test_dots_in_bottom_right_of_view(self, forward_camera):
        sig = make_signature(forward_camera, "AB")
        centers = np.array(sig.centers)
        assert len(centers) == len(label_dots("AB"))

        # Just behind the unit screen
        assert np.all(centers[:, 2] > 1.0)
        # Right half, bottom half
        assert np.all(centers[:, 0] > 0.0)
        assert np.all(centers[:, 1] < 0.0)
        # Inside the screen rectangle
        corner = forward_camera.screen_corner()
        assert np.all(centers[:, 0] < corner[0])
        assert np.all(centers[:, 1] > corner[1])

    def test_dot_size(self, forward_camera):
        sig = make_signature(forward_camera)
        diameter = DOT_SCALE * 2.0 / forward_camera.aspect_ratio
        assert sig.radius == pytest.approx(diameter / 2.0)

    def test_neighbouring_dots_touch(self, forward_camera):
        sig = make_signature(forward_camera, "-")
        centers = np.array(sig.centers)
        assert len(centers) == 3
        spacing = np.linalg.norm(centers[1] - centers[0])
        assert spacing == pytest.approx(2.0 * sig.radius)

    def test_color(self, forward_camera):
        from src.canopy.scene.objects import SIGNATURE_RED

        assert make_signature(forward_camera).color == pytest.approx(SIGNATURE_RED)
        sig = make_signature(forward_camera, color=(0.0, 1.0, 0.0))
        assert sig.color == (0.0, 1.0, 0.0)

"""Tests for the render buffer I/O in the preview module.

This module tests:
- Sentinel buffers and completeness
- RGBA save while incomplete, RGB once complete
- Loading buffers back, including RGB promotion
- RMSE computation
"""

import numpy as np
import pytest
from PIL import Image as PILImage

from src.canopy.preview.export import (
    SENTINEL,
    compute_rmse,
    is_complete,
    load_buffer,
    load_rgb,
    new_buffer,
    save_buffer,
    sentinel_mask,
)


class TestBuffer:
    """Tests for sentinel buffers."""

    def test_new_buffer_is_all_sentinel(self):
        buffer = new_buffer(5, 3)
        assert buffer.shape == (3, 5, 4)
        assert buffer.dtype == np.uint8
        assert sentinel_mask(buffer).all()
        assert not is_complete(buffer)

    def test_one_rendered_pixel(self):
        buffer = new_buffer(4, 4)
        buffer[1, 2] = (10, 20, 30, 255)
        mask = sentinel_mask(buffer)
        assert mask.sum() == 15
        assert not mask[1, 2]

    def test_opaque_magenta_is_not_sentinel(self):
        """A rendered magenta pixel is opaque and never mistaken for pending."""
        buffer = new_buffer(1, 1)
        buffer[0, 0] = (255, 0, 255, 255)
        assert is_complete(buffer)


class TestSaveLoad:
    """Tests for PNG persistence."""

    def test_incomplete_saved_as_rgba(self, tmp_path):
        path = tmp_path / "partial.png"
        buffer = new_buffer(6, 4)
        buffer[0, :] = (1, 2, 3, 255)
        save_buffer(buffer, path)

        with PILImage.open(path) as image:
            assert image.mode == "RGBA"
            assert image.size == (6, 4)
        np.testing.assert_array_equal(load_buffer(path), buffer)

    def test_complete_saved_as_rgb(self, tmp_path):
        path = tmp_path / "done.png"
        buffer = new_buffer(3, 2)
        buffer[...] = (40, 50, 60, 255)
        save_buffer(buffer, path)

        with PILImage.open(path) as image:
            assert image.mode == "RGB"
        loaded = load_buffer(path)
        assert is_complete(loaded)
        np.testing.assert_array_equal(loaded, buffer)

    def test_no_temporary_file_left(self, tmp_path):
        path = tmp_path / "image.png"
        save_buffer(new_buffer(2, 2), path)
        assert [p.name for p in tmp_path.iterdir()] == ["image.png"]

    def test_loaded_buffer_is_writable(self, tmp_path):
        path = tmp_path / "image.png"
        save_buffer(new_buffer(2, 2), path)
        buffer = load_buffer(path)
        assert buffer.flags.writeable
        assert buffer.flags.c_contiguous
        buffer[0, 0] = (0, 0, 0, 255)

    def test_load_rgb(self, tmp_path):
        path = tmp_path / "photo.png"
        pixels = np.arange(2 * 3 * 3, dtype=np.uint8).reshape(2, 3, 3)
        PILImage.fromarray(pixels).save(path)
        np.testing.assert_array_equal(load_rgb(path), pixels)

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(OSError):
            load_buffer(tmp_path / "missing.png")

    def test_sentinel_value(self):
        assert SENTINEL == (255, 0, 255, 0)


class TestComputeRmse:
    """Tests for compute_rmse."""

    def test_identical_images(self):
        image = np.random.default_rng(0).random((8, 8, 3))
        assert compute_rmse(image, image) == 0.0

    def test_known_difference(self):
        a = np.zeros((4, 4, 3))
        b = np.full((4, 4, 3), 2.0)
        assert compute_rmse(a, b) == pytest.approx(2.0)

    def test_shape_mismatch(self):
        with pytest.raises(ValueError, match="shapes must match"):
            compute_rmse(np.zeros((2, 2, 3)), np.zeros((3, 2, 3)))

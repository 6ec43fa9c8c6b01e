"""
Tests for aspect-ratio-preserving resize.
"""

import numpy as np
import pytest
from skimage.metrics import structural_similarity as ssim

from sketchlab.errors import InvalidInputError
from sketchlab.resize import resize, target_size


class TestTargetSize:
    """Tests for output dimension computation."""

    def test_half_height_image(self):
        assert target_size(800, 400, 300) == (300, 150)

    def test_rounds_half_up(self):
        assert target_size(4, 1, 2) == (2, 1)   # 0.5 -> 1
        assert target_size(4, 3, 2) == (2, 2)   # 1.5 -> 2
        assert target_size(3, 2, 2) == (2, 1)   # 1.33 -> 1

    def test_never_zero_height(self):
        assert target_size(1000, 1, 10) == (10, 1)

    @pytest.mark.parametrize("width,height", [(800, 400), (640, 480), (123, 457), (1000, 1), (7, 3)])
    @pytest.mark.parametrize("target", [300, 600, 1200])
    def test_aspect_ratio_within_one_pixel(self, width, height, target):
        _, new_h = target_size(width, height, target)
        expected = round(target * height / width)
        assert abs(new_h - max(1, expected)) <= 1

    @pytest.mark.parametrize("bad", [0, -300])
    def test_non_positive_width_rejected(self, bad):
        with pytest.raises(InvalidInputError):
            target_size(800, 400, bad)


class TestResize:
    """Tests for resampling."""

    def test_output_shape(self, wide_processed):
        out = resize(wide_processed, 300)
        assert out.shape == (150, 300, 4)
        assert out.dtype == np.uint8

    @pytest.mark.parametrize("bad", [0, -1, 2.5])
    def test_invalid_target_width(self, wide_processed, bad):
        with pytest.raises(InvalidInputError):
            resize(wide_processed, bad)

    def test_same_width_is_identity(self, block_processed):
        out = resize(block_processed, 100)
        assert out.shape == block_processed.pixels.shape
        assert out is not block_processed.pixels
        score = ssim(out[:, :, 3], block_processed.alpha, data_range=255)
        assert score > 0.99
        # Nothing opaque where the source was transparent.
        assert not out[:, :, 3][block_processed.alpha == 0].any()

    def test_transparent_areas_stay_transparent(self, block_processed):
        down = resize(block_processed, 50)
        assert not down[30:, 30:, 3].any()
        assert (down[:20, :20, 3] == 255).all()

        up = resize(block_processed, 200)
        assert up.shape == (200, 200, 4)
        assert not up[120:, 120:, 3].any()
        assert (up[:80, :80, 3] == 255).all()

    def test_no_colour_bleed_from_transparent_pixels(self):
        # Transparent pixels with white colour next to opaque black ones.
        rgba = np.zeros((40, 40, 4), dtype=np.uint8)
        rgba[:, :, :3] = 255
        rgba[:, :20, :3] = 0
        rgba[:, :20, 3] = 255

        for width in (13, 20, 77):
            out = resize(rgba, width)
            visible = out[:, :, 3] > 0
            assert visible.any()
            assert out[:, :, :3][visible].max() == 0

    def test_accepts_plain_arrays(self, wide_processed):
        out = resize(wide_processed.pixels, 600)
        assert out.shape == (300, 600, 4)

    def test_rejects_non_rgba(self):
        with pytest.raises(InvalidInputError):
            resize(np.zeros((10, 10, 3), dtype=np.uint8), 5)

    def test_does_not_compound_rounding(self):
        rgba = np.zeros((457, 123, 4), dtype=np.uint8)
        first = resize(rgba, 300)
        again = resize(first, 300)
        assert again.shape == first.shape

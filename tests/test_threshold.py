"""
Tests for threshold-based background removal.
"""

import numpy as np
import pytest

from conftest import decode, encode
from sketchlab.errors import DecodeError, InvalidInputError
from sketchlab.threshold import (
    decode_rgba,
    load_source,
    load_source_file,
    threshold,
    threshold_pixels,
)


def assert_binarized(pixels: np.ndarray):
    alpha = pixels[:, :, 3]
    assert set(np.unique(alpha)) <= {0, 255}
    opaque = alpha == 255
    assert not pixels[:, :, :3][opaque].any()


class TestLoadSource:
    """Tests for upload validation and decoding."""

    def test_reads_dimensions(self, white_source):
        assert white_source.size == (800, 400)
        assert white_source.media_type == "image/png"
        assert white_source.name == "white.png"

    def test_rejects_non_image_media_type(self, block_rgb):
        with pytest.raises(InvalidInputError):
            load_source(encode(block_rgb), "text/plain")

    def test_rejects_missing_media_type(self, block_rgb):
        with pytest.raises(InvalidInputError):
            load_source(encode(block_rgb), None)

    def test_rejects_empty_upload(self):
        with pytest.raises(InvalidInputError):
            load_source(b"", "image/png")

    def test_corrupt_bytes_raise_decode_error(self):
        with pytest.raises(DecodeError):
            load_source(b"definitely not a png", "image/png")

    def test_truncated_image_raises_decode_error(self, gradient_rgb):
        data = encode(gradient_rgb)
        source = load_source(data, "image/png")
        truncated = source.__class__(
            data=data[: len(data) // 2], width=source.width, height=source.height
        )
        with pytest.raises(DecodeError):
            decode_rgba(truncated)

    def test_load_source_file(self, tmp_path, block_rgb):
        path = tmp_path / "sketch.png"
        path.write_bytes(encode(block_rgb))
        source = load_source_file(path)
        assert source.size == (100, 100)
        assert source.media_type == "image/png"

    def test_load_source_file_rejects_text(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        with pytest.raises(InvalidInputError):
            load_source_file(path)

    def test_jpeg_keeps_native_size(self, gradient_rgb):
        source = load_source(encode(gradient_rgb, "JPEG"), "image/jpeg")
        assert decode_rgba(source).shape == (64, 256, 4)


class TestThreshold:
    """Tests for binarization."""

    def test_all_white_is_fully_transparent(self, white_source):
        processed = threshold(white_source, 128)
        assert processed.size == (800, 400)
        assert not processed.alpha.any()
        assert processed.transparent_pixel_count() == 800 * 400

    def test_black_block_is_the_only_opaque_region(self, block_source):
        processed = threshold(block_source, 128)
        expected = np.zeros((100, 100), dtype=bool)
        expected[:50, :50] = True
        np.testing.assert_array_equal(processed.alpha == 255, expected)
        np.testing.assert_array_equal(processed.alpha == 0, ~expected)

    def test_binarization_invariant(self, gradient_source):
        for t in (0, 1, 64, 128, 200, 254, 255):
            assert_binarized(threshold(gradient_source, t).pixels)

    def test_monotonic_in_threshold(self, gradient_source):
        counts = [
            threshold(gradient_source, t).transparent_pixel_count()
            for t in range(0, 256, 5)
        ]
        assert counts == sorted(counts, reverse=True)
        # Raising the threshold turns more pixels into lines.
        assert counts[0] > counts[-1]

    def test_deterministic(self, gradient_source):
        first = threshold(gradient_source, 97)
        second = threshold(gradient_source, 97)
        assert first.pixels.tobytes() == second.pixels.tobytes()

    def test_threshold_zero_keeps_only_pure_black(self):
        rgba = np.zeros((1, 3, 4), dtype=np.uint8)
        rgba[0, 0, :3] = [0, 0, 0]
        rgba[0, 1, :3] = [0, 0, 1]
        rgba[0, 2, :3] = [255, 255, 255]
        out = threshold_pixels(rgba, 0)
        assert list(out[0, :, 3]) == [255, 0, 0]

    def test_threshold_255_keeps_everything_but_white(self):
        rgba = np.zeros((1, 3, 4), dtype=np.uint8)
        rgba[0, 0, :3] = [255, 255, 255]
        rgba[0, 1, :3] = [255, 255, 254]
        rgba[0, 2, :3] = [10, 200, 30]
        out = threshold_pixels(rgba, 255)
        assert list(out[0, :, 3]) == [0, 255, 255]

    def test_brightness_equal_to_threshold_is_a_line(self):
        rgba = np.zeros((1, 2, 4), dtype=np.uint8)
        rgba[0, 0, :3] = [100, 100, 100]  # brightness 100
        rgba[0, 1, :3] = [100, 100, 101]  # brightness 100.33
        out = threshold_pixels(rgba, 100)
        assert list(out[0, :, 3]) == [255, 0]

    def test_input_is_not_mutated(self, gradient_source):
        rgba = decode_rgba(gradient_source)
        before = rgba.copy()
        threshold_pixels(rgba, 128)
        np.testing.assert_array_equal(rgba, before)

    @pytest.mark.parametrize("bad", [-1, 256, 12.5, "128", True])
    def test_invalid_threshold(self, block_source, bad):
        with pytest.raises(InvalidInputError):
            threshold(block_source, bad)

    def test_preview_png_round_trips(self, block_source):
        processed = threshold(block_source, 128)
        np.testing.assert_array_equal(decode(processed.to_png_bytes()), processed.pixels)

"""
Pytest configuration and fixtures for sketchlab tests
"""
import io

import numpy as np
import pytest
from PIL import Image

from sketchlab.models import ProcessedImage
from sketchlab.threshold import load_source, threshold


def encode(array: np.ndarray, fmt: str = "PNG") -> bytes:
    """Encode an RGB/RGBA uint8 array to image bytes."""
    buffer = io.BytesIO()
    Image.fromarray(array).save(buffer, format=fmt)
    return buffer.getvalue()


def decode(data: bytes) -> np.ndarray:
    return np.array(Image.open(io.BytesIO(data)).convert("RGBA"))


@pytest.fixture
def white_rgb():
    """800x400 all-white image."""
    return np.full((400, 800, 3), 255, dtype=np.uint8)


@pytest.fixture
def block_rgb():
    """100x100 white image with a pure black 50x50 block in the top-left corner."""
    img = np.full((100, 100, 3), 255, dtype=np.uint8)
    img[:50, :50] = 0
    return img


@pytest.fixture
def gradient_rgb():
    """Greyscale ramp plus a coloured band, 256 wide."""
    img = np.zeros((64, 256, 3), dtype=np.uint8)
    for i in range(256):
        img[:32, i] = [i, i, i]
        img[32:, i] = [i, 255 - i, (i * 3) % 256]
    return img


@pytest.fixture
def white_source(white_rgb):
    return load_source(encode(white_rgb), "image/png", name="white.png")


@pytest.fixture
def block_source(block_rgb):
    return load_source(encode(block_rgb), "image/png", name="block.png")


@pytest.fixture
def gradient_source(gradient_rgb):
    return load_source(encode(gradient_rgb), "image/png", name="gradient.png")


@pytest.fixture
def block_processed(block_source) -> ProcessedImage:
    return threshold(block_source, 128)


@pytest.fixture
def wide_processed() -> ProcessedImage:
    """800x400 line art: a black horizontal bar across the middle."""
    pixels = np.zeros((400, 800, 4), dtype=np.uint8)
    pixels[180:220, 100:700, 3] = 255
    return ProcessedImage(pixels=pixels, threshold=128)

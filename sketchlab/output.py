"""
Sketchlab SVG output - wraps a raster in a minimal SVG document.

The document declares the SVG and xlink namespaces, carries explicit
width/height/viewBox equal to the raster size, and holds one <image>
element whose href is the raster as an inline PNG data URI.
"""

import base64
import io
import logging

import numpy as np
import svgwrite

from .errors import InvalidInputError
from .models import encode_png

logger = logging.getLogger(__name__)

PNG_DATA_URI_PREFIX = "data:image/png;base64,"


def png_data_uri(png_bytes: bytes) -> str:
    return PNG_DATA_URI_PREFIX + base64.b64encode(png_bytes).decode("ascii")


class SVGWriter:
    def __init__(self, profile: str = "full"):
        self.profile = profile

    def build(self, raster: np.ndarray) -> svgwrite.Drawing:
        """
        Build the SVG drawing for an RGBA raster.

        raster: uint8 array (H, W, 4)
        """
        if raster.ndim != 3 or raster.shape[2] != 4:
            raise InvalidInputError(f"Expected an RGBA array, got shape {raster.shape}")
        height, width = raster.shape[:2]
        if width <= 0 or height <= 0:
            raise InvalidInputError(f"Cannot wrap an empty raster ({width}x{height})")

        dwg = svgwrite.Drawing(size=(width, height), profile=self.profile, debug=False)
        dwg["viewBox"] = f"0 0 {width} {height}"

        image = dwg.image(
            href=png_data_uri(encode_png(raster)),
            insert=(0, 0),
            size=(width, height),
        )
        # Fill the viewBox exactly; no letterboxing.
        image.stretch()
        dwg.add(image)
        return dwg

    def to_string(self, raster: np.ndarray) -> str:
        """Serialize to a complete document, XML declaration included."""
        buffer = io.StringIO()
        self.build(raster).write(buffer)
        return buffer.getvalue()

    def save(self, raster: np.ndarray, output_path) -> None:
        with open(output_path, "w", encoding="utf-8") as f:
            self.build(raster).write(f)


def wrap(raster: np.ndarray) -> str:
    """
    Embed an RGBA raster in an SVG document.

    Args:
        raster: uint8 array (H, W, 4)

    Returns:
        SVG document as a string
    """
    svg = SVGWriter().to_string(raster)
    logger.debug("Wrapped %dx%d raster into %d-byte SVG", raster.shape[1], raster.shape[0], len(svg))
    return svg


def wrap_bytes(raster: np.ndarray) -> bytes:
    """Same as wrap(), encoded as UTF-8."""
    return wrap(raster).encode("utf-8")

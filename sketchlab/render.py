"""
Sketchlab SVG rendering - rasterize exported SVG documents with cairosvg.

Used to verify that a vector export reproduces its embedded raster, and by
the ``render`` CLI command.
"""

import io
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional, Tuple, Union

import cairosvg
import numpy as np
from PIL import Image


def svg_dimensions(svg_content: Union[str, bytes]) -> Tuple[int, int]:
    """
    Read the pixel size of an SVG document.

    Prefers the viewBox, falling back to width/height attributes.

    Returns:
        (width, height)
    """
    if isinstance(svg_content, str):
        svg_content = svg_content.encode("utf-8")
    root = ET.fromstring(svg_content)

    viewbox = root.get("viewBox")
    if viewbox:
        parts = viewbox.replace(",", " ").split()
        if len(parts) == 4:
            return int(float(parts[2])), int(float(parts[3]))
    return int(float(root.get("width", 100))), int(float(root.get("height", 100)))


def render_svg_string(
    svg_content: Union[str, bytes],
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> np.ndarray:
    """
    Render SVG content to an RGBA numpy array.

    Args:
        svg_content: SVG document
        width: Output width (default: the document's own width)
        height: Output height (default: the document's own height)

    Returns:
        RGBA numpy array [H, W, 4]
    """
    if isinstance(svg_content, str):
        svg_content = svg_content.encode("utf-8")
    if width is None or height is None:
        doc_w, doc_h = svg_dimensions(svg_content)
        width = width or doc_w
        height = height or doc_h

    png_data = cairosvg.svg2png(
        bytestring=svg_content,
        output_width=width,
        output_height=height,
    )
    return np.array(Image.open(io.BytesIO(png_data)).convert("RGBA"))


def render_svg_to_png(
    svg_path: Union[str, Path],
    png_path: Union[str, Path],
    scale: int = 1,
) -> str:
    """
    Render SVG to PNG file.

    Args:
        svg_path: Path to input SVG
        png_path: Path for output PNG
        scale: Scale factor for rendering

    Returns:
        Path to output PNG
    """
    svg_content = Path(svg_path).read_bytes()
    width, height = svg_dimensions(svg_content)

    rendered = render_svg_string(svg_content, width * scale, height * scale)
    Image.fromarray(rendered).save(png_path)
    return str(png_path)

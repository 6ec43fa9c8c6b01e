"""
Sketchlab data model.

Plain value types shared by the threshold, resize, wrap and export stages.
Pixel data is always an RGBA ``numpy.ndarray`` of shape (H, W, 4), dtype uint8.
"""

import io
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np
from PIL import Image

from .errors import InvalidInputError


# Sizes offered by the export panel, in pixels of output width.
SIZE_CATALOG: Tuple[int, ...] = (300, 600, 1200)

DEFAULT_THRESHOLD = 128
DEFAULT_SIZE = 600

FILENAME_PREFIX = "sketch"


class ExportFormat(str, Enum):
    """Output format of an exported artifact."""
    RASTER = "png"
    VECTOR = "svg"

    @property
    def extension(self) -> str:
        return self.value

    @property
    def mime_type(self) -> str:
        return "image/png" if self is ExportFormat.RASTER else "image/svg+xml"

    @classmethod
    def parse(cls, value: Union[str, "ExportFormat"]) -> "ExportFormat":
        """Accept an ExportFormat, 'png'/'svg' or 'raster'/'vector' (any case)."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        aliases = {
            "png": cls.RASTER,
            "raster": cls.RASTER,
            "svg": cls.VECTOR,
            "vector": cls.VECTOR,
        }
        if key not in aliases:
            raise InvalidInputError(
                f"Unknown export format: {value!r} (expected one of png, svg)"
            )
        return aliases[key]


def validate_threshold(value) -> int:
    """Return ``value`` as a threshold, or raise InvalidInputError."""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidInputError(f"Threshold must be an integer, got {value!r}")
    if not 0 <= value <= 255:
        raise InvalidInputError(f"Threshold must be in [0, 255], got {value}")
    return int(value)


def validate_width(value) -> int:
    """Return ``value`` as a target width, or raise InvalidInputError."""
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidInputError(f"Target width must be an integer, got {value!r}")
    if value <= 0:
        raise InvalidInputError(f"Target width must be positive, got {value}")
    return int(value)


@dataclass(frozen=True)
class SourceImage:
    """Uploaded image: encoded bytes plus the decoded pixel size."""
    data: bytes = field(repr=False)
    width: int
    height: int
    media_type: str = "image/png"
    name: Optional[str] = None

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height


@dataclass(frozen=True, eq=False)
class ProcessedImage:
    """
    Binarized line art with a transparent background.

    Every pixel is either fully transparent (alpha 0) or solid black
    (R=G=B=0, alpha 255). Instances are created fresh by each threshold pass.
    """
    pixels: np.ndarray = field(repr=False)
    threshold: int = DEFAULT_THRESHOLD

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def alpha(self) -> np.ndarray:
        return self.pixels[:, :, 3]

    def transparent_pixel_count(self) -> int:
        return int(np.count_nonzero(self.alpha == 0))

    def opaque_pixel_count(self) -> int:
        return int(np.count_nonzero(self.alpha == 255))

    def to_png_bytes(self) -> bytes:
        """Encode for preview display."""
        return encode_png(self.pixels)


@dataclass(frozen=True)
class ExportSpec:
    """Requested export: output width and format."""
    target_width: int
    format: ExportFormat = ExportFormat.RASTER

    def __post_init__(self):
        object.__setattr__(self, "target_width", validate_width(self.target_width))
        object.__setattr__(self, "format", ExportFormat.parse(self.format))

    @property
    def filename(self) -> str:
        return f"{FILENAME_PREFIX}-{self.target_width}px.{self.format.extension}"


@dataclass(frozen=True)
class ExportArtifact:
    """A named, encoded export ready to hand to a delivery sink."""
    filename: str
    payload: bytes = field(repr=False)
    mime_type: str
    width: int
    height: int

    @property
    def is_vector(self) -> bool:
        return self.mime_type == ExportFormat.VECTOR.mime_type

    def __len__(self) -> int:
        return len(self.payload)


def encode_png(pixels: np.ndarray) -> bytes:
    """Encode an RGBA array as PNG bytes."""
    buffer = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(pixels, dtype=np.uint8)).save(buffer, format="PNG")
    return buffer.getvalue()

"""
Sketchlab Threshold Module - background removal and line binarization.

A sketch is turned into line art by classifying every pixel on its own:
pixels brighter than the threshold become fully transparent, everything
else becomes solid black. There is no blending and no neighbourhood
filtering, so the result does not depend on the order pixels are visited.

Usage:
    from sketchlab.threshold import load_source_file, threshold

    source = load_source_file("drawing.jpg")
    processed = threshold(source, 128)
"""

import io
import logging
import mimetypes
from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import DecodeError, InvalidInputError
from .models import ProcessedImage, SourceImage, validate_threshold

logger = logging.getLogger(__name__)


def is_image_media_type(media_type: Optional[str]) -> bool:
    return bool(media_type) and media_type.lower().startswith("image/")


def guess_media_type(path: Union[str, Path]) -> Optional[str]:
    media_type, _ = mimetypes.guess_type(str(path))
    return media_type


def _open(data: bytes) -> Image.Image:
    try:
        return Image.open(io.BytesIO(data))
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Could not decode image: {e}") from e


def load_source(
    data: bytes,
    media_type: Optional[str] = "image/png",
    name: Optional[str] = None,
) -> SourceImage:
    """
    Validate uploaded bytes and read their pixel dimensions.

    Args:
        data: Encoded image bytes as supplied by the user
        media_type: Declared media type of the upload, must be ``image/*``
        name: Optional original file name, kept for display

    Returns:
        SourceImage with the decoded width and height

    Raises:
        InvalidInputError: If the upload is empty or not an image media type
        DecodeError: If the bytes are not a readable image
    """
    if not is_image_media_type(media_type):
        raise InvalidInputError(f"Not an image upload: media type {media_type!r}")
    if not data:
        raise InvalidInputError("Empty upload")

    with _open(bytes(data)) as img:
        width, height = img.size
    if width <= 0 or height <= 0:
        raise DecodeError(f"Image has no pixels ({width}x{height})")

    logger.debug("Loaded %s (%s) %dx%d", name or "<upload>", media_type, width, height)
    return SourceImage(
        data=bytes(data), width=width, height=height, media_type=media_type, name=name
    )


def load_source_file(path: Union[str, Path]) -> SourceImage:
    """Read an image file from disk, taking its media type from the extension."""
    path = Path(path)
    media_type = guess_media_type(path)
    if not is_image_media_type(media_type):
        raise InvalidInputError(f"Not an image file: {path.name}")
    return load_source(path.read_bytes(), media_type=media_type, name=path.name)


def decode_rgba(image: SourceImage) -> np.ndarray:
    """
    Decode a SourceImage to an RGBA array at its native size.

    Returns:
        uint8 array of shape (height, width, 4)
    """
    with _open(image.data) as img:
        try:
            rgba = np.array(img.convert("RGBA"), dtype=np.uint8)
        except (OSError, ValueError, SyntaxError) as e:
            raise DecodeError(f"Could not decode image: {e}") from e

    if rgba.shape[:2] != (image.height, image.width):
        raise DecodeError(
            f"Decoded size {rgba.shape[1]}x{rgba.shape[0]} does not match "
            f"{image.width}x{image.height}"
        )
    return rgba


def threshold_pixels(rgba: np.ndarray, t: int) -> np.ndarray:
    """
    Binarize an RGBA array.

    brightness = (R + G + B) / 3. Pixels with brightness > t become
    transparent, all others become opaque black. The comparison is done on
    the integer channel sum (sum > 3 * t), which is exact.

    Returns:
        New uint8 array; ``rgba`` is left untouched.
    """
    t = validate_threshold(t)
    if rgba.ndim != 3 or rgba.shape[2] != 4:
        raise InvalidInputError(f"Expected an RGBA array, got shape {rgba.shape}")

    channel_sum = rgba[:, :, :3].astype(np.int32).sum(axis=2)
    is_line = channel_sum <= 3 * t

    out = np.zeros(rgba.shape, dtype=np.uint8)
    # R, G, B stay 0 everywhere; only alpha carries the mask.
    out[:, :, 3] = np.where(is_line, 255, 0).astype(np.uint8)
    return out


def threshold(image: SourceImage, t: int) -> ProcessedImage:
    """
    Convert a sketch into transparent-background line art.

    Args:
        image: Uploaded source image
        t: Brightness threshold in [0, 255]

    Returns:
        ProcessedImage at the source's native dimensions
    """
    t = validate_threshold(t)
    rgba = decode_rgba(image)
    processed = ProcessedImage(pixels=threshold_pixels(rgba, t), threshold=t)
    logger.debug(
        "Threshold %d: %d/%d pixels transparent",
        t, processed.transparent_pixel_count(), image.width * image.height,
    )
    return processed

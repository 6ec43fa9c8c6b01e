"""
Sketchlab Resize Module - aspect-ratio-preserving raster scaling.

Resampling uses OpenCV: INTER_AREA when shrinking (box-filter averaging, no
moire on thin lines) and INTER_LINEAR when enlarging. Colour is
premultiplied by alpha before resampling and divided back out afterwards,
so fully transparent pixels never tint their opaque neighbours.
"""

import logging
from typing import Tuple, Union

import cv2
import numpy as np

from .errors import InvalidInputError
from .models import ProcessedImage, validate_width

logger = logging.getLogger(__name__)


def target_size(width: int, height: int, target_width: int) -> Tuple[int, int]:
    """
    Compute output dimensions for a target width.

    target_height = round_half_up(target_width * height / width), evaluated in
    exact integer arithmetic from the original dimensions, never less than 1.
    """
    target_width = validate_width(target_width)
    if width <= 0 or height <= 0:
        raise InvalidInputError(f"Cannot resize an empty image ({width}x{height})")
    target_height = (2 * target_width * height + width) // (2 * width)
    return target_width, max(1, target_height)


def _premultiply(rgba: np.ndarray) -> np.ndarray:
    data = rgba.astype(np.float32)
    alpha = data[:, :, 3:4] / 255.0
    data[:, :, :3] *= alpha
    return data


def _unpremultiply(data: np.ndarray) -> np.ndarray:
    alpha = data[:, :, 3:4]
    rgb = data[:, :, :3]
    with np.errstate(divide="ignore", invalid="ignore"):
        rgb = np.where(alpha > 0, rgb * 255.0 / alpha, 0.0)
    out = np.empty(data.shape, dtype=np.uint8)
    out[:, :, :3] = np.clip(np.rint(rgb), 0, 255).astype(np.uint8)
    out[:, :, 3] = np.clip(np.rint(data[:, :, 3]), 0, 255).astype(np.uint8)
    return out


def resize(image: Union[ProcessedImage, np.ndarray], target_width: int) -> np.ndarray:
    """
    Rescale an RGBA raster to ``target_width``, preserving aspect ratio.

    Args:
        image: ProcessedImage or RGBA uint8 array (H, W, 4)
        target_width: Output width in pixels, must be positive

    Returns:
        New RGBA uint8 array of the computed size

    Raises:
        InvalidInputError: If target_width is zero, negative or not an integer
    """
    rgba = image.pixels if isinstance(image, ProcessedImage) else image
    if rgba.ndim != 3 or rgba.shape[2] != 4:
        raise InvalidInputError(f"Expected an RGBA array, got shape {rgba.shape}")

    height, width = rgba.shape[:2]
    new_w, new_h = target_size(width, height, target_width)

    if (new_w, new_h) == (width, height):
        return rgba.copy()

    interpolation = cv2.INTER_AREA if new_w < width else cv2.INTER_LINEAR
    resampled = cv2.resize(_premultiply(rgba), (new_w, new_h), interpolation=interpolation)
    logger.debug("Resized %dx%d -> %dx%d", width, height, new_w, new_h)
    return _unpremultiply(resampled)

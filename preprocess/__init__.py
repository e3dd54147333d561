"""Image preparation for OCR.

Every capture goes through :func:`prepare` once: large captures are
downscaled to a working size and big enough images get a light contrast
stretch and sharpen.  Both steps fall back to their input on failure so the
pipeline never aborts here.
"""

from __future__ import annotations

import logging
from typing import Tuple

import numpy as np
from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

MAX_WORKING_DIMENSION = 2600
MIN_PREPROCESS_AREA = 800 * 800


def _rgb(image: Image.Image) -> Image.Image:
    if image.mode in ("RGB", "L"):
        return image
    return image.convert("RGB")


def downscale(image: Image.Image, max_dim: int = MAX_WORKING_DIMENSION) -> Tuple[Image.Image, float]:
    """Resize image so that its longest dimension is at most ``max_dim``.

    Returns the (possibly new) image and the applied scale factor.  On resize
    failure the original image is returned with a scale of ``1.0``.
    """
    w, h = image.size
    max_current = max(w, h)
    if max_current <= max_dim:
        return image, 1.0
    scale = max_dim / float(max_current)
    new_size = (
        max(1, min(max_dim, round(w * scale))),
        max(1, min(max_dim, round(h * scale))),
    )
    try:
        return image.resize(new_size, Image.Resampling.LANCZOS), scale
    except (OSError, ValueError) as exc:
        logger.warning("Downscale to %s failed, keeping original: %s", new_size, exc)
        return image, 1.0


def contrast_stretch(image: Image.Image) -> Image.Image:
    """Stretch each channel to the full 0-255 range."""
    return ImageOps.autocontrast(_rgb(image))


def sharpen(image: Image.Image) -> Image.Image:
    """Mild 3x3 sharpen (centre 5, orthogonal neighbours -1) with extended edges."""
    arr = np.asarray(_rgb(image), dtype=np.int16)
    pad = [(1, 1), (1, 1)] + [(0, 0)] * (arr.ndim - 2)
    p = np.pad(arr, pad, mode="edge")
    out = (
        5 * p[1:-1, 1:-1]
        - p[:-2, 1:-1]
        - p[2:, 1:-1]
        - p[1:-1, :-2]
        - p[1:-1, 2:]
    )
    return Image.fromarray(np.clip(out, 0, 255).astype(np.uint8))


def enhance(image: Image.Image, min_area: int = MIN_PREPROCESS_AREA) -> Image.Image:
    """Contrast stretch + sharpen images of at least ``min_area`` pixels."""
    w, h = image.size
    if w * h < min_area:
        return image
    try:
        return sharpen(contrast_stretch(image))
    except (OSError, ValueError) as exc:
        logger.warning("Baseline enhancement failed, passing image through: %s", exc)
        return image


def prepare(
    image: Image.Image,
    max_dim: int = MAX_WORKING_DIMENSION,
    min_area: int = MIN_PREPROCESS_AREA,
) -> Tuple[Image.Image, float]:
    """Downscale and enhance a captured image once before candidate generation.

    Returns the prepared image and the downscale factor (``1.0`` when no
    resize happened).
    """
    resized, scale = downscale(image, max_dim)
    prepared = enhance(resized, min_area)
    logger.debug("Prepared image %sx%s scale=%.2f", prepared.width, prepared.height, scale)
    return prepared, scale


__all__ = [
    "MAX_WORKING_DIMENSION",
    "MIN_PREPROCESS_AREA",
    "contrast_stretch",
    "downscale",
    "enhance",
    "prepare",
    "sharpen",
]

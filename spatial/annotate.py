"""Region overlays for diagnostic images."""

from __future__ import annotations

from typing import Sequence

from PIL import Image, ImageDraw

from .regions import Region

REGION_COLOR = "#F39C12"
BOX_WIDTH = 3  # Bounding box line thickness


def draw_regions(
    image: Image.Image,
    regions: Sequence[Region],
    color: str = REGION_COLOR,
    width: int = BOX_WIDTH,
) -> Image.Image:
    """Draw region outlines on a copy of ``image``.

    Parameters
    ----------
    image : PIL.Image.Image
        Source image
    regions : sequence of Region
        Normalized top-left-origin regions

    Returns
    -------
    PIL.Image.Image
        RGB copy of the image with one rectangle per region
    """
    img = image.convert("RGB")
    draw = ImageDraw.Draw(img)
    for region in regions:
        left, top, right, bottom = region.to_pixels(img.width, img.height)
        draw.rectangle([left, top, max(left, right - 1), max(top, bottom - 1)], outline=color, width=width)
    return img


__all__ = ["REGION_COLOR", "draw_regions"]

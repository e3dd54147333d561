"""Text region detection and rectangle merging.

A text-block detector reports rough boxes in normalized coordinates with the
origin at the bottom-left (Vision convention).  This module turns them into a
short, ordered list of padded and merged regions that scope recognition:

1. flip to top-left pixel rectangles and drop tiny boxes,
2. pad each box and clip it to the image,
3. greedily merge boxes that touch or lie close to each other,
4. order in reading order, cap the count, and normalize back to [0, 1].
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, List, Sequence

from PIL import Image

from engines.protocols import TextBlock, TextBlockDetector

logger = logging.getLogger(__name__)

MIN_BOX_SIZE = 6
PADDING_MIN = 6.0
PADDING_FRACTION = 0.08
MERGE_DISTANCE = 12.0
MAX_REGIONS = 24


@dataclass(frozen=True)
class Rect:
    """Pixel rectangle with a top-left origin.

    Attributes
    ----------
    x, y : float
        Top-left corner
    width, height : float
        Size in pixels
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def area(self) -> float:
        return self.width * self.height

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def intersects(self, other: Rect) -> bool:
        return (
            self.x < other.max_x
            and other.x < self.max_x
            and self.y < other.max_y
            and other.y < self.max_y
        )

    def distance(self, other: Rect) -> float:
        """Distance between the nearest edges; 0 when the rectangles overlap."""
        dx = max(0.0, other.x - self.max_x, self.x - other.max_x)
        dy = max(0.0, other.y - self.max_y, self.y - other.max_y)
        return math.hypot(dx, dy)

    def union(self, other: Rect) -> Rect:
        x0 = min(self.x, other.x)
        y0 = min(self.y, other.y)
        x1 = max(self.max_x, other.max_x)
        y1 = max(self.max_y, other.max_y)
        return Rect(x0, y0, x1 - x0, y1 - y0)

    def intersection(self, other: Rect) -> Rect:
        x0 = max(self.x, other.x)
        y0 = max(self.y, other.y)
        x1 = min(self.max_x, other.max_x)
        y1 = min(self.max_y, other.max_y)
        return Rect(x0, y0, max(0.0, x1 - x0), max(0.0, y1 - y0))

    def inset(self, dx: float, dy: float) -> Rect:
        """Shrink by ``dx``/``dy`` on each side (negative values grow)."""
        return Rect(self.x + dx, self.y + dy, self.width - 2 * dx, self.height - 2 * dy)


@dataclass(frozen=True)
class Region:
    """Normalized rectangle in [0, 1] with a top-left origin."""

    x: float
    y: float
    width: float
    height: float

    def to_pixels(self, width: int, height: int) -> tuple[int, int, int, int]:
        """Return a PIL crop box ``(left, top, right, bottom)``, clipped to the image."""
        left = max(0, int(math.floor(self.x * width)))
        top = max(0, int(math.floor(self.y * height)))
        right = min(width, int(math.ceil((self.x + self.width) * width)))
        bottom = min(height, int(math.ceil((self.y + self.height) * height)))
        return left, top, max(left, right), max(top, bottom)


def block_to_rect(block: TextBlock, width: float, height: float) -> Rect:
    """Convert a bottom-left-origin normalized box to a top-left pixel rectangle."""
    bx, by, bw, bh = block
    return Rect(bx * width, (1.0 - by - bh) * height, bw * width, bh * height)


def expand(rect: Rect, bounds: Rect, padding_min: float = PADDING_MIN,
           padding_fraction: float = PADDING_FRACTION) -> Rect:
    """Pad ``rect`` by ``max(padding_min, fraction * shorter side)`` and clip."""
    padding = max(padding_min, min(rect.width, rect.height) * padding_fraction)
    return rect.inset(-padding, -padding).intersection(bounds)


def _merge_order(rect: Rect) -> tuple:
    # Area first; position breaks ties so input order never matters.
    return (-rect.area, rect.y, rect.x, rect.height, rect.width)


def merge_rects(rects: Iterable[Rect], bounds: Rect, merge_distance: float = MERGE_DISTANCE) -> List[Rect]:
    """Greedily merge overlapping or nearby rectangles.

    The largest remaining rectangle absorbs every other rectangle that
    intersects it or lies closer than ``merge_distance``, repeatedly, until
    nothing more is absorbed.  The accumulated rectangle is emitted and the
    next largest remaining one starts a new group.
    """
    remaining = sorted(rects, key=_merge_order)
    merged: List[Rect] = []

    while remaining:
        current = remaining.pop(0)
        changed = True
        while changed:
            changed = False
            i = 0
            while i < len(remaining):
                other = remaining[i]
                if current.intersects(other) or current.distance(other) < merge_distance:
                    current = current.union(other).intersection(bounds)
                    remaining.pop(i)
                    changed = True
                else:
                    i += 1
        merged.append(current)

    return merged


def normalize(rect: Rect, width: float, height: float) -> Region:
    """Convert a pixel rectangle back to a normalized top-left-origin region."""
    return Region(rect.x / width, rect.y / height, rect.width / width, rect.height / height)


def regions_from_blocks(
    blocks: Sequence[TextBlock],
    width: int,
    height: int,
    *,
    min_box_size: int = MIN_BOX_SIZE,
    padding_min: float = PADDING_MIN,
    padding_fraction: float = PADDING_FRACTION,
    merge_distance: float = MERGE_DISTANCE,
    max_regions: int = MAX_REGIONS,
) -> List[Region]:
    """Turn detector boxes into an ordered, merged list of normalized regions.

    Parameters
    ----------
    blocks : sequence of tuple
        Normalized ``(x, y, width, height)`` boxes, bottom-left origin
    width, height : int
        Size in pixels of the image the boxes refer to
    max_regions : int
        Upper bound on the number of returned regions

    Returns
    -------
    list of Region
        Regions in reading order (top of the image first)
    """
    if not blocks or width <= 0 or height <= 0:
        return []

    bounds = Rect(0.0, 0.0, float(width), float(height))
    rects = [block_to_rect(block, width, height) for block in blocks]
    rects = [r for r in rects if r.width > min_box_size and r.height > min_box_size]
    rects = [expand(r, bounds, padding_min, padding_fraction) for r in rects]
    rects = [r for r in rects if not r.is_empty]

    merged = merge_rects(rects, bounds, merge_distance)
    merged.sort(key=lambda r: (r.y, r.max_y, r.x))
    limited = merged[:max_regions]
    return [normalize(r, width, height) for r in limited]


async def detect_regions(image: Image.Image, detector: TextBlockDetector, **params) -> List[Region]:
    """Detect text regions in ``image``.

    Detector failures are logged and yield an empty list; recognition then
    falls back to whole-image passes.  ``params`` are forwarded to
    :func:`regions_from_blocks`.
    """
    try:
        blocks = await detector.detect_text_blocks(image)
    except Exception as exc:
        logger.warning("Text region detection failed (%s): %s", detector.name, exc)
        return []

    if not blocks:
        return []

    regions = regions_from_blocks(blocks, image.width, image.height, **params)
    logger.debug("Detected %d text blocks -> %d regions", len(blocks), len(regions))
    return regions


__all__ = [
    "MAX_REGIONS",
    "MERGE_DISTANCE",
    "Rect",
    "Region",
    "block_to_rect",
    "detect_regions",
    "expand",
    "merge_rects",
    "normalize",
    "regions_from_blocks",
]

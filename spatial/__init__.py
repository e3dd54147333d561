"""Text region detection and merging.

Usage:
    from spatial import detect_regions

    regions = await detect_regions(image, detector)
    for region in regions:
        box = region.to_pixels(image.width, image.height)
"""

from .annotate import REGION_COLOR, draw_regions
from .regions import (
    MAX_REGIONS,
    MERGE_DISTANCE,
    Rect,
    Region,
    block_to_rect,
    detect_regions,
    expand,
    merge_rects,
    normalize,
    regions_from_blocks,
)

__all__ = [
    # Detection and merging
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
    # Annotation
    "REGION_COLOR",
    "draw_regions",
]

"""Tests for text region detection and merging."""

import asyncio
import random

import pytest
from PIL import Image

from engines.errors import EngineError
from spatial.annotate import draw_regions
from spatial.regions import (
    Rect,
    Region,
    block_to_rect,
    detect_regions,
    merge_rects,
    regions_from_blocks,
)
from tests.fakes import FakeDetector


def _as_set(regions, digits=6):
    return {tuple(round(v, digits) for v in (r.x, r.y, r.width, r.height)) for r in regions}


class TestRect:
    """Geometry helpers."""

    def test_distance_between_separated_rects(self):
        """Distance is measured between nearest edges."""
        a = Rect(0, 0, 10, 10)
        b = Rect(13, 14, 5, 5)
        assert a.distance(b) == pytest.approx(5.0)

    def test_distance_zero_when_overlapping(self):
        """Overlapping rectangles are zero apart."""
        assert Rect(0, 0, 10, 10).distance(Rect(5, 5, 10, 10)) == 0.0

    def test_touching_edges_do_not_intersect(self):
        """Shared edges alone do not count as an intersection."""
        assert not Rect(0, 0, 10, 10).intersects(Rect(10, 0, 5, 5))

    def test_block_to_rect_flips_origin(self):
        """Bottom-left normalized boxes become top-left pixel rectangles."""
        rect = block_to_rect((0.1, 0.5, 0.2, 0.2), 200, 100)
        assert (rect.x, rect.y, rect.width, rect.height) == pytest.approx((20, 30, 40, 20))

    def test_region_to_pixels_clipped(self):
        """Pixel boxes are clipped to the image."""
        region = Region(0.9, 0.9, 0.2, 0.2)
        assert region.to_pixels(100, 50) == (90, 45, 100, 50)


class TestRegionsFromBlocks:
    """Filtering, padding, merging and ordering."""

    def test_single_block_padded_and_normalized(self):
        """A single box is padded and returned normalized."""
        regions = regions_from_blocks([(0.1, 0.5, 0.2, 0.2)], 200, 100)
        assert len(regions) == 1
        r = regions[0]
        # 40x20 px box at (20, 30), padded by 6 px on each side.
        assert (r.x, r.y, r.width, r.height) == pytest.approx((14 / 200, 24 / 100, 52 / 200, 32 / 100))

    def test_tiny_boxes_dropped(self):
        """Boxes of 6 px or less on a side are ignored."""
        # 6 px wide: not strictly larger than the minimum.
        assert regions_from_blocks([(0.1, 0.1, 0.06, 0.5)], 100, 100) == []

    def test_nearby_boxes_merge(self):
        """Boxes closer than the merge distance become one region."""
        blocks = [(0.10, 0.80, 0.10, 0.05), (0.22, 0.80, 0.10, 0.05)]
        regions = regions_from_blocks(blocks, 1000, 1000)
        assert len(regions) == 1

    def test_distant_boxes_stay_apart_top_first(self):
        """Separate regions come back in reading order."""
        lower = (0.1, 0.1, 0.2, 0.05)
        upper = (0.5, 0.8, 0.2, 0.05)
        regions = regions_from_blocks([lower, upper], 1000, 1000)
        assert len(regions) == 2
        assert regions[0].y < regions[1].y
        assert regions[0].x == pytest.approx((500 - 6) / 1000)

    def test_capped_at_max_regions(self):
        """No more than the configured number of regions is returned."""
        blocks = [
            (0.05 + col * 0.15, 0.05 + row * 0.15, 0.02, 0.02)
            for row in range(5)
            for col in range(6)
        ]
        regions = regions_from_blocks(blocks, 1000, 1000)
        assert len(regions) == 24
        ys = [r.y for r in regions]
        assert ys == sorted(ys)

    def test_regions_stay_inside_image(self):
        """Merged regions never leave the unit square."""
        blocks = [(0.0, 0.0, 0.1, 0.1), (0.95, 0.95, 0.05, 0.05), (0.0, 0.9, 1.0, 0.1)]
        for r in regions_from_blocks(blocks, 300, 200):
            assert 0.0 <= r.x and 0.0 <= r.y
            assert r.x + r.width <= 1.0 + 1e-9
            assert r.y + r.height <= 1.0 + 1e-9

    def test_empty_input(self):
        """No boxes give no regions."""
        assert regions_from_blocks([], 100, 100) == []


class TestMergeOrderIndependence:
    """Merged rectangles do not depend on the input order."""

    @pytest.mark.parametrize("seed", range(5))
    def test_shuffled_input_gives_same_regions(self, seed):
        """Merging does not depend on the input order."""
        rng = random.Random(seed)
        blocks = [
            (rng.uniform(0, 0.9), rng.uniform(0, 0.9), rng.uniform(0.02, 0.1), rng.uniform(0.01, 0.05))
            for _ in range(25)
        ]
        expected = _as_set(regions_from_blocks(blocks, 800, 600, max_regions=100))
        for _ in range(5):
            shuffled = blocks[:]
            rng.shuffle(shuffled)
            assert _as_set(regions_from_blocks(shuffled, 800, 600, max_regions=100)) == expected

    def test_merge_rects_stays_in_bounds(self):
        """Merged rectangles are clipped to the bounds."""
        bounds = Rect(0, 0, 100, 100)
        merged = merge_rects([Rect(90, 90, 10, 10), Rect(0, 0, 10, 10), Rect(5, 5, 90, 10)], bounds)
        for rect in merged:
            assert rect.x >= 0 and rect.y >= 0
            assert rect.max_x <= 100 and rect.max_y <= 100


class TestDetectRegions:
    """Detector integration."""

    def test_detector_failure_yields_no_regions(self):
        """Detector errors degrade to an empty region list."""
        image = Image.new("L", (100, 100), 255)
        detector = FakeDetector(EngineError("OCR_ERROR", "corrupted"))
        assert asyncio.run(detect_regions(image, detector)) == []
        assert detector.calls == 1

    def test_no_observations(self):
        """An empty detection result gives no regions."""
        image = Image.new("L", (100, 100), 255)
        assert asyncio.run(detect_regions(image, FakeDetector([]))) == []

    def test_regions_from_detector(self):
        """Detector boxes are turned into regions."""
        image = Image.new("L", (200, 100), 255)
        regions = asyncio.run(detect_regions(image, FakeDetector([(0.1, 0.5, 0.2, 0.2)])))
        assert len(regions) == 1


class TestAnnotate:
    def test_draw_regions_returns_copy(self):
        """Annotation draws on an RGB copy of the image."""
        image = Image.new("L", (100, 50), 255)
        annotated = draw_regions(image, [Region(0.1, 0.1, 0.5, 0.5)])
        assert annotated.mode == "RGB"
        assert annotated.size == image.size
        assert image.getpixel((10, 5)) == 255

"""
Apple Vision Framework integration.

Runs ``VNRecognizeTextRequest`` / ``VNDetectTextRectanglesRequest`` through a
Swift script.  Only available on macOS; elsewhere every call raises
``EngineError("UNAVAILABLE", ...)``.
"""

from __future__ import annotations

import logging
import platform
import shutil
from typing import List, Sequence

from PIL import Image

from .run import run
from .. import DETECTOR, RECOGNIZER, register_engine
from ..errors import EngineError
from ..language_codes import preferred_languages
from ..protocols import RecognitionConfig, TextBlock, TextBlockDetector, TextRecognizer

logger = logging.getLogger(__name__)


def _vision_available() -> bool:
    return platform.system() == "Darwin" and shutil.which("swift") is not None


def region_to_vision(region) -> List[float]:
    """Convert a top-left-origin region to Vision's bottom-left-origin ROI."""
    return [region.x, 1.0 - region.y - region.height, region.width, region.height]


class VisionRecognizer:
    """
    Apple Vision text recognizer.

    Language handling follows Vision: with auto detection on, the user's
    preferred languages are still passed as hints; Vision ignores the ones it
    does not support.
    """

    def __init__(self, **_: object):
        self.available = _vision_available()
        if not self.available:
            logger.info("Apple Vision OCR not available (requires macOS with swift)")

    @property
    def name(self) -> str:
        return "vision"

    @property
    def is_available(self) -> bool:
        return self.available

    async def recognize(
        self,
        image: Image.Image,
        config: RecognitionConfig,
        *,
        languages: Sequence[str] = (),
        auto_detect_language: bool = False,
        region=None,
    ) -> str:
        if not self.available:
            raise EngineError("UNAVAILABLE", "Apple Vision not available on this platform")

        options = {
            "task": "recognize",
            "level": config.level.value,
            "correction": config.use_language_correction,
            "minimumTextHeight": config.minimum_text_height,
            "autoDetect": auto_detect_language,
            "languages": list(languages) or preferred_languages(),
        }
        if region is not None:
            options["roi"] = region_to_vision(region)

        result = await run(image, options)
        return "\n".join(result.get("lines", []))


class VisionDetector:
    """Apple Vision text-rectangle detector."""

    def __init__(self, **_: object):
        self.available = _vision_available()

    @property
    def name(self) -> str:
        return "vision"

    async def detect_text_blocks(self, image: Image.Image) -> List[TextBlock]:
        if not self.available:
            raise EngineError("UNAVAILABLE", "Apple Vision not available on this platform")
        result = await run(image, {"task": "detect"})
        blocks: List[TextBlock] = []
        for box in result.get("boxes", []):
            if len(box) != 4:
                logger.warning("Malformed detection box: %s", box)
                continue
            blocks.append(tuple(float(v) for v in box))
        return blocks


def create_recognizer(**kwargs: object) -> VisionRecognizer:
    return VisionRecognizer(**kwargs)


def create_detector(**kwargs: object) -> VisionDetector:
    return VisionDetector(**kwargs)


register_engine(RECOGNIZER, "vision", __name__, "create_recognizer")
register_engine(DETECTOR, "vision", __name__, "create_detector")

# Static type checking helpers
_RECOGNIZER_CHECK: type[TextRecognizer] = VisionRecognizer
_DETECTOR_CHECK: type[TextBlockDetector] = VisionDetector

__all__ = [
    "VisionDetector",
    "VisionRecognizer",
    "create_detector",
    "create_recognizer",
    "region_to_vision",
    "run",
]

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Dict, List, Optional, Sequence, Tuple

from PIL import Image

from .. import DETECTOR, RECOGNIZER, register_engine
from ..errors import EngineError
from ..language_codes import preferred_languages, to_tesseract
from ..protocols import RecognitionConfig, RecognitionLevel, TextBlock, TextBlockDetector, TextRecognizer

logger = logging.getLogger(__name__)

# Page segmentation: fast passes treat the image as sparse text, accurate
# passes run full layout analysis.
_PSM = {RecognitionLevel.FAST: 11, RecognitionLevel.ACCURATE: 3}
# Dictionary-based correction is Tesseract's closest analog to language
# correction; switching the word lists off disables it.
_NO_CORRECTION = ["-c load_system_dawg=0", "-c load_freq_dawg=0"]
_BLOCK_LEVEL = 2


def _import_pytesseract():
    try:
        import pytesseract
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise EngineError("MISSING_DEPENDENCY", "pytesseract not available") from exc
    return pytesseract


@lru_cache(maxsize=None)
def _installed_languages(tesseract_cmd: str) -> Tuple[str, ...]:
    pytesseract = _import_pytesseract()
    if tesseract_cmd:
        pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
    try:
        return tuple(pytesseract.get_languages(config=""))
    except Exception as exc:  # pragma: no cover - runtime failure
        raise EngineError("UNAVAILABLE", f"tesseract not runnable: {exc}") from exc


def build_config(config: RecognitionConfig) -> str:
    """Return the Tesseract command line options for ``config``."""
    parts = ["--oem 1", f"--psm {_PSM[config.level]}"]
    if not config.use_language_correction:
        parts.extend(_NO_CORRECTION)
    return " ".join(parts)


def lines_from_data(data: Dict[str, list], min_height_px: float) -> List[str]:
    """Group ``image_to_data`` words into lines, dropping words below ``min_height_px``."""
    lines: Dict[Tuple[int, int, int], List[str]] = {}
    texts = data.get("text", [])
    for i, word in enumerate(texts):
        if not word or not word.strip():
            continue
        if float(data["height"][i]) < min_height_px:
            continue
        key = (int(data["block_num"][i]), int(data["par_num"][i]), int(data["line_num"][i]))
        lines.setdefault(key, []).append(word.strip())
    return [" ".join(words) for _, words in sorted(lines.items())]


class TesseractRecognizer:
    """Text recognizer backed by the Tesseract command line via pytesseract."""

    def __init__(self, tesseract_cmd: str = ""):
        self._tesseract_cmd = tesseract_cmd

    @property
    def name(self) -> str:
        return "tesseract"

    @property
    def is_available(self) -> bool:
        try:
            return bool(_installed_languages(self._tesseract_cmd))
        except EngineError:
            return False

    def _resolve_languages(self, languages: Sequence[str], auto_detect_language: bool) -> Optional[str]:
        wanted = list(languages) or (preferred_languages() if auto_detect_language else [])
        installed = set(_installed_languages(self._tesseract_cmd))
        matched = [code for code in to_tesseract(wanted) if code in installed]
        return "+".join(matched) if matched else None

    def _recognize_sync(
        self,
        image: Image.Image,
        config: RecognitionConfig,
        languages: Sequence[str],
        auto_detect_language: bool,
        region,
    ) -> str:
        pytesseract = _import_pytesseract()
        from pytesseract import Output

        if region is not None:
            image = image.crop(region.to_pixels(image.width, image.height))
            if image.width < 1 or image.height < 1:
                return ""
        lang = self._resolve_languages(languages, auto_detect_language)
        try:
            data = pytesseract.image_to_data(
                image, lang=lang, config=build_config(config), output_type=Output.DICT
            )
        except pytesseract.TesseractError as exc:  # pragma: no cover - runtime failure
            raise EngineError("OCR_ERROR", str(exc)) from exc
        return "\n".join(lines_from_data(data, config.minimum_text_height * image.height))

    async def recognize(
        self,
        image: Image.Image,
        config: RecognitionConfig,
        *,
        languages: Sequence[str] = (),
        auto_detect_language: bool = False,
        region=None,
    ) -> str:
        return await asyncio.to_thread(
            self._recognize_sync, image, config, languages, auto_detect_language, region
        )


class TesseractDetector:
    """Text-block detector using Tesseract's layout analysis."""

    def __init__(self, tesseract_cmd: str = ""):
        self._tesseract_cmd = tesseract_cmd

    @property
    def name(self) -> str:
        return "tesseract"

    def _detect_sync(self, image: Image.Image) -> List[TextBlock]:
        pytesseract = _import_pytesseract()
        from pytesseract import Output

        if self._tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self._tesseract_cmd
        try:
            data = pytesseract.image_to_data(image, config="--psm 3", output_type=Output.DICT)
        except pytesseract.TesseractError as exc:  # pragma: no cover - runtime failure
            raise EngineError("DETECT_ERROR", str(exc)) from exc
        width, height = image.size
        blocks: List[TextBlock] = []
        for i, level in enumerate(data.get("level", [])):
            if int(level) != _BLOCK_LEVEL:
                continue
            left, top = float(data["left"][i]), float(data["top"][i])
            w, h = float(data["width"][i]), float(data["height"][i])
            if w <= 0 or h <= 0:
                continue
            blocks.append((left / width, 1.0 - (top + h) / height, w / width, h / height))
        return blocks

    async def detect_text_blocks(self, image: Image.Image) -> List[TextBlock]:
        return await asyncio.to_thread(self._detect_sync, image)


def create_recognizer(tesseract_cmd: str = "", **_: object) -> TesseractRecognizer:
    return TesseractRecognizer(tesseract_cmd=tesseract_cmd)


def create_detector(tesseract_cmd: str = "", **_: object) -> TesseractDetector:
    return TesseractDetector(tesseract_cmd=tesseract_cmd)


register_engine(RECOGNIZER, "tesseract", __name__, "create_recognizer")
register_engine(DETECTOR, "tesseract", __name__, "create_detector")

# Static type checking helpers
_RECOGNIZER_CHECK: TextRecognizer = TesseractRecognizer()
_DETECTOR_CHECK: TextBlockDetector = TesseractDetector()

__all__ = [
    "TesseractDetector",
    "TesseractRecognizer",
    "build_config",
    "create_detector",
    "create_recognizer",
    "lines_from_data",
]

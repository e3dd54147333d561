"""Long-lived OCR service tying the pipeline together.

``OCRService`` is built once (usually through :meth:`OCRService.from_settings`)
and reused for every capture or file:

    prepare -> generate candidates -> detect regions -> recognition strategy

No text is not an error: the service returns an empty string.  Only input
that cannot be decoded raises :class:`~engines.errors.InputError`.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Union

from PIL import Image

from config import OCRSettings, get_settings
from engines import create_detector, create_recognizer
from engines.errors import InputError
from engines.protocols import AccuracyMode, LanguageMode, TextBlockDetector, TextRecognizer
from io_utils.debug import DebugSink
from io_utils.read import PDF, file_kind, iter_pdf_pages, load_image
from preprocess import prepare
from preprocess.candidates import Candidate, generate
from spatial.regions import Region, detect_regions

from .models import RawImage
from .scoring import Scorer, score
from .strategy import RecognitionStrategy

logger = logging.getLogger(__name__)

ImageInput = Union[Image.Image, RawImage]

PAGE_SEPARATOR = "\n\n--- Page {number} ---\n\n"


def _to_pil(image: ImageInput) -> Image.Image:
    if isinstance(image, RawImage):
        return image.to_pil()
    if not isinstance(image, Image.Image):
        raise InputError("could_not_process_image", f"Unsupported image object: {type(image).__name__}")
    if image.width <= 0 or image.height <= 0:
        raise InputError("could_not_process_image", "Image has no pixels")
    return image


class OCRService:
    """Screen-region OCR over a recognizer and an optional text-block detector."""

    def __init__(
        self,
        recognizer: TextRecognizer,
        detector: Optional[TextBlockDetector] = None,
        settings: Optional[OCRSettings] = None,
        debug: Optional[DebugSink] = None,
    ):
        self.recognizer = recognizer
        self.detector = detector
        self.settings = settings or OCRSettings()
        self.debug = debug or DebugSink(self.settings.debug_output_dir, self.settings.debug_enabled)
        self.scorer = Scorer(
            strong_min_letters=self.settings.strong_min_letters,
            strong_min_ratio=self.settings.strong_min_ratio,
            good_min_ratio=self.settings.good_min_ratio,
        )
        self.strategy = RecognitionStrategy(recognizer, self.scorer, self.settings.batch_size)

    @classmethod
    def from_settings(cls, settings: Optional[OCRSettings] = None, config_path: Optional[Path] = None) -> "OCRService":
        """Create the service with the engines named in the configuration."""
        settings = settings or get_settings(config_path)
        engine_kwargs = {"tesseract_cmd": settings.tesseract_cmd}
        recognizer = create_recognizer(settings.recognizer, **engine_kwargs)
        detector = create_detector(settings.detector, **engine_kwargs) if settings.detector else None
        logger.info(
            "OCR service using recognizer=%s detector=%s",
            settings.recognizer,
            settings.detector or "none",
        )
        return cls(recognizer, detector, settings)

    def candidates(self, image: ImageInput, accuracy_mode: AccuracyMode) -> tuple[List[Candidate], Image.Image]:
        """Prepare ``image`` and return its candidates and detection image."""
        s = self.settings
        prepared, scale = prepare(_to_pil(image), s.max_working_dimension, s.min_preprocess_area)
        candidates, detection_image = generate(
            prepared,
            accuracy_mode,
            dark_threshold=s.dark_luminance_threshold,
            upscale_limit=s.upscale_limit,
        )
        self.debug.log("Prepared image scale=%.2f candidates=%d", scale, len(candidates))
        return candidates, detection_image

    async def regions(self, detection_image: Image.Image) -> List[Region]:
        if self.detector is None:
            return []
        s = self.settings
        return await detect_regions(
            detection_image,
            self.detector,
            min_box_size=s.min_box_size,
            padding_min=s.padding_min,
            padding_fraction=s.padding_fraction,
            merge_distance=s.merge_distance,
            max_regions=s.max_regions,
        )

    async def perform_ocr(
        self,
        image: ImageInput,
        accuracy_mode: AccuracyMode = AccuracyMode.STANDARD,
        language_mode: Optional[LanguageMode] = None,
    ) -> str:
        """Recognize text in ``image``.

        Returns the best text found, possibly empty.

        Raises:
            InputError: If the image cannot be decoded
        """
        language_mode = language_mode or LanguageMode.auto()
        candidates, detection_image = self.candidates(image, accuracy_mode)

        if self.debug.enabled:
            self.debug.log(
                "OCR mode=%s language=%s candidates=%s",
                accuracy_mode.value,
                language_mode,
                ", ".join(c.label for c in candidates),
            )
            for index, candidate in enumerate(candidates):
                self.debug.save(candidate.image, f"candidate_{index}_{candidate.label}")

        regions = await self.regions(detection_image)
        self.debug.log("Detected text regions: %d", len(regions))

        text = await self.strategy.run(candidates, accuracy_mode, language_mode, regions)
        result = score(text)
        self.debug.log("Final text letters=%d ratio=%.2f", result.letters, result.ratio)
        return text

    async def perform_ocr_with_retry(
        self,
        image: ImageInput,
        accuracy_mode: AccuracyMode = AccuracyMode.STANDARD,
        language_mode: Optional[LanguageMode] = None,
    ) -> str:
        """Like :meth:`perform_ocr`, trimmed, retrying once at HIGH when STANDARD finds nothing."""
        text = (await self.perform_ocr(image, accuracy_mode, language_mode)).strip()
        if not text and accuracy_mode is AccuracyMode.STANDARD:
            logger.info("No text at standard accuracy, retrying at high accuracy")
            text = (await self.perform_ocr(image, AccuracyMode.HIGH, language_mode)).strip()
        return text

    async def extract_text(self, path: Path, accuracy_mode: AccuracyMode = AccuracyMode.STANDARD) -> str:
        """Recognize text in an image file or every page of a PDF document.

        Raises:
            InputError: For unknown or unsupported file types and unreadable files
        """
        path = Path(path)
        if file_kind(path) == PDF:
            return await self._extract_pdf(path, accuracy_mode)
        image = await asyncio.to_thread(load_image, path)
        return await self.perform_ocr(image, accuracy_mode, LanguageMode.auto())

    async def _extract_pdf(self, path: Path, accuracy_mode: AccuracyMode) -> str:
        full_text = ""
        for number, page in iter_pdf_pages(path):
            if page is None:
                continue
            try:
                page_text = await self.perform_ocr(page, accuracy_mode, LanguageMode.auto())
            except InputError as exc:
                logger.warning("Skipping page %d of %s: %s", number, path, exc)
                continue
            if full_text:
                full_text += PAGE_SEPARATOR.format(number=number)
            full_text += page_text
        return full_text.strip()

    def run_ocr(
        self,
        image: ImageInput,
        accuracy_mode: AccuracyMode = AccuracyMode.STANDARD,
        language_mode: Optional[LanguageMode] = None,
        retry: bool = True,
    ) -> str:
        """Blocking wrapper for callers without an event loop."""
        if retry:
            return asyncio.run(self.perform_ocr_with_retry(image, accuracy_mode, language_mode))
        return asyncio.run(self.perform_ocr(image, accuracy_mode, language_mode))


__all__ = ["ImageInput", "OCRService", "PAGE_SEPARATOR"]

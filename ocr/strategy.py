"""Recognition strategy: which engine calls to make, in which order.

Every candidate goes through up to three passes:

* **quick** - one cheap whole-image call; a strong result ends the candidate,
* **region** - each detected region with the ranked configs until one reads,
* **full** - ranked configs against the whole image, across language modes.

Candidates run in small concurrent batches in generator order.  Once a batch
contains a strong result the search stops and later batches are never
started.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from PIL import Image

from engines.errors import EngineError
from engines.protocols import AccuracyMode, LanguageMode, RecognitionConfig, TextRecognizer
from preprocess.candidates import Candidate
from spatial.regions import Region

from .models import CandidateResult, quick_config, recognition_configs
from .scoring import DEFAULT_SCORER, Scorer

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 2


def full_pass_language_modes(language_mode: LanguageMode) -> List[LanguageMode]:
    """Language modes tried by the full pass, in order."""
    if language_mode.is_auto:
        return [LanguageMode.auto(), LanguageMode.system()]
    return [language_mode]


class RecognitionStrategy:
    """Runs the quick/region/full passes over batches of candidates.

    Args:
        recognizer: Engine used for every recognition call
        scorer: Thresholds deciding "good" and "strong" texts
        batch_size: Number of candidates recognized concurrently
    """

    def __init__(
        self,
        recognizer: TextRecognizer,
        scorer: Optional[Scorer] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.recognizer = recognizer
        self.scorer = scorer or DEFAULT_SCORER
        self.batch_size = batch_size

    async def _recognize_safely(
        self,
        image: Image.Image,
        config: RecognitionConfig,
        language_mode: LanguageMode,
        region: Optional[Region] = None,
    ) -> str:
        """One engine call; failures count as empty text."""
        try:
            return await self.recognizer.recognize(
                image,
                config,
                languages=language_mode.hints(),
                auto_detect_language=language_mode.is_auto,
                region=region,
            )
        except EngineError as exc:
            logger.warning("Recognition failed (%s, %s): %s", self.recognizer.name, config.level.value, exc)
            return ""
        except Exception as exc:
            logger.warning(
                "Unexpected recognition error (%s, %s): %s",
                self.recognizer.name,
                config.level.value,
                exc,
                exc_info=True,
            )
            return ""

    async def quick_pass(self, image: Image.Image, mode: AccuracyMode, language_mode: LanguageMode) -> str:
        return await self._recognize_safely(image, quick_config(mode), language_mode)

    async def region_pass(
        self,
        image: Image.Image,
        mode: AccuracyMode,
        language_mode: LanguageMode,
        regions: Sequence[Region],
    ) -> str:
        """Read each region with the first config that yields text; newline-join the results."""
        texts: List[str] = []
        for region in regions:
            for config in recognition_configs(mode):
                text = await self._recognize_safely(image, config, language_mode, region)
                if text.strip():
                    texts.append(text.strip())
                    break
        return "\n".join(texts)

    async def full_pass(self, image: Image.Image, mode: AccuracyMode, language_mode: LanguageMode) -> str:
        """Whole-image configs x language modes; first non-empty text wins."""
        text = ""
        for config in recognition_configs(mode):
            for lang in full_pass_language_modes(language_mode):
                text = await self._recognize_safely(image, config, lang)
                if text.strip():
                    return text
        return text

    async def recognize_candidate(
        self,
        candidate: Candidate,
        mode: AccuracyMode,
        language_mode: LanguageMode,
        regions: Sequence[Region] = (),
    ) -> CandidateResult:
        """Run the quick, region and full passes for one candidate."""
        scorer = self.scorer
        image = candidate.image

        quick = await self.quick_pass(image, mode, language_mode)
        if scorer.is_strong(quick):
            logger.debug("Candidate %s: strong quick pass", candidate.label)
            return CandidateResult(candidate.label, quick)

        region_text = ""
        if regions:
            region_text = await self.region_pass(image, mode, language_mode, regions)
            if scorer.is_strong(region_text):
                logger.debug("Candidate %s: strong region pass", candidate.label)
                return CandidateResult(candidate.label, region_text)

        full = await self.full_pass(image, mode, language_mode)
        best = scorer.best_of(scorer.best_of(quick, region_text), full)
        if not scorer.is_good(best):
            # Most recent attempt that read anything at all.
            best = next((t for t in (full, region_text, quick) if t.strip()), best)
        logger.debug("Candidate %s: %d chars after full pass", candidate.label, len(best))
        return CandidateResult(candidate.label, best)

    async def _guarded(
        self,
        candidate: Candidate,
        mode: AccuracyMode,
        language_mode: LanguageMode,
        regions: Sequence[Region],
    ) -> CandidateResult:
        try:
            return await self.recognize_candidate(candidate, mode, language_mode, regions)
        except Exception as exc:
            logger.warning("Candidate %s failed: %s", candidate.label, exc)
            return CandidateResult(candidate.label, "")

    async def recognize_batch(
        self,
        batch: Sequence[Candidate],
        mode: AccuracyMode,
        language_mode: LanguageMode,
        regions: Sequence[Region] = (),
    ) -> List[CandidateResult]:
        """Recognize a batch concurrently; results keep the batch order."""
        results = await asyncio.gather(
            *(self._guarded(candidate, mode, language_mode, regions) for candidate in batch)
        )
        return list(results)

    async def run(
        self,
        candidates: Sequence[Candidate],
        mode: AccuracyMode,
        language_mode: LanguageMode,
        regions: Sequence[Region] = (),
    ) -> str:
        """Return the best text across ``candidates``.

        Returns the best good text once a batch holds a strong result, else the
        best good text overall, else the last candidate's raw text (possibly
        empty).
        """
        scorer = self.scorer
        best = ""
        fallback = ""

        for start in range(0, len(candidates), self.batch_size):
            batch = candidates[start:start + self.batch_size]
            results = await self.recognize_batch(batch, mode, language_mode, regions)

            batch_strong = False
            for result in results:
                fallback = result.text
                if not scorer.is_good(result.text):
                    continue
                if not best or scorer.is_better(result.text, best):
                    best = result.text
                if scorer.is_strong(result.text):
                    batch_strong = True

            logger.debug(
                "Batch %d (%s): strong=%s",
                start // self.batch_size + 1,
                ", ".join(r.label for r in results),
                batch_strong,
            )
            if batch_strong and best.strip():
                return best

        return best if best.strip() else fallback


__all__ = ["DEFAULT_BATCH_SIZE", "RecognitionStrategy", "full_pass_language_modes"]

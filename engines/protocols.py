"""Protocol definitions for recognition and detection engines.

Third-party engines implement these protocols so the strategy engine can call
them without knowing anything about their internals.  Both calls are
coroutines; engines backed by blocking libraries run them in a worker thread.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from PIL import Image

from .language_codes import preferred_languages

if TYPE_CHECKING:
    from spatial.regions import Region

# Normalized (x, y, width, height) with a bottom-left origin, as reported by
# text-rectangle detectors.
TextBlock = Tuple[float, float, float, float]


class RecognitionLevel(str, Enum):
    """Speed/accuracy trade-off requested from the recognizer."""

    FAST = "fast"
    ACCURATE = "accurate"


class AccuracyMode(str, Enum):
    """Overall accuracy mode chosen by the caller."""

    STANDARD = "standard"
    HIGH = "high"


@dataclass(frozen=True)
class LanguageMode:
    """Which languages recognition should assume.

    ``auto`` lets the engine detect the language, ``system`` uses the user's
    preferred languages, and ``specific`` pins explicit BCP-47 tags.
    """

    kind: str
    tags: Tuple[str, ...] = ()

    AUTO_KIND = "auto"
    SYSTEM_KIND = "system"
    SPECIFIC_KIND = "specific"

    @classmethod
    def auto(cls) -> "LanguageMode":
        return cls(cls.AUTO_KIND)

    @classmethod
    def system(cls) -> "LanguageMode":
        return cls(cls.SYSTEM_KIND)

    @classmethod
    def specific(cls, *tags: str) -> "LanguageMode":
        if not tags:
            raise ValueError("A specific language mode needs at least one tag")
        return cls(cls.SPECIFIC_KIND, tuple(tags))

    @classmethod
    def parse(cls, value: str) -> "LanguageMode":
        """Parse ``auto``, ``system``, a named language or comma separated BCP-47 tags."""
        key = value.strip().lower()
        if key == cls.AUTO_KIND:
            return cls.auto()
        if key == cls.SYSTEM_KIND:
            return cls.system()
        if key in NAMED_LANGUAGES:
            return cls.specific(NAMED_LANGUAGES[key])
        tags = [t.strip() for t in value.split(",") if t.strip()]
        return cls.specific(*tags)

    @property
    def is_auto(self) -> bool:
        return self.kind == self.AUTO_KIND

    def hints(self) -> List[str]:
        """Language hints to pass to the recognizer."""
        if self.kind == self.SPECIFIC_KIND:
            return list(self.tags)
        return preferred_languages()

    def __str__(self) -> str:
        return ",".join(self.tags) if self.kind == self.SPECIFIC_KIND else self.kind


NAMED_LANGUAGES = {"english": "en-US", "russian": "ru-RU"}


@dataclass(frozen=True)
class RecognitionConfig:
    """One recognition attempt's settings.

    ``minimum_text_height`` is a fraction of the image height; text smaller
    than that is ignored by the engine.
    """

    level: RecognitionLevel
    use_language_correction: bool
    minimum_text_height: float


@runtime_checkable
class TextRecognizer(Protocol):
    """Recognizes text lines in an image."""

    @property
    def name(self) -> str:
        """Engine name used in logs and the registry."""
        ...

    @property
    def is_available(self) -> bool:
        """Check if the engine can run on this system."""
        ...

    async def recognize(
        self,
        image: Image.Image,
        config: RecognitionConfig,
        *,
        languages: Sequence[str] = (),
        auto_detect_language: bool = False,
        region: Optional["Region"] = None,
    ) -> str:
        """Return recognized lines joined with newlines.

        Args:
            image: Image to read
            config: Recognition level, language correction and text height filter
            languages: BCP-47 language hints in priority order
            auto_detect_language: Let the engine detect the language itself
            region: Optional normalized top-left-origin rectangle to restrict to

        Raises:
            EngineError: If the engine call fails
        """
        ...


@runtime_checkable
class TextBlockDetector(Protocol):
    """Finds coarse text blocks without reading them."""

    @property
    def name(self) -> str:
        ...

    async def detect_text_blocks(self, image: Image.Image) -> List[TextBlock]:
        """Return normalized bottom-left-origin boxes of text blocks."""
        ...


__all__ = [
    "AccuracyMode",
    "LanguageMode",
    "NAMED_LANGUAGES",
    "RecognitionConfig",
    "RecognitionLevel",
    "TextBlock",
    "TextBlockDetector",
    "TextRecognizer",
]

"""Data model shared by the OCR pipeline.

Most enums and engine-facing types live in :mod:`engines.protocols` so that
``preprocess`` and ``spatial`` can use them without importing this package;
they are re-exported here for callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from PIL import Image

from engines.errors import EngineError, InputError
from engines.protocols import AccuracyMode, LanguageMode, RecognitionConfig, RecognitionLevel
from preprocess.candidates import Candidate
from preprocess.flows import Variant
from spatial.regions import Region

# Bytes per pixel for the raw formats a capture collaborator may hand over.
PIXEL_FORMATS = {"RGBA": 4, "BGRA": 4, "RGB": 3, "L": 1}


@dataclass(frozen=True)
class RawImage:
    """Read-only pixel buffer as produced by a screen capture."""

    data: bytes
    width: int
    height: int
    color_format: str = "RGBA"

    def to_pil(self) -> Image.Image:
        """Decode the buffer into a PIL image.

        Raises:
            InputError: If the buffer does not match the declared geometry or format
        """
        fmt = self.color_format.upper()
        if fmt not in PIXEL_FORMATS:
            raise InputError("unsupported_pixel_format", f"Unsupported pixel format: {self.color_format}")
        if self.width <= 0 or self.height <= 0:
            raise InputError("invalid_geometry", f"Invalid image size {self.width}x{self.height}")
        expected = self.width * self.height * PIXEL_FORMATS[fmt]
        if len(self.data) != expected:
            raise InputError(
                "buffer_size_mismatch",
                f"Expected {expected} bytes for {self.width}x{self.height} {fmt}, got {len(self.data)}",
            )
        if fmt == "BGRA":
            return Image.frombuffer("RGBA", (self.width, self.height), self.data, "raw", "BGRA", 0, 1)
        return Image.frombytes(fmt, (self.width, self.height), self.data)


@dataclass(frozen=True)
class CandidateResult:
    label: str
    text: str


STANDARD_CONFIGS: Tuple[RecognitionConfig, ...] = (
    RecognitionConfig(RecognitionLevel.ACCURATE, True, 0.006),
    RecognitionConfig(RecognitionLevel.FAST, False, 0.006),
)

HIGH_CONFIGS: Tuple[RecognitionConfig, ...] = (
    RecognitionConfig(RecognitionLevel.ACCURATE, True, 0.002),
    RecognitionConfig(RecognitionLevel.ACCURATE, False, 0.002),
    RecognitionConfig(RecognitionLevel.FAST, False, 0.0015),
)

_QUICK_CONFIGS = {
    AccuracyMode.STANDARD: RecognitionConfig(RecognitionLevel.FAST, False, 0.008),
    AccuracyMode.HIGH: RecognitionConfig(RecognitionLevel.FAST, False, 0.004),
}


def recognition_configs(mode: AccuracyMode) -> List[RecognitionConfig]:
    """Ranked recognition configs for ``mode``, best first."""
    return list(HIGH_CONFIGS if mode is AccuracyMode.HIGH else STANDARD_CONFIGS)


def quick_config(mode: AccuracyMode) -> RecognitionConfig:
    """Cheap config used for the first whole-image attempt."""
    return _QUICK_CONFIGS[mode]


__all__ = [
    "AccuracyMode",
    "Candidate",
    "CandidateResult",
    "EngineError",
    "HIGH_CONFIGS",
    "InputError",
    "LanguageMode",
    "PIXEL_FORMATS",
    "RawImage",
    "RecognitionConfig",
    "RecognitionLevel",
    "Region",
    "STANDARD_CONFIGS",
    "Variant",
    "quick_config",
    "recognition_configs",
]

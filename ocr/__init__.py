"""Screen-region OCR orchestration."""

from .capture import CaptureError, CaptureErrorKind, CaptureOutcome, CaptureSession, Display, PixelRect
from .models import (
    AccuracyMode,
    CandidateResult,
    EngineError,
    InputError,
    LanguageMode,
    RawImage,
    RecognitionConfig,
    RecognitionLevel,
    Region,
)
from .scoring import Score, Scorer, best_of, is_good, is_strong, score
from .service import OCRService
from .strategy import RecognitionStrategy

__all__ = [
    "AccuracyMode",
    "CandidateResult",
    "CaptureError",
    "CaptureErrorKind",
    "CaptureOutcome",
    "CaptureSession",
    "Display",
    "EngineError",
    "InputError",
    "LanguageMode",
    "OCRService",
    "PixelRect",
    "RawImage",
    "RecognitionConfig",
    "RecognitionLevel",
    "RecognitionStrategy",
    "Region",
    "Score",
    "Scorer",
    "best_of",
    "is_good",
    "is_strong",
    "score",
]

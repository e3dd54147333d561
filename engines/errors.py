from __future__ import annotations

from dataclasses import dataclass


@dataclass
class EngineError(Exception):
    """Error raised when a single recognition or detection call fails.

    The pipeline treats it as an empty result for that one attempt and keeps
    going with the remaining stages and candidates.

    Parameters
    ----------
    code:
        Short machine readable error code (``"OCR_ERROR"``,
        ``"MISSING_DEPENDENCY"``, ``"UNAVAILABLE"``, ``"TIMEOUT"`` ...).
    message:
        Human readable error message.
    """

    code: str
    message: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.code}: {self.message}"


@dataclass
class InputError(Exception):
    """The input image or file could not be read at all.

    Unlike :class:`EngineError` this is fatal for the call and is surfaced to
    the caller.
    """

    code: str
    message: str

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.code}: {self.message}"


__all__ = ["EngineError", "InputError"]

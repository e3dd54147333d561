"""Capture-session controller.

Drives one screen-region capture from the caller's side: debounces repeated
triggers, serializes sessions, turns a point-space selection into a clamped
device-pixel rectangle, hands it to the screen-capture collaborator, runs OCR
with the standard-to-high retry and maps every outcome to a user message.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

from PIL import Image

from engines.errors import EngineError, InputError
from engines.protocols import AccuracyMode, LanguageMode
from io_utils.debug import DebugSink
from spatial.regions import Rect

from .models import RawImage
from .service import OCRService

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 0.35
MIN_SELECTION_SIZE = 10
MAX_CAPTURE_SIZE = 50000

MESSAGE_NOT_RECOGNIZED = "Could not recognize. Please try again."
MESSAGE_NO_DISPLAY = "No display available. Please try again."
MESSAGE_PERMISSION_DENIED = (
    "Screen Recording permission is required to capture the selected area. "
    "Enable it in System Settings."
)


class CaptureErrorKind(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    INVALID_RECT = "invalid_rect"
    NO_DISPLAY = "no_display"


@dataclass
class CaptureError(Exception):
    """Raised by the screen-capture collaborator."""

    kind: CaptureErrorKind
    message: str = ""

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}" if self.message else self.kind.value


@dataclass(frozen=True)
class Display:
    """A display's size in points and its backing scale factor."""

    width: float
    height: float
    scale: float = 1.0


@dataclass(frozen=True)
class PixelRect:
    x: int
    y: int
    width: int
    height: int


def to_pixel_rect(rect: Rect, display: Display) -> PixelRect:
    """Clamp a display-relative point rectangle and convert it to device pixels.

    Raises:
        CaptureError: ``INVALID_RECT`` when nothing of the selection is left
    """
    if not (0 < rect.width < MAX_CAPTURE_SIZE and 0 < rect.height < MAX_CAPTURE_SIZE):
        raise CaptureError(CaptureErrorKind.INVALID_RECT, f"Selection out of range: {rect}")

    clipped = rect.intersection(Rect(0.0, 0.0, display.width, display.height))
    if clipped.width < 1 or clipped.height < 1:
        raise CaptureError(CaptureErrorKind.INVALID_RECT, f"Selection outside the display: {rect}")

    scale = max(display.scale, 1.0)
    # Integral pixel rectangle covering the selection, clipped to the display.
    x0 = max(0, math.floor(clipped.x * scale))
    y0 = max(0, math.floor(clipped.y * scale))
    x1 = min(math.ceil(display.width * scale), math.ceil(clipped.max_x * scale))
    y1 = min(math.ceil(display.height * scale), math.ceil(clipped.max_y * scale))
    if x1 - x0 < 1 or y1 - y0 < 1:
        raise CaptureError(CaptureErrorKind.INVALID_RECT, f"Empty pixel rectangle for {rect}")
    return PixelRect(x0, y0, x1 - x0, y1 - y0)


def message_for(error: BaseException) -> str:
    """User-facing message for a failed capture."""
    if isinstance(error, CaptureError):
        if error.kind is CaptureErrorKind.PERMISSION_DENIED:
            return MESSAGE_PERMISSION_DENIED
        if error.kind is CaptureErrorKind.NO_DISPLAY:
            return MESSAGE_NO_DISPLAY
    return MESSAGE_NOT_RECOGNIZED


class SessionState(str, Enum):
    IDLE = "idle"
    SELECTING = "selecting"
    PROCESSING = "processing"


@dataclass(frozen=True)
class CaptureOutcome:
    text: str
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.message is None


CaptureFunc = Callable[[PixelRect], Awaitable[Union[RawImage, Image.Image]]]


class CaptureSession:
    """Serializes capture requests against one :class:`OCRService`.

    Args:
        service: OCR service used for every capture
        capture: Screen-capture collaborator returning the pixels of a rectangle
        debounce: Triggers closer together than this many seconds are ignored
        clock: Monotonic time source
    """

    def __init__(
        self,
        service: OCRService,
        capture: CaptureFunc,
        *,
        debounce: float = DEBOUNCE_SECONDS,
        min_selection: float = MIN_SELECTION_SIZE,
        clock: Callable[[], float] = time.monotonic,
        debug: Optional[DebugSink] = None,
    ):
        self.service = service
        self.capture = capture
        self.debounce = debounce
        self.min_selection = min_selection
        self.clock = clock
        self.debug = debug or service.debug
        self.state = SessionState.IDLE
        self._last_trigger: Optional[float] = None

    def request(self) -> bool:
        """Handle a capture trigger; returns ``True`` if a selection started.

        A trigger inside the debounce window is ignored, a trigger while
        selecting cancels the selection, and a trigger while processing is
        ignored.
        """
        now = self.clock()
        if self._last_trigger is not None and now - self._last_trigger < self.debounce:
            return False
        self._last_trigger = now

        if self.state is SessionState.SELECTING:
            self.cancel_selection()
            return False
        if self.state is SessionState.PROCESSING:
            return False
        self.state = SessionState.SELECTING
        return True

    def cancel_selection(self) -> None:
        if self.state is SessionState.SELECTING:
            self.state = SessionState.IDLE

    async def complete_selection(
        self,
        rect: Rect,
        display: Display,
        accuracy_mode: AccuracyMode = AccuracyMode.STANDARD,
        language_mode: Optional[LanguageMode] = None,
    ) -> Optional[CaptureOutcome]:
        """Capture and recognize the selected rectangle.

        Returns ``None`` when the selection is rejected (too small, or another
        capture is already processing).
        """
        if self.state is SessionState.PROCESSING:
            return None
        if rect.width <= self.min_selection or rect.height <= self.min_selection:
            self.cancel_selection()
            return None

        self.state = SessionState.PROCESSING
        try:
            self.debug.start_session()
            self.debug.log("Selection rect (points): %s", rect)
            return await self._capture_and_recognize(rect, display, accuracy_mode, language_mode)
        finally:
            self.state = SessionState.IDLE

    async def _capture_and_recognize(
        self,
        rect: Rect,
        display: Display,
        accuracy_mode: AccuracyMode,
        language_mode: Optional[LanguageMode],
    ) -> CaptureOutcome:
        try:
            pixel_rect = to_pixel_rect(rect, display)
            self.debug.log("Capture rect pixels=%s scale=%.2f", pixel_rect, display.scale)
            captured = await self.capture(pixel_rect)
            if self.debug.enabled:
                image = captured.to_pil() if isinstance(captured, RawImage) else captured
                self.debug.save(image, "last_capture")
            text = await self.service.perform_ocr_with_retry(captured, accuracy_mode, language_mode)
        except CaptureError as exc:
            logger.warning("Capture failed: %s", exc)
            self.debug.log("Capture error: %s", exc)
            return CaptureOutcome("", message_for(exc))
        except (InputError, EngineError) as exc:
            logger.warning("Recognition failed: %s", exc)
            self.debug.log("Recognition error: %s", exc)
            return CaptureOutcome("", message_for(exc))

        if not text:
            self.debug.log("No text recognized after OCR.")
            return CaptureOutcome("", MESSAGE_NOT_RECOGNIZED)
        return CaptureOutcome(text)


__all__ = [
    "CaptureError",
    "CaptureErrorKind",
    "CaptureOutcome",
    "CaptureSession",
    "Display",
    "MESSAGE_NOT_RECOGNIZED",
    "MESSAGE_NO_DISPLAY",
    "MESSAGE_PERMISSION_DENIED",
    "PixelRect",
    "SessionState",
    "message_for",
    "to_pixel_rect",
]

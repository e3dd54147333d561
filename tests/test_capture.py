"""Tests for the capture-session controller."""

import asyncio

import pytest
from PIL import Image

from config import OCRSettings
from engines.protocols import AccuracyMode
from ocr.capture import (
    MESSAGE_NO_DISPLAY,
    MESSAGE_NOT_RECOGNIZED,
    MESSAGE_PERMISSION_DENIED,
    CaptureError,
    CaptureErrorKind,
    CaptureSession,
    Display,
    PixelRect,
    SessionState,
    to_pixel_rect,
)
from ocr.service import OCRService
from spatial.regions import Rect
from tests.fakes import FakeRecognizer


class FakeClock:
    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


def make_session(respond=lambda call: "Captured screen text", capture=None, clock=None):
    service = OCRService(FakeRecognizer(respond), None, OCRSettings())
    captured = []

    async def default_capture(rect: PixelRect):
        captured.append(rect)
        return Image.new("RGB", (rect.width, rect.height), "white")

    session = CaptureSession(service, capture or default_capture, clock=clock or FakeClock())
    return session, captured


DISPLAY = Display(1440, 900, scale=2.0)
SELECTION = Rect(100, 100, 200, 50)


class TestToPixelRect:
    """Point-space selection to device pixels."""

    def test_scaled(self):
        """Point coordinates are multiplied by the display scale."""
        assert to_pixel_rect(Rect(10.5, 20, 100, 50), DISPLAY) == PixelRect(21, 40, 200, 100)

    def test_clamped_to_display(self):
        """A selection hanging off the display is clipped to it."""
        rect = to_pixel_rect(Rect(-10, 850, 100, 100), Display(1440, 900))
        assert rect == PixelRect(0, 850, 90, 50)

    def test_outside_display(self):
        """A selection entirely off the display is rejected."""
        with pytest.raises(CaptureError) as exc_info:
            to_pixel_rect(Rect(2000, 100, 50, 50), Display(1440, 900))
        assert exc_info.value.kind is CaptureErrorKind.INVALID_RECT

    def test_empty_rect(self):
        """A zero-width selection is rejected."""
        with pytest.raises(CaptureError):
            to_pixel_rect(Rect(10, 10, 0, 20), DISPLAY)


class TestRequests:
    """Debounce and serialization of triggers."""

    def test_first_request_starts_selection(self):
        """An idle session starts selecting on the first trigger."""
        session, _ = make_session()
        assert session.request()
        assert session.state is SessionState.SELECTING

    def test_request_within_debounce_ignored(self):
        """A second trigger inside the debounce window changes nothing."""
        clock = FakeClock()
        session, _ = make_session(clock=clock)
        session.request()
        clock.now += 0.1
        assert not session.request()
        assert session.state is SessionState.SELECTING

    def test_second_request_cancels_selection(self):
        """A later trigger while selecting cancels the selection."""
        clock = FakeClock()
        session, _ = make_session(clock=clock)
        session.request()
        clock.now += 1.0
        assert not session.request()
        assert session.state is SessionState.IDLE

    def test_request_while_processing_ignored(self):
        """Triggers during recognition are ignored."""
        session, _ = make_session()
        session.state = SessionState.PROCESSING
        assert not session.request()
        assert session.state is SessionState.PROCESSING


class TestCompleteSelection:
    """Capture, recognition and message mapping."""

    def test_success(self):
        """The captured pixels are recognized and the session returns to idle."""
        session, captured = make_session()
        session.request()

        outcome = asyncio.run(session.complete_selection(SELECTION, DISPLAY))

        assert outcome.ok
        assert outcome.text == "Captured screen text"
        assert captured == [PixelRect(200, 200, 400, 100)]
        assert session.state is SessionState.IDLE

    def test_small_selection_rejected(self):
        """Selections of 10 points or less on a side are dropped without capturing."""
        session, captured = make_session()
        session.request()

        assert asyncio.run(session.complete_selection(Rect(0, 0, 10, 300), DISPLAY)) is None
        assert captured == []
        assert session.state is SessionState.IDLE

    def test_ignored_while_processing(self):
        """Only one capture is processed at a time."""
        session, captured = make_session()
        session.state = SessionState.PROCESSING
        assert asyncio.run(session.complete_selection(SELECTION, DISPLAY)) is None
        assert captured == []

    def test_no_text_message(self):
        """Empty text after the retry produces the not-recognized message."""
        session, _ = make_session(respond=lambda call: "")
        outcome = asyncio.run(session.complete_selection(SELECTION, DISPLAY, AccuracyMode.STANDARD))
        assert outcome.message == MESSAGE_NOT_RECOGNIZED
        assert outcome.text == ""

    @pytest.mark.parametrize(
        "kind, message",
        [
            (CaptureErrorKind.PERMISSION_DENIED, MESSAGE_PERMISSION_DENIED),
            (CaptureErrorKind.NO_DISPLAY, MESSAGE_NO_DISPLAY),
            (CaptureErrorKind.INVALID_RECT, MESSAGE_NOT_RECOGNIZED),
        ],
    )
    def test_capture_errors_mapped(self, kind, message):
        """Each capture failure kind maps to its user message."""
        async def failing_capture(rect):
            raise CaptureError(kind)

        session, _ = make_session(capture=failing_capture)
        outcome = asyncio.run(session.complete_selection(SELECTION, DISPLAY))

        assert not outcome.ok
        assert outcome.message == message
        assert session.state is SessionState.IDLE

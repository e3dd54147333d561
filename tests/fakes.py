"""Scripted engine fakes and image helpers for tests."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple, Union

from PIL import Image

from engines.protocols import RecognitionConfig, TextBlock
from preprocess.candidates import Candidate
from spatial.regions import Region


@dataclass(frozen=True)
class Call:
    """One recorded ``recognize`` call."""

    label: Optional[str]
    config: RecognitionConfig
    languages: Tuple[str, ...]
    auto_detect_language: bool
    region: Optional[Region]


Response = Union[str, Exception]


class FakeRecognizer:
    """Scripted recognizer: ``respond(call)`` returns the text or an exception to raise."""

    name = "fake"
    is_available = True

    def __init__(self, respond: Callable[[Call], Response] = lambda call: "", delay: float = 0.0):
        self.respond = respond
        self.delay = delay
        self.calls: List[Call] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def recognize(self, image, config, *, languages=(), auto_detect_language=False, region=None):
        call = Call(image.info.get("label"), config, tuple(languages), auto_detect_language, region)
        self.calls.append(call)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
        finally:
            self.in_flight -= 1
        result = self.respond(call)
        if isinstance(result, Exception):
            raise result
        return result

    def labels(self) -> List[Optional[str]]:
        return [call.label for call in self.calls]


class FakeDetector:
    name = "fake-detector"

    def __init__(self, blocks: Union[List[TextBlock], Exception] = ()):
        self.blocks = blocks
        self.calls = 0

    async def detect_text_blocks(self, image):
        self.calls += 1
        if isinstance(self.blocks, Exception):
            raise self.blocks
        return list(self.blocks)


def labelled_image(label: str, size=(60, 30), color=255) -> Image.Image:
    img = Image.new("L", size, color)
    img.info["label"] = label
    return img


def make_candidates(*labels: str) -> List[Candidate]:
    return [Candidate(image=labelled_image(label), label=label) for label in labels]



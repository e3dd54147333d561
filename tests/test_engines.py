"""
Tests for engine registration and the built-in backends.

Backends are exercised without the external tools: Tesseract parsing helpers
are pure functions, and Apple Vision is forced unavailable.
"""

import asyncio
from unittest.mock import patch

import pytest
from PIL import Image

from engines import (
    DETECTOR,
    RECOGNIZER,
    available_engines,
    create_detector,
    create_recognizer,
    register_engine,
)
from engines.errors import EngineError
from engines.language_codes import preferred_languages, to_bcp47, to_tesseract
from engines.protocols import (
    LanguageMode,
    RecognitionConfig,
    RecognitionLevel,
    TextBlockDetector,
    TextRecognizer,
)
from engines.tesseract import build_config, lines_from_data
from engines.vision_swift import VisionDetector, VisionRecognizer, region_to_vision
from spatial.regions import Region


class TestRegistry:
    """Engine registry."""

    def test_builtins_registered(self):
        """Both built-in backends register as recognizer and detector."""
        assert {"tesseract", "vision"} <= set(available_engines(RECOGNIZER))
        assert {"tesseract", "vision"} <= set(available_engines(DETECTOR))

    def test_unknown_kind(self):
        """Registering an unknown engine kind fails."""
        with pytest.raises(ValueError, match="Unknown engine kind"):
            register_engine("translator", "x", "engines.tesseract", "create_recognizer")

    def test_unknown_engine(self):
        """Creating an unregistered engine lists the available ones."""
        with pytest.raises(ValueError, match="Available"):
            create_recognizer("does-not-exist")

    def test_create_tesseract(self):
        """The Tesseract factories satisfy the engine protocols."""
        assert isinstance(create_recognizer("tesseract"), TextRecognizer)
        assert isinstance(create_detector("tesseract"), TextBlockDetector)

    def test_register_custom_engine(self):
        """Extra names can point at an existing factory."""
        register_engine(RECOGNIZER, "tesseract-alias", "engines.tesseract", "create_recognizer")
        assert "tesseract-alias" in available_engines(RECOGNIZER)
        assert create_recognizer("tesseract-alias", tesseract_cmd="/usr/bin/tesseract").name == "tesseract"


class TestTesseractHelpers:
    """Command line options and output parsing."""

    def test_accurate_with_correction(self):
        """Accurate passes use full layout analysis with dictionaries on."""
        config = RecognitionConfig(RecognitionLevel.ACCURATE, True, 0.006)
        assert build_config(config) == "--oem 1 --psm 3"

    def test_fast_without_correction(self):
        """Fast passes use sparse text mode and switch dictionaries off."""
        options = build_config(RecognitionConfig(RecognitionLevel.FAST, False, 0.008))
        assert "--psm 11" in options
        assert "load_system_dawg=0" in options

    def test_lines_grouped_and_small_words_dropped(self):
        """Words are grouped into lines and short boxes are filtered out."""
        data = {
            "text": ["Hello", "world", "", "tiny", "Next", "line"],
            "height": [20, 20, 0, 3, 18, 18],
            "block_num": [1, 1, 1, 1, 1, 1],
            "par_num": [1, 1, 1, 1, 1, 1],
            "line_num": [1, 1, 1, 1, 2, 2],
        }
        assert lines_from_data(data, min_height_px=5) == ["Hello world", "Next line"]


class TestVision:
    """Apple Vision backend off macOS."""

    def test_unavailable_recognizer_raises(self):
        """Recognizing without Vision raises an UNAVAILABLE engine error."""
        with patch("engines.vision_swift._vision_available", return_value=False):
            recognizer = VisionRecognizer()
        assert not recognizer.is_available
        config = RecognitionConfig(RecognitionLevel.FAST, False, 0.008)
        with pytest.raises(EngineError) as exc_info:
            asyncio.run(recognizer.recognize(Image.new("L", (10, 10)), config))
        assert exc_info.value.code == "UNAVAILABLE"

    def test_unavailable_detector_raises(self):
        """Detecting without Vision raises an engine error."""
        with patch("engines.vision_swift._vision_available", return_value=False):
            detector = VisionDetector()
        with pytest.raises(EngineError):
            asyncio.run(detector.detect_text_blocks(Image.new("L", (10, 10))))

    def test_region_flipped_to_bottom_left(self):
        """Regions are converted to a bottom-left origin for Vision."""
        assert region_to_vision(Region(0.1, 0.2, 0.3, 0.4)) == pytest.approx([0.1, 0.4, 0.3, 0.4])


class TestLanguages:
    """Language modes and code conversion."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("auto", LanguageMode.auto()),
            ("System", LanguageMode.system()),
            ("english", LanguageMode.specific("en-US")),
            ("russian", LanguageMode.specific("ru-RU")),
            ("de-DE, fr-FR", LanguageMode.specific("de-DE", "fr-FR")),
        ],
    )
    def test_parse(self, value, expected):
        """Keywords, language names and tag lists parse to language modes."""
        assert LanguageMode.parse(value) == expected

    def test_specific_needs_tags(self):
        """A specific language mode requires at least one tag."""
        with pytest.raises(ValueError):
            LanguageMode.specific()

    def test_hints(self, monkeypatch):
        """System mode reads preferred languages; specific mode uses its tags."""
        for key in ("LC_ALL", "LC_MESSAGES"):
            monkeypatch.delenv(key, raising=False)
        monkeypatch.setenv("LANG", "C.UTF-8")
        monkeypatch.setenv("LANGUAGE", "ru_RU:en_US")
        assert LanguageMode.system().hints() == ["ru-RU", "en-US"]
        assert LanguageMode.specific("de-DE").hints() == ["de-DE"]

    def test_to_bcp47(self):
        """POSIX locale names normalize to BCP-47 tags."""
        assert to_bcp47("en_US.UTF-8") == "en-US"
        assert to_bcp47("zh-Hans") == "zh-Hans"

    def test_to_tesseract(self):
        """Tags map to unique Tesseract codes; unknown ones are dropped."""
        assert to_tesseract(["en-US", "ru-RU", "en-GB", "xx-YY"]) == ["eng", "rus"]

    def test_preferred_languages_default(self, monkeypatch):
        """Without any locale information English is assumed."""
        for key in ("LANGUAGE", "LC_ALL", "LC_MESSAGES", "LANG"):
            monkeypatch.delenv(key, raising=False)
        with patch("engines.language_codes.locale.getlocale", return_value=(None, None)):
            assert preferred_languages() == ["en-US"]

"""Engine registration and creation helpers.

This module exposes a small plugin system for the two external capabilities
the OCR pipeline consumes: text recognizers and text-block detectors.  Built-in
engines register themselves when imported, and additional engines can be
discovered via the ``screen_ocr.engines`` entry-point group.
"""

import logging
from importlib import import_module, metadata
from typing import Any, Dict, List, Tuple

from .errors import EngineError, InputError
from .protocols import (
    AccuracyMode,
    LanguageMode,
    RecognitionConfig,
    RecognitionLevel,
    TextBlock,
    TextBlockDetector,
    TextRecognizer,
)

logger = logging.getLogger(__name__)

RECOGNIZER = "recognizer"
DETECTOR = "detector"

# Registry mapping kind -> engine -> (module, factory)
_REGISTRY: Dict[str, Dict[str, Tuple[str, str]]] = {}


def register_engine(kind: str, engine: str, module: str, factory: str) -> None:
    """Register ``factory`` from ``module`` as an engine of ``kind``.

    Parameters
    ----------
    kind:
        ``"recognizer"`` or ``"detector"``.
    engine:
        Engine identifier (e.g., ``"vision"`` or ``"tesseract"``).
    module:
        Import path of the module containing the factory.
    factory:
        Name of the callable that builds the engine instance.
    """

    if kind not in (RECOGNIZER, DETECTOR):
        raise ValueError(f"Unknown engine kind: {kind}")
    _REGISTRY.setdefault(kind, {})[engine] = (module, factory)


def available_engines(kind: str) -> List[str]:
    """Return a sorted list of engines registered for ``kind``."""

    return sorted(_REGISTRY.get(kind, {}))


def _discover_entry_points() -> None:
    """Load engines exposed via the ``screen_ocr.engines`` entry point."""

    eps = metadata.entry_points().select(group="screen_ocr.engines")
    for ep in eps:
        ep.load()  # Importing registers the engine


def _create(kind: str, engine: str, **kwargs: Any) -> Any:
    engines = _REGISTRY.get(kind, {})
    if engine not in engines:
        available = ", ".join(sorted(engines))
        raise ValueError(f"Engine '{engine}' unavailable as {kind}. Available: {available}")
    module_name, factory_name = engines[engine]
    module = import_module(module_name)
    factory = getattr(module, factory_name)
    return factory(**kwargs)


def create_recognizer(engine: str, **kwargs: Any) -> TextRecognizer:
    """Instantiate the recognizer registered as ``engine``.

    Raises
    ------
    ValueError
        If no recognizer with that name is registered.
    """

    return _create(RECOGNIZER, engine, **kwargs)


def create_detector(engine: str, **kwargs: Any) -> TextBlockDetector:
    """Instantiate the text-block detector registered as ``engine``."""

    return _create(DETECTOR, engine, **kwargs)


# Import built-in engines so they register themselves on module import.
for _mod in ("vision_swift", "tesseract"):
    try:
        import_module(f"{__name__}.{_mod}")
    except ImportError as exc:  # pragma: no cover - optional deps may be missing
        logger.debug("Built-in engine %s not loaded: %s", _mod, exc)

_discover_entry_points()

__all__ = [
    "AccuracyMode",
    "DETECTOR",
    "EngineError",
    "InputError",
    "LanguageMode",
    "RECOGNIZER",
    "RecognitionConfig",
    "RecognitionLevel",
    "TextBlock",
    "TextBlockDetector",
    "TextRecognizer",
    "available_engines",
    "create_detector",
    "create_recognizer",
    "register_engine",
]

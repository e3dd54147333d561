"""Diagnostic dumps of capture sessions.

When enabled, every capture, every recognition candidate and a session log
are written to one directory, which is emptied at the start of each session.
Disabled by default; when disabled every call is a no-op.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

from PIL import Image

from .logs import close_file_logger, file_logger

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = Path("/tmp/screen_ocr_debug")
LOG_FILE_NAME = "debug.log"

_UNSAFE = re.compile(r"[^\w-]", re.UNICODE)


def sanitize(name: str) -> str:
    """Replace anything but letters, digits, ``_`` and ``-`` with ``_``."""
    return _UNSAFE.sub("_", name)


class DebugSink:
    def __init__(self, output_dir: Path = DEFAULT_OUTPUT_DIR, enabled: bool = False):
        self.output_dir = Path(output_dir)
        self.enabled = enabled
        self._log: Optional[logging.Logger] = None

    def start_session(self) -> None:
        """Empty the output directory and start a fresh session log."""
        if not self.enabled:
            return
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            for entry in self.output_dir.iterdir():
                if entry.is_file() or entry.is_symlink():
                    entry.unlink()
            self._log = file_logger(f"{__name__}.session", self.output_dir / LOG_FILE_NAME)
        except OSError as exc:
            logger.warning("Failed to prepare debug directory %s: %s", self.output_dir, exc)

    def log(self, message: str, *args) -> None:
        if not self.enabled:
            return
        logger.debug(message, *args)
        if self._log is None:
            self.start_session()
        if self._log is not None:
            self._log.debug(message, *args)

    def save(self, image: Image.Image, name: str) -> Optional[Path]:
        """Write ``image`` as ``<name>.png``; returns the path or ``None``."""
        if not self.enabled:
            return None
        path = self.output_dir / f"{sanitize(name)}.png"
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            image.save(path, format="PNG")
        except (OSError, ValueError) as exc:
            self.log("Failed to write debug image %s: %s", path.name, exc)
            return None
        return path

    def close(self) -> None:
        if self._log is not None:
            close_file_logger(self._log)
            self._log = None

"""Language code helpers shared by the recognition engines."""

from __future__ import annotations

import locale
import os
from typing import Iterable, List

# BCP-47 primary subtag -> ISO 639-2/T code used by Tesseract traineddata.
_ISO3: dict[str, str] = {
    "en": "eng",
    "ru": "rus",
    "de": "deu",
    "fr": "fra",
    "es": "spa",
    "it": "ita",
    "pt": "por",
    "uk": "ukr",
    "pl": "pol",
    "nl": "nld",
    "sv": "swe",
    "tr": "tur",
    "ja": "jpn",
    "ko": "kor",
    "zh": "chi_sim",
}


def to_bcp47(tag: str) -> str:
    """Normalize a POSIX locale name (``en_US.UTF-8``) to BCP-47 (``en-US``)."""
    base = tag.split(".", 1)[0].split("@", 1)[0]
    parts = [p for p in base.replace("_", "-").split("-") if p]
    if not parts:
        raise ValueError(f"Invalid language tag: {tag!r}")
    primary = parts[0].lower()
    rest = [p.upper() if len(p) == 2 else p for p in parts[1:]]
    return "-".join([primary, *rest])


def preferred_languages() -> List[str]:
    """Return the user's preferred languages as BCP-47 tags.

    ``LANGUAGE`` (colon separated) wins over ``LC_ALL``/``LANG``; the process
    locale is the last resort.  Always returns at least ``["en-US"]``.
    """
    raw: List[str] = []
    if os.environ.get("LANGUAGE"):
        raw.extend(os.environ["LANGUAGE"].split(":"))
    for key in ("LC_ALL", "LC_MESSAGES", "LANG"):
        if os.environ.get(key):
            raw.append(os.environ[key])
            break
    if not raw:
        loc = locale.getlocale()[0]
        if loc:
            raw.append(loc)

    result: List[str] = []
    for item in raw:
        if not item or item.split(".", 1)[0] in ("C", "POSIX"):
            continue
        try:
            tag = to_bcp47(item)
        except ValueError:
            continue
        if tag not in result:
            result.append(tag)
    return result or ["en-US"]


def to_tesseract(tags: Iterable[str]) -> List[str]:
    """Map BCP-47 tags to Tesseract language codes, dropping unknown ones."""
    result: List[str] = []
    for tag in tags:
        primary = to_bcp47(tag).split("-", 1)[0]
        code = _ISO3.get(primary)
        if code and code not in result:
            result.append(code)
    return result


__all__ = ["preferred_languages", "to_bcp47", "to_tesseract"]

"""Heuristic text quality scoring.

A recognized text is scored by how many of its non-whitespace characters are
letters or digits (in any script).  Mostly-punctuation output from a noisy
candidate scores low; readable text scores high.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Score:
    letters: int
    ratio: float


EMPTY_SCORE = Score(0, 0.0)

STRONG_MIN_LETTERS = 8
STRONG_MIN_RATIO = 0.6
GOOD_MIN_RATIO = 0.2


def score(text: str) -> Score:
    """Score ``text`` as (letter/digit count, letter ratio among non-whitespace)."""
    trimmed = text.strip()
    if not trimmed:
        return EMPTY_SCORE
    total = sum(1 for ch in trimmed if not ch.isspace())
    if total == 0:
        return EMPTY_SCORE
    letters = sum(1 for ch in trimmed if ch.isalnum())
    return Score(letters, letters / total)


@dataclass(frozen=True)
class Scorer:
    """Scoring thresholds.

    ``strong`` results end the search early; ``good`` results are eligible to
    become the best answer.
    """

    strong_min_letters: int = STRONG_MIN_LETTERS
    strong_min_ratio: float = STRONG_MIN_RATIO
    good_min_ratio: float = GOOD_MIN_RATIO

    def score(self, text: str) -> Score:
        return score(text)

    def is_strong(self, text: str) -> bool:
        s = score(text)
        return s.letters >= self.strong_min_letters and s.ratio >= self.strong_min_ratio

    def is_good(self, text: str) -> bool:
        s = score(text)
        return s.letters > 0 and s.ratio >= self.good_min_ratio

    def best_of(self, a: str, b: str) -> str:
        """Return the better of two texts; ``a`` wins ties."""
        sa, sb = score(a), score(b)
        if sb.letters != sa.letters:
            return b if sb.letters > sa.letters else a
        return b if sb.ratio > sa.ratio else a

    def is_better(self, candidate: str, current: str) -> bool:
        """True when ``candidate`` beats ``current`` outright (more letters, or equal and higher ratio)."""
        sc, cur = score(candidate), score(current)
        if sc.letters != cur.letters:
            return sc.letters > cur.letters
        return sc.ratio > cur.ratio


DEFAULT_SCORER = Scorer()


def is_strong(text: str) -> bool:
    return DEFAULT_SCORER.is_strong(text)


def is_good(text: str) -> bool:
    return DEFAULT_SCORER.is_good(text)


def best_of(a: str, b: str) -> str:
    return DEFAULT_SCORER.best_of(a, b)


__all__ = [
    "DEFAULT_SCORER",
    "EMPTY_SCORE",
    "Score",
    "Scorer",
    "best_of",
    "is_good",
    "is_strong",
    "score",
]

"""Tests for text scoring heuristics."""

import pytest

from ocr.scoring import Score, Scorer, best_of, is_good, is_strong, score


class TestScore:
    """Letter counts and ratios."""

    @pytest.mark.parametrize("text", ["", "   ", "\n\t "])
    def test_blank_text_scores_zero(self, text):
        """Blank text scores zero letters and zero ratio."""
        assert score(text) == Score(0, 0.0)

    def test_counts_letters_and_digits_among_non_whitespace(self):
        """Whitespace is excluded from the ratio denominator."""
        result = score("  ab1 !  ")
        assert result.letters == 3
        assert result.ratio == pytest.approx(0.75)

    def test_letters_from_any_script(self):
        """Cyrillic letters count as letters."""
        assert score("Привет мир") == Score(9, 1.0)

    def test_punctuation_only(self):
        """Punctuation alone has no letters."""
        assert score("...,;") == Score(0, 0.0)

    @pytest.mark.parametrize(
        "text, expected",
        [("abc123", Score(6, 1.0)), ("a!! b", Score(2, 0.5))],
    )
    def test_reference_scores(self, text, expected):
        """Alphanumeric count and ratio for mixed text."""
        assert score(text) == expected


class TestThresholds:
    """Strong and good classifications."""

    def test_strong_needs_eight_letters(self):
        """Short words are never strong."""
        assert is_strong("Hello World")
        assert not is_strong("Hello")

    def test_strong_flips_at_eight_letters(self):
        """Seven letters at full ratio are not strong; eight are."""
        assert not is_strong("abcdefg")
        assert is_strong("abcdefgh")

    def test_strong_needs_high_ratio(self):
        """Strong text needs at least 60% letters."""
        assert not is_strong("abcdefgh" + "!" * 8)
        assert is_strong("abcdefgh!!!!")

    def test_good_ratio_boundary(self):
        """Good text needs at least 20% letters."""
        assert is_good("a!!!!")
        assert not is_good("a!!!!!")

    def test_empty_is_neither_good_nor_strong(self):
        """Empty text is neither good nor strong."""
        assert not is_good("")
        assert not is_strong("")

    def test_strong_is_monotonic_in_letters(self):
        """Adding letters never makes strong text weak."""
        text = "Invoice 2024"
        assert is_strong(text)
        for extra in ("a", "bc", " def", "12345"):
            text += extra
            assert is_strong(text)

    def test_custom_thresholds(self):
        """A Scorer applies its own thresholds."""
        lenient = Scorer(strong_min_letters=3, strong_min_ratio=0.5, good_min_ratio=0.1)
        assert lenient.is_strong("abc")
        assert lenient.is_good("a!!!!!!")


class TestBestOf:
    """Comparison between two texts."""

    def test_more_letters_wins(self):
        """The text with more letters wins in either position."""
        assert best_of("abc", "abcd") == "abcd"
        assert best_of("abcd", "abc") == "abcd"

    def test_tie_broken_by_ratio(self):
        """Equal letter counts are decided by ratio."""
        assert best_of("ab!!", "ab") == "ab"
        assert best_of("ab", "ab!!") == "ab"

    def test_full_tie_keeps_first(self):
        """A full tie keeps the first argument."""
        assert best_of("ab", "cd") == "ab"

    @pytest.mark.parametrize(
        "a, b",
        [("hello", "hi"), ("x!", "xy"), ("", "text"), ("12 34", "ab!!")],
    )
    def test_commutative_when_scores_differ(self, a, b):
        """Argument order does not matter when scores differ."""
        assert score(a) != score(b)
        assert best_of(a, b) == best_of(b, a)

    @pytest.mark.parametrize("text", ["", "abc", "!!", "Привет"])
    def test_idempotent(self, text):
        """Comparing a text with itself returns it."""
        assert best_of(text, text) == text

    def test_is_better(self):
        """Only a strictly better score replaces the current text."""
        scorer = Scorer()
        assert scorer.is_better("abcd", "abc")
        assert not scorer.is_better("cd", "ab")
        assert scorer.is_better("ab", "ab!")

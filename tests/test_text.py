"""Tests for confidence scoring, line similarity and the noise filter."""

import re

import pytest

from textextract.text.confidence import (
    MAX_CONFIDENCE,
    calculate_confidence,
    count_words,
    symbol_ratio,
)
from textextract.text.filters import (
    GARBLED_TEXT_MESSAGE,
    ScoringRule,
    TextFilter,
)
from textextract.text.similarity import levenshtein_distance, similarity
from textextract.utils.config import FilterConfig

SOCIAL_SCREENSHOT = (
    "john_doe\n"
    "@john_doe\n"
    "Follow\n"
    "The quick brown fox jumps over the lazy dog.\n"
    "1,234 likes\n"
    "Share\n"
)

DISTINCT_SENTENCES = [
    "The invoice total is due next week.",
    "Please send the signed contract to our office.",
    "Weather today is sunny with a light breeze.",
    "Our team meets every Monday morning at nine.",
    "Remember to back up your files before upgrading.",
    "The library closes early on public holidays.",
]


class TestConfidence:
    """Tests for calculate_confidence."""

    def test_empty_text_scores_zero(self) -> None:
        assert calculate_confidence("") == 0

    def test_clean_text_clamped_to_max(self) -> None:
        assert calculate_confidence("Hello World") == MAX_CONFIDENCE

    def test_symbol_noise_gets_base_score(self) -> None:
        assert calculate_confidence("@@ ## $$") == 75

    def test_digits_get_low_symbol_bonus(self) -> None:
        assert calculate_confidence("12 34") == 85

    def test_score_always_in_range(self) -> None:
        for text in ["x", "!!!", "a b c d e f g h i j k l", "Ünïcödé tëxt"]:
            assert 50 <= calculate_confidence(text) <= 99

    def test_more_words_never_lower_score(self) -> None:
        scores = [calculate_confidence(" ".join(["1"] * n)) for n in range(1, 41)]
        assert scores == sorted(scores)
        assert scores[-1] > scores[0]

    def test_more_proper_words_never_lower_score(self) -> None:
        scores = []
        for swapped in range(11):
            tokens = ["word"] * swapped + ["##"] * (10 - swapped)
            scores.append(calculate_confidence(" ".join(tokens)))
        assert scores == sorted(scores)
        assert scores[-1] > scores[0]

    def test_more_sentences_never_lower_score(self) -> None:
        scores = [
            calculate_confidence(" ".join(["1234 5678 90."] * n)) for n in range(1, 7)
        ]
        assert scores == sorted(scores)
        assert scores[-1] > scores[0]

    def test_count_words(self) -> None:
        assert count_words("  Hello   World \n again ") == 3
        assert count_words("") == 0

    def test_symbol_ratio(self) -> None:
        assert symbol_ratio("") == 0.0
        assert symbol_ratio("ab!!") == pytest.approx(0.5)


class TestSimilarity:
    """Tests for the edit distance helpers."""

    def test_levenshtein_known_values(self) -> None:
        assert levenshtein_distance("kitten", "sitting") == 3
        assert levenshtein_distance("", "abc") == 3
        assert levenshtein_distance("same", "same") == 0

    def test_levenshtein_symmetric(self) -> None:
        assert levenshtein_distance("flaw", "lawn") == levenshtein_distance(
            "lawn", "flaw"
        )

    def test_similarity(self) -> None:
        assert similarity("", "") == 1.0
        assert similarity("abcd", "abcx") == pytest.approx(0.75)
        assert similarity("abc", "xyz") == 0.0


class TestGarbledDetection:
    """Tests for TextFilter.is_garbled."""

    def test_decorative_symbols_are_garbled(self) -> None:
        text_filter = TextFilter()
        assert text_filter.is_garbled("¥€£™®©§¶ ¥€")
        assert text_filter.filter("¥€£™®©§¶ ¥€") == GARBLED_TEXT_MESSAGE

    def test_regular_text_is_not_garbled(self) -> None:
        assert not TextFilter().is_garbled("The quick brown fox jumps.")

    def test_empty_text_is_not_garbled(self) -> None:
        assert not TextFilter().is_garbled("")

    def test_garbled_message_text(self) -> None:
        assert GARBLED_TEXT_MESSAGE.startswith(
            "OCR could not extract readable text from this image."
        )
        assert "• High-contrast images" in GARBLED_TEXT_MESSAGE


class TestTextFilter:
    """Tests for line scoring and ranking."""

    def test_social_noise_removed(self) -> None:
        lines = TextFilter().filter(SOCIAL_SCREENSHOT).splitlines()
        assert lines[0] == "The quick brown fox jumps over the lazy dog."
        assert "Follow" not in lines
        assert "Share" not in lines
        assert "1,234 likes" not in lines
        assert "@john_doe" not in lines

    def test_score_line_reports_rules(self) -> None:
        scored = TextFilter().score_line("1,234 likes")
        assert "engagement_count" in scored.matched
        assert scored.score < 0

    def test_near_duplicates_dropped(self) -> None:
        text = (
            "The quick brown fox jumps over the lazy dog.\n"
            "The quick brown fox jumps over the lazy dog\n"
        )
        assert TextFilter().filter(text) == (
            "The quick brown fox jumps over the lazy dog."
        )

    def test_ties_keep_original_order(self) -> None:
        assert TextFilter().filter("alpha beta\ngamma delta") == (
            "alpha beta\ngamma delta"
        )

    def test_only_noise_returns_empty(self) -> None:
        assert TextFilter().filter("Follow\nShare\n@bob") == ""

    def test_max_lines(self) -> None:
        text = "\n".join(DISTINCT_SENTENCES)
        assert len(TextFilter().filter(text, max_lines=3).splitlines()) == 3
        assert len(TextFilter().filter(text).splitlines()) == 6

    def test_compact_preset(self) -> None:
        text = "\n".join(DISTINCT_SENTENCES)
        text_filter = TextFilter(FilterConfig(compact_max_lines=2))
        assert len(text_filter.filter_compact(text).splitlines()) == 2

    def test_custom_rules(self) -> None:
        rules = [ScoringRule("keep", 5, pattern=re.compile("keep"))]
        assert TextFilter(rules=rules).filter("keep me\ndrop me") == "keep me"

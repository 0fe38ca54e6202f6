"""Heuristic confidence estimation for recognized text.

OCR.space does not report a usable confidence, so every provider result is
scored uniformly from the text itself. The score is a proxy for
readability, not a calibrated probability.
"""

import math
import re

BASE_CONFIDENCE = 75
MIN_CONFIDENCE = 50
MAX_CONFIDENCE = 99

_PROPER_WORD = re.compile(r"\b[A-Za-z]{3,}\b", re.ASCII)
_SYMBOL = re.compile(r"[^\w\s]", re.ASCII)
_CAPITALIZED = re.compile(r"\b[A-Z][a-z]+", re.ASCII)
_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_WHITESPACE = re.compile(r"\s+")


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split())


def symbol_ratio(text: str) -> float:
    """Fraction of characters that are neither word characters nor spaces."""
    if not text:
        return 0.0
    return len(_SYMBOL.findall(text)) / len(text)


def calculate_confidence(text: str) -> int:
    """Score recognized text on a 0-100 scale.

    Starting from a base of 75, bonuses are added for word count, the
    share of proper alphabetic words, sentence structure, low symbol noise
    and capitalized words. Non-empty text is clamped to [50, 99]; empty
    text scores 0 because nothing was recognized.

    Args:
        text: Extracted text, before any filtering.

    Returns:
        Integer confidence score.
    """
    if not text:
        return 0

    confidence = BASE_CONFIDENCE

    word_count = count_words(text)
    if word_count > 10:
        confidence += 5
    if word_count > 30:
        confidence += 5

    proper_words = _PROPER_WORD.findall(text)
    total_tokens = len(_WHITESPACE.split(text))
    proper_ratio = len(proper_words) / max(1, total_tokens)
    confidence += math.floor(proper_ratio * 15)

    sentences = [s for s in _SENTENCE_SPLIT.split(text) if len(s.strip()) > 10]
    if sentences:
        confidence += 5
    if len(sentences) > 2:
        confidence += 5

    ratio = symbol_ratio(text)
    if ratio < 0.1:
        confidence += 10
    elif ratio < 0.2:
        confidence += 5

    if _CAPITALIZED.search(text):
        confidence += 5

    return min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, confidence))

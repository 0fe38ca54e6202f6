"""Heuristic cleanup of noisy OCR output.

Screenshots of social media and app screens come back from OCR with
engagement counters, button labels and handles mixed into the real content.
Each line is scored by an ordered list of named rules; positive lines are
kept, best first, and near-duplicate lines are dropped.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass

from textextract.utils.config import FilterConfig
from textextract.utils.logger import get_logger

from .similarity import similarity

logger = get_logger(__name__)

GARBLED_TEXT_MESSAGE = (
    "OCR could not extract readable text from this image.\n\n"
    "The text appears to be too stylized, decorative, or low resolution "
    "for accurate recognition.\n\n"
    "Try using:\n"
    "• Plain text documents\n"
    "• Screenshots with simple fonts\n"
    "• High-contrast images\n"
    "• Less decorative text styles"
)

_REAL_WORD = re.compile(r"\b[A-Za-z]{3,}\b", re.ASCII)
_WEIRD_CHAR = re.compile(r"[¥€£™®©§¶†‡•…‰′″‹›«»]")
_NON_WORD = re.compile(r"[^\w\s]", re.ASCII)
_LETTER = re.compile(r"[A-Za-z]")


@dataclass(frozen=True)
class ScoringRule:
    """A named line-scoring rule.

    A rule matches either by regex search or by an arbitrary predicate;
    matching lines receive ``weight`` (negative weights are penalties).
    """

    name: str
    weight: int
    pattern: re.Pattern[str] | None = None
    predicate: Callable[[str], bool] | None = None

    def matches(self, line: str) -> bool:
        if self.pattern is not None and self.pattern.search(line):
            return True
        if self.predicate is not None:
            return self.predicate(line)
        return False


@dataclass
class ScoredLine:
    """A line with its score and the names of the rules that fired."""

    text: str
    score: int
    position: int
    matched: list[str]


def _letter_count(line: str) -> int:
    return len(_LETTER.findall(line))


def _mostly_symbols(line: str) -> bool:
    visible = [c for c in line if not c.isspace()]
    if not visible:
        return True
    return _letter_count(line) / len(visible) < 0.5


DEFAULT_RULES: list[ScoringRule] = [
    # Rewards
    ScoringRule("has_letters", 1, predicate=lambda line: _letter_count(line) >= 2),
    ScoringRule("multi_word", 2, predicate=lambda line: len(line.split()) >= 4),
    ScoringRule("long_line", 2, predicate=lambda line: len(line) >= 30),
    ScoringRule(
        "function_words",
        2,
        pattern=re.compile(
            r"\b(the|and|of|to|in|is|for|with|that|this|on|are|was|it|you|we|be)\b",
            re.IGNORECASE,
        ),
    ),
    ScoringRule(
        "domain_keywords",
        2,
        pattern=re.compile(
            r"\b(invoice|total|date|receipt|name|address|amount|order|account"
            r"|report|document|page|chapter|summary|notice|price)\b",
            re.IGNORECASE,
        ),
    ),
    ScoringRule(
        "sentence",
        3,
        pattern=re.compile(r"^[A-Z][^.!?]*[a-z][^.!?]*[.!?][\"')\]]?$"),
    ),
    # Penalties
    ScoringRule(
        "engagement_count",
        -10,
        pattern=re.compile(
            r"^\d+(?:[.,]\d+)?\s*[km]?\s*(?:likes?|followers?|following|follows?"
            r"|views?|shares?|comments?|replies|reposts?|retweets?)$",
            re.IGNORECASE,
        ),
    ),
    ScoringRule(
        "ui_verb",
        -10,
        pattern=re.compile(
            r"^(?:follow|following|share|manage|edit|more|reply|like|subscribe"
            r"|save|message|see more|show more|see translation)$",
            re.IGNORECASE,
        ),
    ),
    ScoringRule("handle", -4, pattern=re.compile(r"(?:^|\s)@[A-Za-z0-9_]+")),
    ScoringRule(
        "url",
        -4,
        pattern=re.compile(
            r"https?://\S+|www\.\S+|\b\S+\.(?:com|net|org|io)\b", re.IGNORECASE
        ),
    ),
    ScoringRule("mostly_symbols", -5, predicate=_mostly_symbols),
]


class TextFilter:
    """Scores, ranks and trims recognized text lines.

    Args:
        config: Thresholds for garbled detection, output size and
            duplicate suppression.
        rules: Scoring rules, applied in order. Defaults to
            :data:`DEFAULT_RULES`.
    """

    def __init__(
        self,
        config: FilterConfig | None = None,
        rules: list[ScoringRule] | None = None,
    ) -> None:
        self.config = config or FilterConfig()
        self.rules = list(rules) if rules is not None else list(DEFAULT_RULES)

    def is_garbled(self, text: str) -> bool:
        """Detect output that is mostly decorative symbols with no words.

        Args:
            text: Raw recognized text.

        Returns:
            True when fewer than ``min_real_words`` real words were found and
            either the weird symbol count or the symbol ratio is too high.
        """
        if not text:
            return False
        real_words = len(_REAL_WORD.findall(text))
        weird_chars = len(_WEIRD_CHAR.findall(text))
        ratio = len(_NON_WORD.findall(text)) / len(text)
        logger.debug(
            "Garbled check: real_words=%d weird_chars=%d symbol_ratio=%.2f",
            real_words,
            weird_chars,
            ratio,
        )
        return real_words < self.config.min_real_words and (
            weird_chars > self.config.max_weird_chars
            or ratio > self.config.max_symbol_ratio
        )

    def score_line(self, line: str) -> ScoredLine:
        """Apply every rule to one line."""
        score = 0
        matched: list[str] = []
        for rule in self.rules:
            if rule.matches(line):
                score += rule.weight
                matched.append(rule.name)
        return ScoredLine(text=line, score=score, position=0, matched=matched)

    def rank_lines(self, text: str) -> list[ScoredLine]:
        """Score all non-empty lines and return positive ones, best first.

        Ties keep their original order. Lines that are near-duplicates of a
        better-ranked line are dropped.
        """
        lines = [line.strip() for line in re.split(r"\n+", text)]
        scored: list[ScoredLine] = []
        for position, line in enumerate(filter(None, lines)):
            result = self.score_line(line)
            result.position = position
            scored.append(result)

        ranked = sorted(
            (s for s in scored if s.score > 0),
            key=lambda s: (-s.score, s.position),
        )

        kept: list[ScoredLine] = []
        for candidate in ranked:
            key = candidate.text.lower()
            if any(
                similarity(key, existing.text.lower())
                >= self.config.duplicate_similarity
                for existing in kept
            ):
                continue
            kept.append(candidate)
        return kept

    def filter(self, text: str, max_lines: int | None = None) -> str:
        """Return a cleaned version of ``text``.

        Args:
            text: Raw recognized text.
            max_lines: Output cap. Defaults to ``config.max_lines``.

        Returns:
            The garbled-text explanation, the joined best lines, or an empty
            string when no line scored positive.
        """
        if self.is_garbled(text):
            logger.info("OCR output looks garbled, returning explanation")
            return GARBLED_TEXT_MESSAGE

        limit = max_lines if max_lines is not None else self.config.max_lines
        kept = self.rank_lines(text)[:limit]
        result = "\n".join(line.text for line in kept).strip()
        logger.debug("Filter kept %d lines", len(kept))
        return result

    def filter_compact(self, text: str) -> str:
        """Filter down to the short ``compact_max_lines`` preset."""
        return self.filter(text, max_lines=self.config.compact_max_lines)

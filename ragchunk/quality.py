"""
Chunk Quality Scorer

Four independent 0-1 metrics computed from the chunk text alone:

    completeness   starts and ends like well-formed prose
    independence   readable without the neighbouring chunks
    density        informative rather than filler
    sharpness      begins and ends on natural boundaries

overall = 0.30 * completeness + 0.30 * independence
        + 0.20 * density + 0.20 * sharpness

Each metric starts from a base value and applies fixed adjustments; the
result is clamped to [0, 1].
"""

import re
from dataclasses import dataclass
from typing import Optional

from .languages import ENGLISH, LanguageProfile
from .sentence_splitter import split_sentence_spans
from .text_utils import (
    CODE_FENCE,
    is_complete_sentence,
    is_header_line,
    is_list_item,
    is_table_line,
    split_words,
)

COMPLETENESS_WEIGHT = 0.30
INDEPENDENCE_WEIGHT = 0.30
DENSITY_WEIGHT = 0.20
SHARPNESS_WEIGHT = 0.20

_LEADING_CONJUNCTIONS = frozenset((
    "and", "but", "or", "so", "because", "however", "therefore", "then",
    "also", "yet", "nor", "although", "though", "while",
))

_DANGLING_PRONOUNS = frozenset((
    "it", "this", "that", "they", "these", "those", "he", "she", "such",
))

_PRONOUNS = _DANGLING_PRONOUNS | frozenset((
    "its", "them", "their", "theirs", "him", "her", "his", "hers",
))

_BACKWARD_REFERENCE_PATTERN = re.compile(
    r"\b(?:as (?:mentioned|noted|described|discussed|shown|stated)"
    r"|(?:see|shown|described|mentioned) above"
    r"|the above|previously|aforementioned|the former|the latter"
    r"|as we saw|earlier in this)\b",
    re.IGNORECASE,
)

_BRACKET_PAIRS = (("(", ")"), ("[", "]"), ("{", "}"))

_TRAILING_BREAKS = ("...", "…", "-", "—", "–")

_CODE_TOKEN_PATTERN = re.compile(r"`[^`]+`|\b\w+_\w+\b|\b\w+\(\)|\b[a-z]+[A-Z]\w+\b")

_PROPER_NOUN_PATTERN = re.compile(r"(?<=[a-z,;:] )[A-Z][a-z]+")

_PUNCTUATION = ".,;:!?\"'()[]{}"


@dataclass(frozen=True)
class QualityScores:
    """Sub-scores of one chunk."""

    completeness: float
    independence: float
    density: float
    sharpness: float

    @property
    def overall(self) -> float:
        return _clamp(
            COMPLETENESS_WEIGHT * self.completeness
            + INDEPENDENCE_WEIGHT * self.independence
            + DENSITY_WEIGHT * self.density
            + SHARPNESS_WEIGHT * self.sharpness
        )

    def to_props(self) -> dict[str, float]:
        return {
            "quality.semanticCompleteness": round(self.completeness, 4),
            "quality.contextIndependence": round(self.independence, 4),
            "quality.informationDensity": round(self.density, 4),
            "quality.boundarySharpness": round(self.sharpness, 4),
            "quality.overall": round(self.overall, 4),
        }


class ChunkQualityScorer:
    """
    Stateless; one instance can score chunks from any number of documents
    in the same language.

    Args:
        profile: Language profile for sentence splitting (English if omitted).
    """

    def __init__(self, profile: Optional[LanguageProfile] = None):
        self.profile = profile or ENGLISH

    def score(self, text: str) -> QualityScores:
        return QualityScores(
            completeness=self.completeness(text),
            independence=self.context_independence(text),
            density=self.information_density(text),
            sharpness=self.boundary_sharpness(text),
        )

    def overall(self, text: str) -> float:
        return self.score(text).overall

    # -------------------------------------------------------------------------
    # Metrics
    # -------------------------------------------------------------------------

    def completeness(self, text: str) -> float:
        stripped = text.strip() if text else ""
        if not stripped:
            return 0.0

        score = 1.0
        if not is_complete_sentence(stripped) and not _ends_structurally(stripped):
            score -= 0.2

        first = stripped[0]
        if first.islower() or first in ",.;:)]}":
            score -= 0.15

        first_word = _first_word(stripped)
        if first_word and first_word[0].islower() and first_word.lower() in _LEADING_CONJUNCTIONS:
            score -= 0.2

        if stripped.endswith(_TRAILING_BREAKS):
            score -= 0.25

        if any(stripped.count(o) != stripped.count(c) for o, c in _BRACKET_PAIRS):
            score -= 0.15

        if len(stripped) >= 50:
            score += 0.05
        return _clamp(score)

    def context_independence(self, text: str) -> float:
        stripped = text.strip() if text else ""
        if not stripped:
            return 0.0

        words = [w.strip(_PUNCTUATION).lower() for w in split_words(stripped)]
        words = [w for w in words if w]
        if not words:
            return 0.0

        score = 1.0
        if words[0] in _DANGLING_PRONOUNS:
            score -= 0.25

        pronoun_density = sum(1 for w in words if w in _PRONOUNS) / len(words)
        if pronoun_density > 0.15:
            score -= 0.2
        elif pronoun_density > 0.10:
            score -= 0.1

        if _BACKWARD_REFERENCE_PATTERN.search(stripped):
            score -= 0.15

        if _is_self_contained_list(stripped):
            score += 0.1
        if _has_topic_sentence(stripped, words[0], self.profile):
            score += 0.05
        return _clamp(score)

    def information_density(self, text: str) -> float:
        stripped = text.strip() if text else ""
        if not stripped:
            return 0.0

        words = split_words(stripped)
        score = 0.5

        non_whitespace = sum(1 for ch in stripped if not ch.isspace()) / len(stripped)
        if non_whitespace > 0.8:
            score += 0.05
        elif non_whitespace < 0.6:
            score -= 0.1

        avg_word_length = sum(len(w) for w in words) / len(words)
        if avg_word_length >= 5:
            score += 0.1
        elif avg_word_length < 3:
            score -= 0.15

        lowered = [w.strip(_PUNCTUATION).lower() for w in words]
        uniqueness = len(set(lowered)) / len(lowered)
        if uniqueness > 0.7:
            score += 0.15
        elif uniqueness < 0.4:
            score -= 0.2

        if any(ch.isdigit() for ch in stripped):
            score += 0.05
        if len(_PROPER_NOUN_PATTERN.findall(stripped)) >= 2:
            score += 0.05
        if _CODE_TOKEN_PATTERN.search(stripped):
            score += 0.05

        if len(stripped) < 100:
            score -= 0.1
        return _clamp(score)

    def boundary_sharpness(self, text: str) -> float:
        stripped = text.strip() if text else ""
        if not stripped:
            return 0.0

        first_line = stripped.split("\n", 1)[0]
        last_line = stripped.rsplit("\n", 1)[-1]
        score = 0.8

        if not _is_structural(first_line) and stripped[0].islower():
            score -= 0.2
        if not is_complete_sentence(stripped) and not _is_structural(last_line):
            score -= 0.15

        if is_header_line(first_line):
            score += 0.1
        if first_line.strip().startswith(CODE_FENCE) or last_line.strip().startswith(CODE_FENCE):
            score += 0.05
        if len(split_sentence_spans(stripped, self.profile)) >= 2:
            score += 0.05
        return _clamp(score)


# =============================================================================
# HELPERS
# =============================================================================


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _first_word(text: str) -> str:
    words = split_words(text)
    return words[0].strip(_PUNCTUATION) if words else ""


def _is_structural(line: str) -> bool:
    stripped = line.strip()
    return (
        is_header_line(stripped)
        or is_list_item(line)
        or is_table_line(stripped)
        or stripped.startswith(CODE_FENCE)
    )


def _ends_structurally(text: str) -> bool:
    last_line = text.rsplit("\n", 1)[-1]
    return _is_structural(last_line) and not last_line.strip().endswith(_TRAILING_BREAKS)


def _is_self_contained_list(text: str) -> bool:
    """Two or more list items introduced by a heading or a colon line."""
    lines = [line for line in text.split("\n") if line.strip()]
    items = [line for line in lines if is_list_item(line)]
    if len(items) < 2:
        return False
    intro = lines[0]
    return is_header_line(intro) or intro.rstrip().endswith(":") or is_list_item(intro)


def _has_topic_sentence(text: str, first_word: str, profile: LanguageProfile) -> bool:
    if first_word in _PRONOUNS or not text[0].isupper():
        return False
    spans = split_sentence_spans(text, profile)
    if not spans:
        return False
    start, end = spans[0]
    first_sentence = text[start:end]
    return len(first_sentence) >= 20 and is_complete_sentence(first_sentence)

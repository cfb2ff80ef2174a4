"""
Adaptive Overlap Manager

Decides how much trailing context of one chunk to repeat at the start of
the next, and cuts that context out of the previous chunk.

Size: the configured overlap is scaled by three factors (text complexity,
the structural relation between the chunks, and their keyword continuity)
and clamped to [max(50, base/2), min(max_chunk_size/4, 3*base)].

Text: always a verbatim suffix of the previous chunk that begins at a
sentence start. Whole sentences are taken from the end until the target
size is reached; up to 50% overshoot is accepted to avoid cutting a
sentence. If even the last sentence is too long, a word-aligned suffix no
longer than the target is used instead.
"""

import re
from typing import Optional

from .languages import ENGLISH, LanguageProfile
from .models import ChunkingOptions
from .sentence_splitter import split_sentence_spans
from .text_utils import (
    BLANK_LINE_PATTERN,
    HEADER_PATTERN,
    LIST_ITEM_PATTERN,
    is_header_line,
    is_list_item,
    is_table_line,
    split_words,
)

DEFAULT_BASE_OVERLAP = 100
MIN_OVERLAP = 50
OVERSHOOT_TOLERANCE = 1.5

OVERLAP_SEPARATOR = "\n"

# Identifiers that look technical: CamelCase, snake_case, dotted.names,
# ACRONYMS, calls() and alphanumeric mixes such as "utf8" or "v2".
_TECHNICAL_TERM_PATTERN = re.compile(
    r"^(?:[a-z]+[A-Z]\w*|[A-Z][a-z]+[A-Z]\w*|\w+_\w+|\w+\.\w+\S*|[A-Z]{2,}\d*|\w+\(\)|[A-Za-z]+\d+\w*)$"
)

_REFERENCE_WORDS = frozenset((
    "this", "that", "these", "those", "it", "its", "they", "them", "such",
    "however", "therefore", "moreover", "furthermore", "additionally",
    "also", "thus", "hence", "consequently", "above", "previous",
))

_KEYWORD_SPLIT_PATTERN = re.compile(r"[\s.,;:!?()\[\]\"']+")


class AdaptiveOverlapManager:
    """Stateless overlap sizing and extraction."""

    def __init__(self, profile: Optional[LanguageProfile] = None):
        self.profile = profile or ENGLISH

    # -------------------------------------------------------------------------
    # Sizing
    # -------------------------------------------------------------------------

    def calculate_optimal_overlap(
        self, previous_text: str, current_text: str, options: ChunkingOptions
    ) -> int:
        """Target overlap size in characters for the boundary between two chunks."""
        if not previous_text or not previous_text.strip():
            return options.overlap_size
        if not current_text or not current_text.strip():
            return options.overlap_size

        base = options.overlap_size if options.overlap_size > 0 else DEFAULT_BASE_OVERLAP

        complexity = (self.complexity(previous_text) + self.complexity(current_text)) / 2
        optimal = base
        optimal *= complexity_factor(complexity)
        optimal *= self.structural_factor(previous_text, current_text)
        optimal *= self.semantic_factor(previous_text, current_text)

        lower = max(MIN_OVERLAP, base // 2)
        upper = min(options.max_chunk_size // 4, base * 3)
        return int(max(lower, min(upper, optimal)))

    def complexity(self, text: str) -> float:
        """0-1 estimate from sentence length, technical terms and structure."""
        sentences = split_sentence_spans(text, self.profile)
        if not sentences:
            return 0.0
        count = len(sentences)
        words = split_words(text)
        avg_words = len(words) / count
        technical = sum(1 for w in words if _TECHNICAL_TERM_PATTERN.match(w.strip(".,;:!?\"'")))
        structural = (
            len(HEADER_PATTERN.findall(text))
            + len(LIST_ITEM_PATTERN.findall(text))
            + len(BLANK_LINE_PATTERN.findall(text))
        )
        score = (
            min(avg_words / 30, 1.0) * 0.4
            + min(technical / count / 5, 1.0) * 0.3
            + min(structural / count / 2, 1.0) * 0.3
        )
        return min(score, 1.0)

    def structural_factor(self, previous_text: str, current_text: str) -> float:
        last_line = previous_text.rstrip().rsplit("\n", 1)[-1]
        first_line = current_text.lstrip().split("\n", 1)[0]
        if is_header_line(first_line):
            return 0.6
        if is_list_item(last_line) and is_list_item(first_line):
            return 1.4
        if is_table_line(last_line) or is_table_line(first_line):
            return 0.5
        return 1.0

    def semantic_factor(self, previous_text: str, current_text: str) -> float:
        previous_keywords = self._keywords(previous_text)
        current_keywords = self._keywords(current_text)
        ratio = 0.0
        if current_keywords:
            ratio = len(previous_keywords & current_keywords) / len(current_keywords)

        opening = split_words(current_text[:80].lower())
        opens_with_reference = bool(opening) and opening[0].strip(".,;:") in _REFERENCE_WORDS

        if ratio > 0.3 or opens_with_reference:
            return 1.3
        if ratio < 0.1:
            return 0.8
        return 1.0

    # -------------------------------------------------------------------------
    # Extraction
    # -------------------------------------------------------------------------

    def create_context_preserving_overlap(self, previous_text: str, target_size: int) -> str:
        """
        Trailing context of ``previous_text`` of roughly ``target_size`` chars.

        The result is always a suffix of ``previous_text`` (possibly empty).
        """
        if target_size <= 0 or not previous_text or not previous_text.strip():
            return ""

        end = len(previous_text.rstrip())
        limit = int(target_size * OVERSHOOT_TOLERANCE)
        # the first sentence is skipped: the overlap never repeats a whole chunk
        starts = [s for s, _ in split_sentence_spans(previous_text, self.profile)][1:]

        chosen: Optional[int] = None
        for start in reversed(starts):
            size = end - start
            if size > limit:
                break
            chosen = start
            if size >= target_size:
                break

        if chosen is not None:
            return previous_text[chosen:]
        return self.word_aligned_suffix(previous_text, target_size)

    @staticmethod
    def apply_overlap(overlap: str, content: str) -> str:
        """
        Prefix ``content`` with ``overlap``.

        Content that already opens with the overlap text is returned
        unchanged, so the same context never appears twice in a row.
        """
        if not overlap or not overlap.strip():
            return content
        if content.lstrip().startswith(overlap.strip()):
            return content
        return overlap + OVERLAP_SEPARATOR + content

    @staticmethod
    def word_aligned_suffix(text: str, target_size: int) -> str:
        if len(text) <= target_size:
            return text
        start = len(text) - target_size
        # advance to the next word start so no word is cut
        while start < len(text) and not text[start - 1].isspace():
            start += 1
        while start < len(text) and text[start].isspace():
            start += 1
        return text[start:]

    # -------------------------------------------------------------------------
    # Internal methods
    # -------------------------------------------------------------------------

    def _keywords(self, text: str) -> set[str]:
        return {
            word
            for word in _KEYWORD_SPLIT_PATTERN.split(text.lower())
            if len(word) > 3 and word not in self.profile.stop_words
        }


def complexity_factor(complexity: float) -> float:
    if complexity < 0.3:
        return 0.8
    if complexity < 0.6:
        return 1.0
    if complexity < 0.8:
        return 1.3
    return 1.5

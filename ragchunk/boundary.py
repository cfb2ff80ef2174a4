"""
Boundary Quality Evaluator

Scores how natural it is to split a text at a given character offset, and
searches nearby offsets for a better split.

The score is the maximum of four local heuristics:

    sentence    distance to the nearest sentence terminator (±100 chars)
    paragraph   distance to the nearest blank-line run (±200 chars)
    structure   best of header / list-run / table-run boundary distance
    semantic    inverted keyword continuity of the 200 chars on each side

The distance buckets are piecewise constants and part of the evaluator's
observable behaviour; keep them in sync with the tests.

Usage:
    evaluator = BoundaryQualityEvaluator(profile)
    result = evaluator.improve(text, 1200, options)
    split_at = result.improved_position
"""

import re
from typing import Callable, Optional

from .languages import ENGLISH, LanguageProfile
from .logging_config import get_logger
from .models import BoundaryQualityResult, BoundaryType, ChunkingOptions
from .text_utils import (
    BLANK_LINE_PATTERN,
    HEADER_PATTERN,
    SENTENCE_END_PATTERN,
    is_list_item,
)

logger = get_logger(__name__)

SENTENCE_WINDOW = 100
PARAGRAPH_WINDOW = 200
STRUCTURE_WINDOW = 200
SEMANTIC_WINDOW = 200

EXCELLENT_SCORE = 0.95
MAX_SEARCH_RADIUS = 200
SEARCH_STEP = 10
MICRO_SEARCH_RADIUS = 5
TOP_CANDIDATES = 3

INVALID_POSITION_REASON = "Invalid split position"

_KEYWORD_SPLIT_PATTERN = re.compile(r"[\s.,;:!?]+")


# =============================================================================
# PIECEWISE BUCKETS
# =============================================================================


def sentence_bucket(distance: int) -> float:
    if distance == 0:
        return 1.0
    if distance < 5:
        return 0.9
    if distance < 10:
        return 0.7
    if distance < 20:
        return 0.5
    return 0.3


def paragraph_bucket(distance: int) -> float:
    if distance == 0:
        return 1.0
    if distance < 10:
        return 0.8
    if distance < 30:
        return 0.6
    if distance < 50:
        return 0.4
    return 0.2


def header_bucket(distance: int) -> float:
    if distance == 0:
        return 1.0
    if distance < 5:
        return 0.9
    if distance < 20:
        return 0.7
    return 0.3


def list_bucket(distance: int) -> float:
    if distance == 0:
        return 0.9
    if distance < 10:
        return 0.7
    if distance < 30:
        return 0.5
    return 0.2


def table_bucket(distance: int) -> float:
    if distance == 0:
        return 0.95
    if distance < 5:
        return 0.8
    if distance < 20:
        return 0.6
    return 0.3


def continuity_bucket(continuity: float) -> float:
    """Low keyword continuity across the split means a good boundary."""
    if continuity > 0.7:
        return 0.3
    if continuity > 0.5:
        return 0.5
    if continuity > 0.3:
        return 0.7
    if continuity > 0.1:
        return 0.9
    return 1.0


def _line_runs(
    text: str, low: int, high: int, predicate: Callable[[str], bool]
) -> list[tuple[int, int]]:
    """(start, end) of consecutive lines matching ``predicate`` around [low, high)."""
    line_start = text.rfind("\n", 0, max(low, 0)) + 1
    runs: list[tuple[int, int]] = []
    run_start: Optional[int] = None
    run_end = 0
    pos = line_start
    while pos <= len(text) and pos < high:
        line_end = text.find("\n", pos)
        if line_end == -1:
            line_end = len(text)
        if predicate(text[pos:line_end]):
            if run_start is None:
                run_start = pos
            run_end = line_end
        elif run_start is not None:
            runs.append((run_start, run_end))
            run_start = None
        pos = line_end + 1
    if run_start is not None:
        runs.append((run_start, run_end))
    return runs


def _is_table_row(line: str) -> bool:
    return line.strip().count("|") >= 2


# =============================================================================
# EVALUATOR
# =============================================================================


class BoundaryQualityEvaluator:
    """
    Stateless boundary scorer; safe to share between threads.

    Args:
        profile: Language profile whose stop words filter the semantic
            keyword sets (English if omitted).
    """

    def __init__(self, profile: Optional[LanguageProfile] = None):
        self.profile = profile or ENGLISH

    def evaluate(self, text: str, position: int) -> BoundaryQualityResult:
        """Score a split at ``position`` (the first character of the next chunk)."""
        if not self._is_valid(text, position):
            return self._invalid(position)
        score, boundary_type = self._score(text, position)
        return BoundaryQualityResult(
            original_position=position,
            improved_position=position,
            original_quality_score=score,
            quality_score=score,
            boundary_type=boundary_type,
            reason=f"{boundary_type.value} boundary",
        )

    def improve(
        self,
        text: str,
        position: int,
        options: Optional[ChunkingOptions] = None,
    ) -> BoundaryQualityResult:
        """
        Search near ``position`` for a better split.

        Samples every 10 characters within min(200, max_chunk_size / 10),
        stops at the first candidate scoring at least 0.95, otherwise
        refines the three best candidates with a ±5 character micro-search
        and returns the global best. Ties keep the candidate found first.
        """
        if not self._is_valid(text, position):
            return self._invalid(position)

        options = options or ChunkingOptions()
        original_score, original_type = self._score(text, position)
        if original_score >= EXCELLENT_SCORE:
            return self._result(position, original_score, position, original_score,
                                original_type, "original position is already excellent")

        radius = min(MAX_SEARCH_RADIUS, max(1, options.max_chunk_size // 10))
        offsets = sorted(
            (o for o in range(-radius, radius + 1, SEARCH_STEP) if o != 0),
            key=lambda o: (abs(o), o),
        )

        candidates: list[tuple[float, int, BoundaryType]] = []
        for offset in offsets:
            candidate = position + offset
            if not self._is_valid(text, candidate):
                continue
            score, boundary_type = self._score(text, candidate)
            if score >= EXCELLENT_SCORE:
                return self._result(position, original_score, candidate, score,
                                    boundary_type, f"excellent {boundary_type.value} boundary nearby")
            candidates.append((score, candidate, boundary_type))

        best = (original_score, position, original_type)
        top = sorted(candidates, key=lambda c: (-c[0], abs(c[1] - position)))[:TOP_CANDIDATES]
        for _, candidate, _ in top:
            for delta in range(-MICRO_SEARCH_RADIUS, MICRO_SEARCH_RADIUS + 1):
                refined = candidate + delta
                if not self._is_valid(text, refined):
                    continue
                score, boundary_type = self._score(text, refined)
                if score > best[0]:
                    best = (score, refined, boundary_type)

        score, improved, boundary_type = best
        if improved == position:
            reason = "no better boundary within search radius"
        else:
            reason = f"moved {improved - position:+d} chars to {boundary_type.value} boundary"
        return self._result(position, original_score, improved, score, boundary_type, reason)

    # -------------------------------------------------------------------------
    # Heuristics
    # -------------------------------------------------------------------------

    def sentence_score(self, text: str, position: int) -> float:
        low = max(0, position - SENTENCE_WINDOW)
        high = min(len(text), position + SENTENCE_WINDOW)
        distances = []
        for match in SENTENCE_END_PATTERN.finditer(text, low, high):
            punct_end = match.start() + len(match.group().rstrip())
            distances.append(min(abs(punct_end - position), abs(match.end() - position)))
        if not distances:
            return 0.3
        return sentence_bucket(min(distances))

    def paragraph_score(self, text: str, position: int) -> float:
        low = max(0, position - PARAGRAPH_WINDOW)
        high = min(len(text), position + PARAGRAPH_WINDOW)
        distances = [
            min(abs(m.start() - position), abs(m.end() - position))
            for m in BLANK_LINE_PATTERN.finditer(text, low, high)
        ]
        if not distances:
            return 0.2
        return paragraph_bucket(min(distances))

    def structural_score(self, text: str, position: int) -> tuple[float, BoundaryType]:
        low = max(0, position - STRUCTURE_WINDOW)
        high = min(len(text), position + STRUCTURE_WINDOW)
        scores: list[tuple[float, BoundaryType]] = []

        header_starts = [m.start() for m in HEADER_PATTERN.finditer(text, low, high)]
        if header_starts:
            distance = min(abs(s - position) for s in header_starts)
            scores.append((header_bucket(distance), BoundaryType.HEADER))

        list_runs = _line_runs(text, low, high, is_list_item)
        if list_runs:
            distance = min(min(abs(s - position), abs(e - position)) for s, e in list_runs)
            scores.append((list_bucket(distance), BoundaryType.LIST))

        table_runs = _line_runs(text, low, high, _is_table_row)
        if table_runs:
            distance = min(min(abs(s - position), abs(e - position)) for s, e in table_runs)
            scores.append((table_bucket(distance), BoundaryType.TABLE))

        if not scores:
            return 0.3, BoundaryType.NONE
        best = scores[0]
        for candidate in scores[1:]:
            if candidate[0] > best[0]:
                best = candidate
        return best

    def semantic_score(self, text: str, position: int) -> float:
        before = self._keywords(text[max(0, position - SEMANTIC_WINDOW):position])
        after = self._keywords(text[position:position + SEMANTIC_WINDOW])
        if not before or not after:
            return 0.5
        continuity = len(before & after) / len(before | after)
        return continuity_bucket(continuity)

    # -------------------------------------------------------------------------
    # Internal methods
    # -------------------------------------------------------------------------

    def _score(self, text: str, position: int) -> tuple[float, BoundaryType]:
        structural, structural_type = self.structural_score(text, position)
        scored = [
            (self.sentence_score(text, position), BoundaryType.SENTENCE),
            (self.paragraph_score(text, position), BoundaryType.PARAGRAPH),
            (structural, structural_type),
            (self.semantic_score(text, position), BoundaryType.SEMANTIC),
        ]
        best = scored[0]
        for candidate in scored[1:]:
            if candidate[0] > best[0]:
                best = candidate
        return best

    def _keywords(self, text: str) -> set[str]:
        return {
            word
            for word in _KEYWORD_SPLIT_PATTERN.split(text.lower())
            if len(word) > 3 and word not in self.profile.stop_words
        }

    @staticmethod
    def _is_valid(text: str, position: int) -> bool:
        return bool(text and text.strip()) and 0 < position < len(text)

    @staticmethod
    def _invalid(position: int) -> BoundaryQualityResult:
        return BoundaryQualityResult(
            original_position=position,
            improved_position=position,
            original_quality_score=0.0,
            quality_score=0.0,
            boundary_type=BoundaryType.NONE,
            reason=INVALID_POSITION_REASON,
        )

    @staticmethod
    def _result(
        original: int,
        original_score: float,
        improved: int,
        score: float,
        boundary_type: BoundaryType,
        reason: str,
    ) -> BoundaryQualityResult:
        logger.debug(f"Boundary {original} → {improved}: {original_score:.2f} → {score:.2f} ({reason})")
        return BoundaryQualityResult(
            original_position=original,
            improved_position=improved,
            original_quality_score=original_score,
            quality_score=score,
            boundary_type=boundary_type,
            reason=reason,
        )

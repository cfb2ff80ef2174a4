"""
Intelligent Chunking Strategy

Structure-aware accumulator over SemanticUnits (lines and folded tables).

Rules, in the order they are checked for each unit:
    1. Tables: a table that would overflow the accumulator flushes it
       first. Tables up to 2.5x max_chunk_size are kept whole; larger ones
       are split by row (header repeated) into standalone chunks.
    2. Section headers flush the accumulator once it holds 30% of the
       max size, so sections start new chunks.
    3. Overflow: when no table is involved, the unit is compared with the
       previous one; if their semantic distance exceeds
       1 - coherence_threshold the accumulator is flushed and the next
       chunk gets an adaptive overlap. The boundary evaluator is consulted
       on every such flush; a better nearby boundary is logged, and moved
       to when apply_boundary_improvement is set.

Documents containing a table run with twice the configured max size.

Leading short title/date/copyright paragraphs can be recorded in a
DocumentHeader prop on the first chunk. They stay in the chunk content.
"""

import re
from typing import Optional

from ..logging_config import get_logger
from ..models import ChunkingStrategyName, SemanticUnit
from ..structure import split_table
from ..text_utils import CODE_FENCE, unique_words
from .base import ChunkingContext, ChunkingStrategy, RawChunk, overlap_cost

logger = get_logger(__name__)

TABLE_ATOMIC_FACTOR = 2.5
SECTION_FLUSH_RATIO = 0.3
MATERIAL_IMPROVEMENT = 0.1

TECHNICAL_CATEGORIES = {
    "API": ("api", "endpoint", "rest", "graphql"),
    "Database": ("database", "sql", "nosql", "query"),
    "Frontend": ("ui", "frontend", "react", "vue", "angular"),
    "Backend": ("server", "backend", "service", "microservice"),
    "DevOps": ("docker", "kubernetes", "deployment", "pipeline"),
    "AI/ML": ("ai", "ml", "model", "embedding", "vector"),
}
MAX_TECHNICAL_KEYWORDS = 5

_ACADEMIC_WORDS = ("research", "study", "abstract", "methodology", "literature", "theoretical", "논문")
_BUSINESS_WORDS = ("business", "stakeholder", "strategy", "strategic", "planning", "timeline", "milestone", "objective")
_TECHNICAL_WORDS = ("api", "endpoint", "database", "schema", "react", "component", "function", "class", "method")

_POSITION_HINTS = {0: "intro", 1: "early"}

_COPYRIGHT_MARKERS = ("copyright", "©", "ⓒ", "all rights reserved", "무단 복제", "복사", "배포", "금합니다")
_DOCUMENT_TYPE_MARKERS = ("보고서", "분석", "제안서", "report", "analysis", "proposal")
_DATE_PATTERN = re.compile(r"\d{4}[-./년]\d{1,2}[-./월]\d{1,2}|\d{4}년|\d{2}/\d{2}/\d{4}")
_COMPANY_PATTERN = re.compile(r"주식회사|㈜|\(주\)|Inc\.|Ltd\.|Corp\.|LLC|Co\.,")
_NUMBERED_LIST_PATTERN = re.compile(r"^\d+\.\s")


class IntelligentChunkingStrategy(ChunkingStrategy):
    name = ChunkingStrategyName.INTELLIGENT.value

    def assemble(self, context: ChunkingContext) -> list[RawChunk]:
        options = context.options
        units = context.units
        max_size = context.effective_max_size
        text = context.text

        chunks: list[RawChunk] = []
        current: list[SemanticUnit] = []
        overlap = ""

        def emit(units_: list[SemanticUnit], overlap_: str) -> RawChunk:
            chunk = self._build_chunk(text, units_, overlap_)
            chunks.append(chunk)
            context.checkpoint(len(chunks))
            return chunk

        for unit in units:
            size = self._size(current, overlap)

            if unit.is_table:
                if current and size + unit.size > max_size:
                    emit(current, overlap)
                    current, overlap = [], ""
                if unit.size <= options.max_chunk_size * TABLE_ATOMIC_FACTOR:
                    if not current:
                        overlap = ""
                    current.append(unit)
                    continue
                if current:
                    emit(current, overlap)
                    current, overlap = [], ""
                self._emit_table_parts(unit, options.max_chunk_size, chunks, context)
                continue

            if unit.is_section_header and current and size >= max_size * SECTION_FLUSH_RATIO:
                emit(current, overlap)
                current, overlap = [], ""
                size = 0

            if current and size + unit.size > max_size:
                if any(u.is_table for u in current):
                    emit(current, overlap)
                    current, overlap = [], ""
                elif self.should_start_new_chunk(current[-1], unit, options.coherence_threshold):
                    split = self._consult_boundary(context, current, unit)
                    flushed = emit(current[:split], overlap)
                    current = current[split:]
                    upcoming = (current[0] if current else unit).content
                    overlap = self.next_overlap(context, flushed.body, upcoming)

            if not current and overlap and overlap_cost(overlap) + unit.size > max_size:
                overlap = ""
            current.append(unit)

        if current:
            emit(current, overlap)

        logger.debug(
            f"Intelligent assembly: {len(units)} units → {len(chunks)} chunks "
            f"(max {max_size}{', table document' if context.has_table else ''})"
        )
        return chunks

    def annotate(self, chunks: list[RawChunk], context: ChunkingContext) -> None:
        header, _ = self.separate_document_header(context)
        global_keywords = technical_keywords(context.text)
        domain = document_domain(context.text, global_keywords)
        file_type = context.metadata.get("file_type")

        for i, chunk in enumerate(chunks):
            content = chunk.content
            role = structural_role(content)
            keywords = technical_keywords(content) or global_keywords

            parts = []
            if file_type:
                parts.append(f"Type: {file_type}")
            if role != "content":
                parts.append(f"Structure: {role}")
            if keywords:
                parts.append(f"Tech: {', '.join(keywords[:3])}")
                chunk.props["TechnicalKeywords"] = keywords
            if domain != "General":
                parts.append(f"Domain: {domain}")
            if i in _POSITION_HINTS:
                parts.append(f"Pos: {_POSITION_HINTS[i]}")

            if parts:
                chunk.props["ContextualHeader"] = f"[{' | '.join(parts)}]"
            chunk.props["DocumentDomain"] = domain
            chunk.props["StructuralRole"] = role
            if i == 0 and header:
                chunk.props["DocumentHeader"] = header

    # -------------------------------------------------------------------------
    # Document header
    # -------------------------------------------------------------------------

    def separate_document_header(
        self, context: ChunkingContext
    ) -> tuple[Optional[str], list[SemanticUnit]]:
        """
        Split leading header paragraphs from the body units.

        Returns:
            (header text or None, remaining units). The body always keeps at
            least one unit.
        """
        options = context.options
        units = context.units
        if not options.separate_document_header or not units:
            return None, units

        text = context.text
        taken: list[list[SemanticUnit]] = []
        for paragraph in _leading_paragraphs(text, units, options.max_header_paragraphs):
            paragraph_text = text[paragraph[0].position:paragraph[-1].end]
            if (
                any(u.is_table for u in paragraph)
                or len(paragraph_text) > options.max_header_paragraph_length
                or not is_header_paragraph(paragraph_text)
            ):
                break
            taken.append(paragraph)

        consumed = sum(len(p) for p in taken)
        if not taken or consumed >= len(units):
            return None, units

        header = "\n".join(text[p[0].position:p[-1].end] for p in taken)
        return header, units[consumed:]

    # -------------------------------------------------------------------------
    # Boundaries
    # -------------------------------------------------------------------------

    def should_start_new_chunk(
        self, last_unit: SemanticUnit, unit: SemanticUnit, coherence_threshold: float
    ) -> bool:
        return semantic_distance(last_unit.content, unit.content) > 1.0 - coherence_threshold

    def _consult_boundary(
        self, context: ChunkingContext, current: list[SemanticUnit], unit: SemanticUnit
    ) -> int:
        """
        Number of accumulated units to flush.

        All of them unless apply_boundary_improvement is set and the
        evaluator finds a materially better split at an earlier unit start.
        """
        contents = [u.content for u in current] + [unit.content]
        joined = "\n".join(contents)
        starts = []
        offset = 0
        for content in contents:
            starts.append(offset)
            offset += len(content) + 1
        proposed = starts[-1]

        result = context.evaluator.improve(joined, proposed, context.options)
        if result.improvement < MATERIAL_IMPROVEMENT:
            return len(current)

        logger.debug(
            f"Better boundary near unit at {unit.position}: {result.reason} "
            f"({result.original_quality_score:.2f} → {result.quality_score:.2f})"
        )
        if not context.options.apply_boundary_improvement or result.improved_position >= proposed:
            return len(current)

        split = len(current)
        for k in range(len(current) - 1, 0, -1):
            if starts[k] <= result.improved_position:
                split = k
                break
        return split

    # -------------------------------------------------------------------------
    # Internal methods
    # -------------------------------------------------------------------------

    @staticmethod
    def _size(units: list[SemanticUnit], overlap: str) -> int:
        if not units:
            return 0
        return overlap_cost(overlap) + units[-1].end - units[0].position

    @staticmethod
    def _build_chunk(text: str, units: list[SemanticUnit], overlap: str) -> RawChunk:
        start, end = units[0].position, units[-1].end
        return RawChunk(
            body=text[start:end],
            start=start,
            end=end,
            overlap=overlap,
            is_table=any(u.is_table for u in units),
            importance=sum(u.importance for u in units) / len(units),
        )

    @staticmethod
    def _emit_table_parts(
        unit: SemanticUnit, max_size: int, chunks: list[RawChunk], context: ChunkingContext
    ) -> None:
        parts = split_table(unit.content, max_size)
        logger.debug(f"Table of {unit.size} chars at {unit.position} split into {len(parts)} parts")
        for part in parts:
            if part.oversize:
                logger.warning(
                    f"Table part of {len(part.text)} chars at offset {unit.position + part.start} "
                    f"exceeds max_chunk_size={max_size}"
                )
            chunks.append(RawChunk(
                body=part.text,
                start=unit.position + part.start,
                end=unit.position + part.end,
                is_table=True,
                oversize=part.oversize,
                importance=unit.importance,
            ))
            context.checkpoint(len(chunks))


# =============================================================================
# HINT HELPERS
# =============================================================================


def semantic_distance(first: str, second: str) -> float:
    """1 - shared / total distinct content words; 0 when both are empty."""
    a, b = unique_words(first), unique_words(second)
    total = len(a | b)
    if total == 0:
        return 0.0
    return 1.0 - len(a & b) / total


def _contains_word(text: str, word: str) -> bool:
    return re.search(rf"\b{re.escape(word)}\b", text, re.IGNORECASE) is not None


def technical_keywords(content: str) -> list[str]:
    lowered = content.lower()
    found = [
        category
        for category, words in TECHNICAL_CATEGORIES.items()
        if any(_contains_word(lowered, w) for w in words)
    ]
    return found[:MAX_TECHNICAL_KEYWORDS]


def document_domain(content: str, keywords: list[str]) -> str:
    lowered = content.lower()
    if any(_contains_word(lowered, w) for w in _ACADEMIC_WORDS) or (
        _contains_word(lowered, "analysis") and _contains_word(lowered, "data")
    ):
        return "Academic"
    if any(_contains_word(lowered, w) for w in _BUSINESS_WORDS) or (
        _contains_word(lowered, "requirement")
        and (_contains_word(lowered, "project") or _contains_word(lowered, "analysis"))
    ):
        return "Business"
    if keywords or any(_contains_word(lowered, w) for w in _TECHNICAL_WORDS):
        return "Technical"
    return "General"


def structural_role(content: str) -> str:
    stripped = content.strip()
    if stripped.startswith("#"):
        return "header"
    if stripped.count("|") >= 2:
        return "table"
    if CODE_FENCE in stripped:
        return "code_block"
    if stripped.startswith(("- ", "* ")) or _NUMBERED_LIST_PATTERN.match(stripped):
        return "list"
    return "content"


def is_header_paragraph(paragraph: str) -> bool:
    """Title, date, copyright, company or document-type line."""
    stripped = paragraph.strip()
    if not stripped:
        return False
    lowered = stripped.lower()
    if any(marker in lowered for marker in _COPYRIGHT_MARKERS):
        return True
    if _DATE_PATTERN.search(stripped):
        return True
    if stripped.startswith("#") or lowered.startswith("paragraph"):
        return True
    if _COMPANY_PATTERN.search(stripped):
        return True
    if any(marker in lowered for marker in _DOCUMENT_TYPE_MARKERS):
        return True
    return len(stripped) <= 30 and not stripped.endswith((".", "?", "!"))


def _leading_paragraphs(
    text: str, units: list[SemanticUnit], limit: int
) -> list[list[SemanticUnit]]:
    """Group the first units into blank-line separated paragraphs."""
    paragraphs: list[list[SemanticUnit]] = []
    for unit in units:
        if paragraphs and text[paragraphs[-1][-1].end:unit.position].count("\n") < 2:
            paragraphs[-1].append(unit)
            continue
        if len(paragraphs) == limit:
            break
        paragraphs.append([unit])
    return paragraphs

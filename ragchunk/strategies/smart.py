"""
Smart Chunking Strategy

Sentence accumulator with a completeness-gated flush. Sentences are folded
into the current chunk until the next one would overflow max_chunk_size;
the chunk is then flushed only if it is complete enough (or already close
to full). Otherwise the sentence is still added and the optimizer's hard
size enforcement cuts the chunk later at a sentence boundary.

Completeness of an accumulator is the mean of:
    - fraction of complete sentences
    - paragraph alignment with the next sentence (1.0 at a blank line or
      header, 0.8 otherwise; 1.0 when preserve_paragraphs is off)
    - lexical coherence (repeated content words / distinct content words)
    - length adequacy, min(1, chars / 300)

A sentence longer than max_chunk_size is cut at clause punctuation, then
at word boundaries. Every non-final part ends with "..." and stays within
max_chunk_size including the marker.
"""

import re
from typing import Optional

from ..logging_config import get_logger
from ..models import ChunkingStrategyName
from ..sentence_splitter import split_sentence_spans
from ..text_utils import is_complete_sentence, is_header_line, lexical_coherence
from .base import ChunkingContext, ChunkingStrategy, RawChunk, overlap_cost

logger = get_logger(__name__)

TRUNCATION_MARKER = "..."
CLAUSE_SEPARATORS = (", ", "; ", " - ", " — ")

FULL_RATIO = 0.9
LENGTH_TARGET = 300
UNALIGNED_PARAGRAPH_SCORE = 0.8

_WORD_PATTERN = re.compile(r"\S+")


class SmartChunkingStrategy(ChunkingStrategy):
    name = ChunkingStrategyName.SMART.value

    def assemble(self, context: ChunkingContext) -> list[RawChunk]:
        text = context.text
        options = context.options
        max_size = options.max_chunk_size
        spans = split_sentence_spans(text, context.profile)

        chunks: list[RawChunk] = []
        current: list[tuple[int, int]] = []
        overlap = ""

        for start, end in spans:
            if end - start > max_size:
                if current:
                    chunks.append(self._build_chunk(text, current, overlap))
                    context.checkpoint(len(chunks))
                    current = []
                overlap = ""
                for part in self.split_long_sentence(text, start, end, max_size):
                    chunks.append(part)
                    context.checkpoint(len(chunks))
                continue

            if current and overlap_cost(overlap) + end - current[0][0] > max_size:
                accumulated = overlap_cost(overlap) + current[-1][1] - current[0][0]
                completeness = self.completeness(
                    text, current, (start, end), options.preserve_paragraphs
                )
                if completeness >= options.min_completeness or accumulated >= FULL_RATIO * max_size:
                    chunk = self._build_chunk(text, current, overlap)
                    chunks.append(chunk)
                    context.checkpoint(len(chunks))
                    overlap = self.next_overlap(context, chunk.body, text[start:start + max_size])
                    current = []

            if not current and overlap_cost(overlap) + end - start > max_size:
                overlap = ""
            current.append((start, end))

        if current:
            chunks.append(self._build_chunk(text, current, overlap))
            context.checkpoint(len(chunks))

        logger.debug(f"Smart assembly: {len(spans)} sentences → {len(chunks)} chunks")
        return chunks

    def annotate(self, chunks: list[RawChunk], context: ChunkingContext) -> None:
        floor = context.options.min_completeness
        for chunk in chunks:
            content = chunk.content
            spans = split_sentence_spans(content, context.profile)
            fraction = 0.0
            if spans:
                fraction = sum(1 for s, e in spans if is_complete_sentence(content[s:e])) / len(spans)
            completeness = fraction if chunk.oversize else max(floor, fraction)
            coherence = lexical_coherence(content)
            integrity = sentence_integrity(content)
            length_score = 1.0 if 100 <= len(content) <= 2000 else 0.5
            suitability = min(1.0, completeness * 0.4 + integrity * 0.3 + coherence * 0.2 + length_score * 0.1)

            chunk.props.update({
                "Completeness": round(completeness, 4),
                "SemanticCoherence": round(coherence, 4),
                "SentenceIntegrity": integrity,
                "HasOverlap": bool(chunk.overlap),
                "RagSuitability": round(suitability, 4),
                "QualityGrade": quality_grade(suitability),
            })

    # -------------------------------------------------------------------------
    # Completeness
    # -------------------------------------------------------------------------

    def completeness(
        self,
        text: str,
        sentences: list[tuple[int, int]],
        next_sentence: Optional[tuple[int, int]] = None,
        preserve_paragraphs: bool = True,
    ) -> float:
        if not sentences:
            return 0.0
        body = text[sentences[0][0]:sentences[-1][1]]
        complete = sum(1 for s, e in sentences if is_complete_sentence(text[s:e])) / len(sentences)
        alignment = 1.0
        if preserve_paragraphs:
            alignment = self._paragraph_alignment(text, sentences[-1][1], next_sentence)
        coherence = lexical_coherence(body)
        length = min(1.0, len(body) / LENGTH_TARGET)
        return (complete + alignment + coherence + length) / 4

    @staticmethod
    def _paragraph_alignment(text: str, end: int, next_sentence) -> float:
        if next_sentence is None:
            return 1.0
        next_start, next_end = next_sentence
        if text[end:next_start].count("\n") >= 2:
            return 1.0
        if is_header_line(text[next_start:next_end]):
            return 1.0
        return UNALIGNED_PARAGRAPH_SCORE

    # -------------------------------------------------------------------------
    # Oversize sentences
    # -------------------------------------------------------------------------

    def split_long_sentence(self, text: str, start: int, end: int, max_size: int) -> list[RawChunk]:
        """Cut text[start:end] into parts of at most max_size characters."""
        limit = max(1, max_size - len(TRUNCATION_MARKER))

        atoms: list[tuple[int, int]] = []
        for clause_start, clause_end in _clause_spans(text, start, end):
            if clause_end - clause_start > limit:
                atoms.extend(_word_spans(text, clause_start, clause_end))
            else:
                atoms.append((clause_start, clause_end))

        groups: list[tuple[int, int]] = []
        for atom_start, atom_end in atoms:
            if groups and atom_end - groups[-1][0] <= limit:
                groups[-1] = (groups[-1][0], atom_end)
            else:
                groups.append((atom_start, atom_end))

        parts = []
        for i, (part_start, part_end) in enumerate(groups):
            body = text[part_start:part_end]
            props = {}
            if i < len(groups) - 1:
                body += TRUNCATION_MARKER
                props["truncated"] = True
            oversize = len(body) > max_size
            if oversize:
                logger.warning(
                    f"Unsplittable word of {part_end - part_start} chars at offset {part_start} "
                    f"exceeds max_chunk_size={max_size}"
                )
            parts.append(RawChunk(body=body, start=part_start, end=part_end, props=props, oversize=oversize))
        return parts

    def _build_chunk(self, text: str, sentences: list[tuple[int, int]], overlap: str) -> RawChunk:
        start, end = sentences[0][0], sentences[-1][1]
        return RawChunk(body=text[start:end], start=start, end=end, overlap=overlap)


def sentence_integrity(content: str) -> float:
    """1.0 for a cleanly ended chunk, 0.5 if truncated, 0.3 if cut mid-sentence."""
    stripped = content.strip()
    if not stripped:
        return 0.0
    if TRUNCATION_MARKER in stripped and "etc." not in stripped and "e.g." not in stripped:
        return 0.5
    last = stripped[-1]
    if last.isalnum() or last == ",":
        return 0.3
    return 1.0


def quality_grade(score: float) -> str:
    if score >= 0.9:
        return "A"
    if score >= 0.8:
        return "B"
    if score >= 0.7:
        return "C"
    if score >= 0.6:
        return "D"
    return "F"


def _clause_spans(text: str, start: int, end: int) -> list[tuple[int, int]]:
    segment = text[start:end]
    cuts = sorted({
        match.end() + start
        for separator in CLAUSE_SEPARATORS
        for match in re.finditer(re.escape(separator), segment)
    })
    cuts.append(end)

    spans = []
    position = start
    for cut in cuts:
        piece = text[position:cut]
        if piece.strip():
            lead = len(piece) - len(piece.lstrip())
            spans.append((position + lead, position + lead + len(piece.strip())))
        position = cut
    return spans


def _word_spans(text: str, start: int, end: int) -> list[tuple[int, int]]:
    return [(m.start(), m.end()) for m in _WORD_PATTERN.finditer(text, start, end)]

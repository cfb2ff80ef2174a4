"""
Chunk Optimizer

Ordered passes over assembled RawChunks:

    1. enforce_size        force-split anything above the effective max
                           (tables by row, prose by sentence, then word)
    2. apply_quality_gate  re-split low scoring chunks larger than half of
                           max_chunk_size into sentence groups of at most
                           max_chunk_size
    3. merge_small_chunks  fold chunks below max(min_chunk_size, 100) into
                           a neighbour when the result ends on a complete
                           sentence
    4. deduplicate         drop lines repeated from a near-duplicate
                           predecessor (optional)

Passes work on chunk bodies. Overlap prefixes are re-derived by the
pipeline once optimisation is done, so a split keeps the overlap on its
first part only.
"""

import re
from dataclasses import replace
from typing import Optional

from .languages import ENGLISH, LanguageProfile
from .logging_config import get_logger
from .models import ChunkingOptions
from .sentence_splitter import split_sentence_spans
from .strategies.base import RawChunk
from .structure import split_table
from .text_utils import (
    has_important_keyword,
    is_table_text,
    jaccard,
    lexical_coherence,
    unique_words,
)

logger = get_logger(__name__)

MIN_MERGE_FLOOR = 100
MERGE_GROWTH_FACTOR = 1.5
MERGE_SEPARATOR = "\n\n"
DUPLICATE_SIMILARITY = 0.5
MIN_RESIDUE = 100

_WORD_PATTERN = re.compile(r"\S+")


def local_quality(text: str, profile: Optional[LanguageProfile] = None) -> float:
    """0.3 * sentence length + 0.2 * keyword presence + 0.5 * lexical coherence."""
    spans = split_sentence_spans(text, profile)
    if not spans:
        return 0.0
    avg_length = sum(e - s for s, e in spans) / len(spans)
    quality = (
        0.3 * min(1.0, avg_length / 50)
        + 0.2 * (1.0 if has_important_keyword(text) else 0.0)
        + 0.5 * lexical_coherence(text)
    )
    return min(quality, 1.0)


class ChunkOptimizer:
    """
    Stateless post-assembly passes.

    Args:
        profile: Language profile for sentence splitting and the
            complete-sentence check used when merging.
    """

    def __init__(self, profile: Optional[LanguageProfile] = None):
        self.profile = profile or ENGLISH

    def optimize(
        self,
        chunks: list[RawChunk],
        text: str,
        options: ChunkingOptions,
        effective_max: int,
    ) -> list[RawChunk]:
        count = len(chunks)
        chunks = self.enforce_size(chunks, effective_max, options.preserve_sentences)
        chunks = self.apply_quality_gate(chunks, options)
        chunks = self.merge_small_chunks(chunks, text, options, effective_max)
        if options.deduplicate_overlaps:
            chunks = self.deduplicate(chunks)
        logger.debug(f"Optimizer: {count} → {len(chunks)} chunks")
        return chunks

    # -------------------------------------------------------------------------
    # Pass 1: hard size enforcement
    # -------------------------------------------------------------------------

    def enforce_size(
        self, chunks: list[RawChunk], max_size: int, preserve_sentences: bool = True
    ) -> list[RawChunk]:
        result: list[RawChunk] = []
        for chunk in chunks:
            if len(chunk.body) <= max_size or chunk.oversize:
                result.append(chunk)
            elif chunk.is_table or is_table_text(chunk.body):
                result.extend(self._split_table_chunk(chunk, max_size))
            elif preserve_sentences:
                result.extend(self.split_by_sentences(chunk, max_size))
            else:
                result.extend(self.split_by_words(chunk, max_size))
        return result

    def _split_table_chunk(self, chunk: RawChunk, max_size: int) -> list[RawChunk]:
        parts = split_table(chunk.body, max_size)
        logger.debug(f"Force-split table chunk of {len(chunk.body)} chars into {len(parts)} parts")
        pieces = []
        for i, part in enumerate(parts):
            if part.oversize:
                logger.warning(
                    f"Table part of {len(part.text)} chars at offset {chunk.start + part.start} "
                    f"cannot be split below {max_size}"
                )
            pieces.append(replace(
                chunk,
                body=part.text,
                start=chunk.start + part.start,
                end=chunk.start + part.end,
                overlap=chunk.overlap if i == 0 else "",
                props=dict(chunk.props),
                is_table=True,
                oversize=part.oversize,
            ))
        return pieces

    def split_by_sentences(self, chunk: RawChunk, max_size: int) -> list[RawChunk]:
        """Split a chunk body into verbatim sentence groups of at most max_size."""
        body = chunk.body
        atoms: list[tuple[int, int]] = []
        for start, end in split_sentence_spans(body, self.profile):
            if end - start > max_size:
                atoms.extend((m.start(), m.end()) for m in _WORD_PATTERN.finditer(body, start, end))
            else:
                atoms.append((start, end))
        return self._pack(chunk, atoms, max_size)

    def split_by_words(self, chunk: RawChunk, max_size: int) -> list[RawChunk]:
        """Fill verbatim parts of at most max_size up to the last whole word."""
        atoms = [(m.start(), m.end()) for m in _WORD_PATTERN.finditer(chunk.body)]
        return self._pack(chunk, atoms, max_size)

    def _pack(
        self, chunk: RawChunk, atoms: list[tuple[int, int]], max_size: int
    ) -> list[RawChunk]:
        body = chunk.body
        groups: list[tuple[int, int]] = []
        for start, end in atoms:
            if groups and end - groups[-1][0] <= max_size:
                groups[-1] = (groups[-1][0], end)
            else:
                groups.append((start, end))
        if len(groups) <= 1:
            return [chunk]

        pieces = []
        for i, (start, end) in enumerate(groups):
            oversize = end - start > max_size
            if oversize:
                logger.warning(
                    f"Unsplittable word of {end - start} chars at offset {chunk.start + start} "
                    f"exceeds {max_size}"
                )
            pieces.append(replace(
                chunk,
                body=body[start:end],
                start=chunk.start + start,
                end=chunk.start + end,
                overlap=chunk.overlap if i == 0 else "",
                props=dict(chunk.props),
                oversize=oversize,
            ))
        return pieces

    # -------------------------------------------------------------------------
    # Pass 2: quality gate
    # -------------------------------------------------------------------------

    def apply_quality_gate(self, chunks: list[RawChunk], options: ChunkingOptions) -> list[RawChunk]:
        result: list[RawChunk] = []
        half = options.max_chunk_size / 2
        for chunk in chunks:
            if (
                chunk.is_table
                or chunk.oversize
                or chunk.props.get("truncated")
                or len(chunk.body) <= half
                or local_quality(chunk.body, self.profile) >= options.quality_threshold
            ):
                result.append(chunk)
                continue
            pieces = self.split_by_sentences(chunk, options.max_chunk_size)
            if len(pieces) > 1:
                logger.debug(f"Quality gate re-split chunk at {chunk.start} into {len(pieces)} parts")
            result.extend(pieces)
        return result

    # -------------------------------------------------------------------------
    # Pass 3: small chunk merge
    # -------------------------------------------------------------------------

    def merge_small_chunks(
        self,
        chunks: list[RawChunk],
        text: str,
        options: ChunkingOptions,
        effective_max: int,
    ) -> list[RawChunk]:
        min_size = max(options.min_chunk_size, MIN_MERGE_FLOOR)
        limit = min(int(options.max_chunk_size * MERGE_GROWTH_FACTOR), effective_max)

        merged: list[RawChunk] = []
        i = 0
        while i < len(chunks):
            current = chunks[i]
            if len(current.body) >= min_size or not _mergeable(current):
                merged.append(current)
                i += 1
                continue

            if i + 1 < len(chunks):
                combined = self._try_merge(current, chunks[i + 1], text, limit)
                if combined is not None:
                    merged.append(combined)
                    i += 2
                    continue

            if merged:
                combined = self._try_merge(merged[-1], current, text, limit)
                if combined is not None:
                    merged[-1] = combined
                    i += 1
                    continue

            merged.append(current)
            i += 1
        return merged

    def _try_merge(
        self, first: RawChunk, second: RawChunk, text: str, limit: int
    ) -> Optional[RawChunk]:
        if not (_mergeable(first) and _mergeable(second)):
            return None
        if first.is_table and second.is_table:
            return None

        if _is_verbatim(first, text) and _is_verbatim(second, text) and first.end <= second.start:
            body = text[first.start:second.end]
        else:
            body = first.body + MERGE_SEPARATOR + second.body

        if len(first.overlap) + len(body) > limit:
            return None
        if not self.profile.ends_with_complete_sentence(body):
            return None

        logger.debug(f"Merged chunks at {first.start} and {second.start} ({len(body)} chars)")
        props = dict(second.props)
        props.update(first.props)
        return RawChunk(
            body=body,
            start=first.start,
            end=second.end,
            overlap=first.overlap,
            props=props,
            is_table=first.is_table or second.is_table,
            importance=(first.importance + second.importance) / 2,
        )

    # -------------------------------------------------------------------------
    # Pass 4: overlap deduplication
    # -------------------------------------------------------------------------

    def deduplicate(self, chunks: list[RawChunk]) -> list[RawChunk]:
        if len(chunks) <= 1:
            return chunks

        result = [chunks[0]]
        for chunk in chunks[1:]:
            previous = result[-1]
            if chunk.is_table or previous.is_table or not _mergeable(chunk):
                result.append(chunk)
                continue
            similarity = jaccard(unique_words(chunk.body), unique_words(previous.body))
            if similarity <= DUPLICATE_SIMILARITY:
                result.append(chunk)
                continue

            residue = _unique_lines(chunk, previous)
            if residue is None:
                logger.debug(f"Dropped near-duplicate chunk at {chunk.start} (similarity {similarity:.2f})")
                continue
            result.append(residue)
        return result


def _mergeable(chunk: RawChunk) -> bool:
    return not chunk.oversize and not chunk.props.get("truncated")


def _is_verbatim(chunk: RawChunk, text: str) -> bool:
    return text[chunk.start:chunk.end] == chunk.body


def _unique_lines(chunk: RawChunk, previous: RawChunk) -> Optional[RawChunk]:
    """The lines of ``chunk`` not present in ``previous``, or None if too little is left."""
    seen = {line.strip() for line in previous.body.split("\n") if line.strip()}
    kept: list[tuple[str, int]] = []
    repeated = 0
    offset = 0
    for line in chunk.body.split("\n"):
        stripped = line.strip()
        if stripped and stripped not in seen:
            lead = len(line) - len(line.lstrip())
            kept.append((stripped, offset + lead))
        elif stripped:
            repeated += 1
        offset += len(line) + 1

    if not repeated:
        return chunk
    body = "\n".join(line for line, _ in kept)
    if len(body) < MIN_RESIDUE:
        return None
    last_line, last_pos = kept[-1]
    props = dict(chunk.props)
    props["deduplicated"] = True
    return replace(
        chunk,
        body=body,
        start=chunk.start + kept[0][1],
        end=chunk.start + last_pos + len(last_line),
        overlap="",
        props=props,
    )

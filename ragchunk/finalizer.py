"""
Chunk Finalizer

Turns optimised RawChunks into DocumentChunks: assigns ids and ordinals,
scores each chunk, resolves heading path and page range, estimates tokens
and links neighbours. This is the only stage that sets cross-chunk fields.
"""

from typing import Optional

from .cancellation import CancellationToken
from .models import ChunkingOptions, ContentSection, DocumentChunk, SourceLocation
from .quality import ChunkQualityScorer
from .strategies.base import RawChunk
from .token_counter import count_tokens_batch


def make_chunk_id(document_id: str, index: int) -> str:
    return f"{document_id}_chunk_{index:04d}"


def heading_path(sections: list[ContentSection], position: int, max_level: int) -> list[str]:
    """Titles of the nested sections containing ``position``, outermost first."""
    path: list[str] = []
    level_sections = sections
    while level_sections:
        match = next((s for s in level_sections if s.contains(position)), None)
        if match is None:
            break
        if match.level <= max_level:
            path.append(match.title)
        level_sections = match.children
    return path


def page_for_position(page_ranges: dict[int, tuple[int, int]], position: int) -> Optional[int]:
    for page in sorted(page_ranges):
        start, end = page_ranges[page]
        if start <= position <= end:
            return page
    return None


class ChunkFinalizer:
    """
    Builds the final, linked chunk list.

    Args:
        scorer: Quality scorer (a default ChunkQualityScorer if omitted).
    """

    def __init__(self, scorer: Optional[ChunkQualityScorer] = None):
        self.scorer = scorer or ChunkQualityScorer()

    def finalize(
        self,
        raw_chunks: list[RawChunk],
        document_id: str,
        strategy: str,
        options: ChunkingOptions,
        sections: Optional[list[ContentSection]] = None,
        page_ranges: Optional[dict[int, tuple[int, int]]] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> list[DocumentChunk]:
        sections = sections or []
        page_ranges = page_ranges or {}
        contents = [raw.content for raw in raw_chunks]
        token_counts = count_tokens_batch(contents)

        chunks: list[DocumentChunk] = []
        for index, (raw, content) in enumerate(zip(raw_chunks, contents)):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled(len(chunks))

            scores = self.scorer.score(content)
            props = dict(raw.props)
            props.update(scores.to_props())
            props["overlap_length"] = len(raw.overlap)
            if raw.is_table:
                props["table"] = True
            if raw.oversize:
                props["oversize"] = True

            chunks.append(DocumentChunk(
                id=make_chunk_id(document_id, index),
                content=content,
                index=index,
                location=SourceLocation(
                    start_char=raw.start,
                    end_char=raw.end,
                    start_page=page_for_position(page_ranges, raw.start),
                    end_page=page_for_position(page_ranges, max(raw.start, raw.end - 1)),
                    heading_path=heading_path(sections, raw.start, options.max_heading_level),
                ),
                tokens=token_counts[index],
                quality=scores.overall,
                importance=min(1.0, max(0.0, raw.importance)),
                density=scores.density,
                context_dependency=1.0 - scores.independence,
                strategy=strategy,
                props=props,
            ))

        self.link(chunks)
        return chunks

    @staticmethod
    def link(chunks: list[DocumentChunk]) -> None:
        """Set total_chunks and the nav.* neighbour ids."""
        total = len(chunks)
        for i, chunk in enumerate(chunks):
            chunk.total_chunks = total
            chunk.props["nav.previousChunkId"] = chunks[i - 1].id if i > 0 else None
            chunk.props["nav.nextChunkId"] = chunks[i + 1].id if i + 1 < total else None

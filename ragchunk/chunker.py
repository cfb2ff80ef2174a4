"""
Document Chunker - the chunking pipeline

Takes a DocumentContent (extracted text plus optional sections and page
map) and produces a ChunkingResult of retrieval-ready chunks.

Algorithm:
1. Resolve the language profile (explicit code or script detection).
2. Scan the structure and extract semantic units.
3. Resolve the strategy ('auto' picks intelligent for structured text)
   and assemble raw chunks.
4. Optimise: enforce the size ceiling, quality gate, merge small chunks,
   drop near-duplicate lines.
5. Reconcile overlaps against the final chunk list.
6. Let the strategy attach its props, then score and finalise.

Usage:
    from ragchunk import DocumentChunker, ChunkingOptions

    chunker = DocumentChunker(ChunkingOptions(max_chunk_size=800))
    result = chunker.chunk_text(text, document_id="handbook")
    result.save("handbook-chunks.json")
"""

import json
import time
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from .boundary import BoundaryQualityEvaluator
from .cancellation import CancellationToken
from .exceptions import DocumentLoadError
from .finalizer import ChunkFinalizer
from .languages import LanguageProfileProvider, default_provider
from .logging_config import get_logger
from .models import (
    ChunkingOptions,
    ChunkingResult,
    ChunkingStats,
    DocumentChunk,
    DocumentContent,
)
from .optimizer import ChunkOptimizer
from .overlap import OVERLAP_SEPARATOR, AdaptiveOverlapManager
from .quality import ChunkQualityScorer
from .strategies import ChunkingContext, ChunkingStrategyFactory, RawChunk, default_factory
from .structure import SemanticUnitExtractor, StructuralScanner, build_sections

logger = get_logger(__name__)


class DocumentChunker:
    """
    Splits extracted document text into size-bounded, overlapping chunks
    with quality scores and navigation metadata.

    Args:
        options: Default options for runs that do not pass their own.
        language_provider: Source of language profiles.
        factory: Strategy registry.
    """

    def __init__(
        self,
        options: Optional[ChunkingOptions] = None,
        language_provider: Optional[LanguageProfileProvider] = None,
        factory: Optional[ChunkingStrategyFactory] = None,
    ):
        self.options = options or ChunkingOptions()
        self.language_provider = language_provider or default_provider
        self.factory = factory or default_factory
        self.scanner = StructuralScanner()

    def chunk(
        self,
        document: DocumentContent,
        options: Optional[ChunkingOptions] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ChunkingResult:
        """
        Chunk a document.

        Args:
            document: Text and optional sections/page map.
            options: Run options (the chunker's defaults if omitted).
            cancel_token: Checked once per emitted chunk.

        Returns:
            ChunkingResult with the ordered chunks and statistics.

        Raises:
            UnknownStrategyError: options.strategy is not registered.
            ChunkingCancelledError: cancel_token was cancelled mid-run.
        """
        options = options or self.options
        started = time.perf_counter()
        document_id = document.document_id
        self.factory.validate(options.strategy)

        text = document.text
        if not text or not text.strip():
            logger.info(f"Document '{document_id}' is empty, nothing to chunk")
            return self._empty_result(document, options)

        # Step 1: Language profile
        profile = self.language_provider.resolve(options.language_code, text)

        # Step 2: Structure and semantic units
        structure = self.scanner.scan(text)
        units = SemanticUnitExtractor(profile).extract(text, structure)

        # Step 3: Assemble
        strategy_name = self.factory.resolve(options.strategy, text, units)
        strategy = self.factory.create(strategy_name)
        context = ChunkingContext(
            text=text,
            options=options,
            profile=profile,
            structure=structure,
            units=units,
            evaluator=BoundaryQualityEvaluator(profile),
            overlap_manager=AdaptiveOverlapManager(profile),
            cancel_token=cancel_token,
            metadata=document.metadata,
        )
        logger.info(
            f"Chunking '{document_id}': {len(text)} chars, language={profile.language_code}, "
            f"strategy={strategy_name}"
        )
        raw_chunks = strategy.assemble(context)
        logger.debug(f"Assembled {len(raw_chunks)} raw chunks from {len(units)} units")

        # Step 4: Optimise
        raw_chunks = ChunkOptimizer(profile).optimize(
            raw_chunks, text, options, context.effective_max_size
        )

        # Step 5: Overlaps must match the final neighbours
        raw_chunks = self.reconcile_overlaps(raw_chunks, context)

        # Step 6: Strategy props, scores, ids and links
        strategy.annotate(raw_chunks, context)
        sections = document.sections or build_sections(structure.headers, len(text))
        finalizer = ChunkFinalizer(ChunkQualityScorer(profile))
        chunks = finalizer.finalize(
            raw_chunks,
            document_id=document_id,
            strategy=strategy_name,
            options=options,
            sections=sections,
            page_ranges=document.page_ranges,
            cancel_token=cancel_token,
        )

        stats = self._compute_stats(chunks, text, time.perf_counter() - started)
        logger.info(
            f"Chunked '{document_id}' into {stats.total_chunks} chunks "
            f"(avg {stats.avg_chunk_size:.0f} chars, {stats.processing_time_seconds:.2f}s)"
        )
        return ChunkingResult(
            document_id=document_id,
            source=str(document.metadata.get("source", "")),
            strategy=strategy_name,
            language=profile.language_code,
            options=options,
            chunks=chunks,
            stats=stats,
        )

    def chunk_text(
        self,
        text: str,
        document_id: str = "document",
        metadata: Optional[dict[str, Any]] = None,
        options: Optional[ChunkingOptions] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ChunkingResult:
        """Chunk plain text under the given document id."""
        document = DocumentContent(
            text=text or "",
            metadata={**(metadata or {}), "document_id": document_id},
        )
        return self.chunk(document, options, cancel_token)

    def chunk_file(
        self,
        path: str,
        options: Optional[ChunkingOptions] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ChunkingResult:
        """
        Load a text/markdown file or a DocumentContent JSON and chunk it.

        Raises:
            DocumentLoadError: The file is missing, unreadable or invalid.
        """
        return self.chunk(load_document(path), options, cancel_token)

    # -------------------------------------------------------------------------
    # Overlap reconciliation
    # -------------------------------------------------------------------------

    def reconcile_overlaps(
        self, chunks: list[RawChunk], context: ChunkingContext
    ) -> list[RawChunk]:
        """
        Re-derive every overlap from the final predecessor.

        Splits, merges and dropped duplicates can change which chunk comes
        before another, so each overlap is cut again from the predecessor's
        body, keeping its requested length where the size ceiling allows.
        Table chunks neither give nor receive overlap, and an overlap the
        body already opens with is dropped.
        """
        manager = context.overlap_manager
        max_size = context.effective_max_size
        result: list[RawChunk] = []
        for chunk in chunks:
            previous = result[-1] if result else None
            overlap = ""
            if chunk.overlap and previous is not None and not (
                chunk.is_table
                or chunk.oversize
                or previous.is_table
                or previous.props.get("truncated")
            ):
                room = max_size - len(chunk.body) - len(OVERLAP_SEPARATOR)
                target = min(len(chunk.overlap), room)
                if target > 0:
                    overlap = manager.create_context_preserving_overlap(previous.body, target)
                    if len(overlap) > room:
                        overlap = manager.word_aligned_suffix(previous.body, room)
                    if len(overlap) >= len(previous.body) or not overlap.strip():
                        overlap = ""
                    if manager.apply_overlap(overlap, chunk.body) == chunk.body:
                        overlap = ""
            if overlap != chunk.overlap:
                chunk = replace(chunk, overlap=overlap)
            result.append(chunk)
        return result

    # -------------------------------------------------------------------------
    # Internal methods
    # -------------------------------------------------------------------------

    def _compute_stats(
        self, chunks: list[DocumentChunk], text: str, elapsed: float
    ) -> ChunkingStats:
        """Compute statistics about the chunking result."""
        if not chunks:
            return ChunkingStats(total_characters=len(text), processing_time_seconds=elapsed)

        sizes = [len(c.content) for c in chunks]
        return ChunkingStats(
            total_chunks=len(chunks),
            total_characters=len(text),
            total_tokens=sum(c.tokens for c in chunks),
            avg_chunk_size=sum(sizes) / len(sizes),
            min_chunk_size=min(sizes),
            max_chunk_size=max(sizes),
            avg_quality=sum(c.quality for c in chunks) / len(chunks),
            oversize_chunks=sum(1 for c in chunks if c.props.get("oversize")),
            table_chunks=sum(1 for c in chunks if c.props.get("table")),
            processing_time_seconds=elapsed,
        )

    def _empty_result(
        self, document: DocumentContent, options: ChunkingOptions
    ) -> ChunkingResult:
        """Return an empty ChunkingResult for blank input."""
        return ChunkingResult(
            document_id=document.document_id,
            source=str(document.metadata.get("source", "")),
            strategy=options.strategy,
            options=options,
            chunks=[],
            stats=ChunkingStats(total_characters=len(document.text or "")),
        )


def load_document(path: str) -> DocumentContent:
    """
    Read an input file into a DocumentContent.

    ``.json`` files must hold a serialised DocumentContent; anything else is
    read as UTF-8 text. The file stem becomes the document id unless the
    JSON metadata already names one.
    """
    file_path = Path(path)
    try:
        if file_path.suffix.lower() == ".json":
            document = DocumentContent.model_validate(
                json.loads(file_path.read_text(encoding="utf-8"))
            )
        else:
            document = DocumentContent(text=file_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
        raise DocumentLoadError(str(path), e) from e

    metadata = {
        "document_id": file_path.stem,
        "file_name": file_path.name,
        "file_type": file_path.suffix.lstrip(".").lower() or "txt",
        "source": str(file_path),
    }
    metadata.update(document.metadata)
    return document.model_copy(update={"metadata": metadata})

"""
Data Models for the Chunking Engine.

The engine turns extracted document text into retrieval-ready chunks in a
fixed sequence of stages:

    DocumentContent + ChunkingOptions
            ↓
    [Scan]      → DocumentStructure (headers, list items, paragraphs)
            ↓
    [Extract]   → SemanticUnit[] (lines, folded table blocks)
            ↓
    [Assemble]  → RawChunk[] (strategy-specific, transient)
            ↓
    [Optimize]  → RawChunk[] (size-enforced, merged, deduplicated)
            ↓
    [Score]     → quality sub-scores
            ↓
    [Finalize]  → DocumentChunk[] inside a ChunkingResult

Design Principles:
    - Pydantic v2 for validation and serialization
    - Immutable value objects (frozen=True) for everything produced by the
      analysis stages; only DocumentChunk is touched again, by the finalizer
    - Sizes are measured in characters; token counts are informational

Usage:
    from ragchunk import DocumentChunker, ChunkingOptions, DocumentContent

    document = DocumentContent(text=open("report.md").read())
    result = DocumentChunker().chunk(document, ChunkingOptions(max_chunk_size=800))
    result.save("report-chunks.json")
"""

from __future__ import annotations

import json
import warnings
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# =============================================================================
# ENUMS
# =============================================================================


class ChunkingStrategyName(str, Enum):
    """
    Registered chunk assembly strategies.

    AUTO: Picks INTELLIGENT for documents with tables or markdown headers,
          SMART otherwise
    SMART: Sentence accumulator with a completeness-gated flush
    INTELLIGENT: Structure-aware accumulator over semantic units
    """

    AUTO = "auto"
    SMART = "smart"
    INTELLIGENT = "intelligent"


class ElementType(str, Enum):
    """Kinds of structural elements found by the scanner."""

    HEADER = "header"
    LIST_ITEM = "list_item"
    PARAGRAPH = "paragraph"


class BoundaryType(str, Enum):
    """Which heuristic produced the best score for a split position."""

    NONE = "none"
    SENTENCE = "sentence"
    PARAGRAPH = "paragraph"
    HEADER = "header"
    LIST = "list"
    TABLE = "table"
    SEMANTIC = "semantic"


# =============================================================================
# CONFIGURATION
# =============================================================================


# CamelCase keys of the legacy option bag → typed fields
_LEGACY_OPTION_KEYS = {
    "Strategy": "strategy",
    "MaxChunkSize": "max_chunk_size",
    "MinChunkSize": "min_chunk_size",
    "OverlapSize": "overlap_size",
    "LanguageCode": "language_code",
    "PreserveParagraphs": "preserve_paragraphs",
    "PreserveSentences": "preserve_sentences",
    "DeduplicateOverlaps": "deduplicate_overlaps",
    "SeparateDocumentHeader": "separate_document_header",
    "MaxHeaderParagraphs": "max_header_paragraphs",
    "MaxHeaderParagraphLength": "max_header_paragraph_length",
    "MaxHeadingLevel": "max_heading_level",
}

# Keys that used to live inside StrategyOptions
_LEGACY_STRATEGY_KEYS = {
    "MinCompleteness": "min_completeness",
    "QualityThreshold": "quality_threshold",
    "CoherenceThreshold": "coherence_threshold",
    "ApplyBoundaryImprovement": "apply_boundary_improvement",
}


class ChunkingOptions(BaseModel):
    """
    Configuration for one chunking run.

    Immutable once constructed. Documents containing a table get an
    effective ceiling of twice ``max_chunk_size`` (see effective_max_size);
    that value is derived per run and never stored here.
    """

    model_config = {"frozen": True}

    strategy: str = Field(
        ChunkingStrategyName.AUTO.value,
        description="Strategy name (auto, smart, intelligent)",
    )
    max_chunk_size: int = Field(
        1024,
        description="Maximum characters per chunk",
        ge=20,
        le=100_000,
    )
    min_chunk_size: int = Field(
        200,
        description="Chunks shorter than this are merge candidates",
        ge=0,
    )
    overlap_size: int = Field(
        128,
        description="Target overlap in characters between consecutive chunks (0 disables)",
        ge=0,
    )
    language_code: str = Field(
        "auto",
        description="Language profile code, or 'auto' to detect from the text",
    )
    preserve_paragraphs: bool = Field(
        True,
        description="Smart strategy: count paragraph alignment towards completeness",
    )
    preserve_sentences: bool = Field(
        True,
        description="Force-split oversize chunks at sentence boundaries rather than filling to the last whole word",
    )
    deduplicate_overlaps: bool = Field(
        True,
        description="Strip lines repeated from the previous chunk when neighbours are near-duplicates",
    )
    separate_document_header: bool = Field(
        True,
        description="Record leading title/date/copyright paragraphs in a DocumentHeader prop",
    )
    max_header_paragraphs: int = Field(
        5,
        description="Maximum leading paragraphs treated as document header",
        ge=0,
    )
    max_header_paragraph_length: int = Field(
        200,
        description="Longest paragraph still considered part of the document header",
        ge=1,
    )
    max_heading_level: int = Field(
        3,
        description="Deepest heading level included in a chunk's heading path",
        ge=1,
        le=6,
    )
    min_completeness: float = Field(
        0.7,
        description="Smart strategy: completeness required before an overflow flush",
        ge=0.0,
        le=1.0,
    )
    quality_threshold: float = Field(
        0.6,
        description="Optimizer: chunks scoring below this are re-split",
        ge=0.0,
        le=1.0,
    )
    coherence_threshold: float = Field(
        0.7,
        description="Intelligent strategy: start a new chunk when distance exceeds 1 - threshold",
        ge=0.0,
        le=1.0,
    )
    apply_boundary_improvement: bool = Field(
        False,
        description="Intelligent strategy: move splits to a better nearby boundary instead of only logging it",
    )

    @field_validator("strategy", "language_code", mode="before")
    @classmethod
    def _normalize_name(cls, value: Any) -> Any:
        if isinstance(value, Enum):
            value = value.value
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @model_validator(mode="after")
    def _check_sizes(self) -> "ChunkingOptions":
        if self.overlap_size >= self.max_chunk_size:
            raise ValueError(
                f"overlap_size ({self.overlap_size}) must be less than "
                f"max_chunk_size ({self.max_chunk_size})"
            )
        if self.min_chunk_size > self.max_chunk_size:
            raise ValueError(
                f"min_chunk_size ({self.min_chunk_size}) must not exceed "
                f"max_chunk_size ({self.max_chunk_size})"
            )
        return self

    def effective_max_size(self, has_table: bool) -> int:
        """Size ceiling for a run; doubled for table-bearing documents."""
        return self.max_chunk_size * 2 if has_table else self.max_chunk_size

    def with_overrides(self, **overrides: Any) -> "ChunkingOptions":
        """Return a validated copy with some fields replaced."""
        data = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return ChunkingOptions.model_validate(data)

    @classmethod
    def from_legacy(cls, options: dict[str, Any]) -> "ChunkingOptions":
        """
        Build options from the legacy string-keyed option bag.

        Accepts the CamelCase keys (``MaxChunkSize``, ``OverlapSize``, ...)
        and a nested ``StrategyOptions`` dict. Snake-case field names pass
        through unchanged. Anything unrecognised raises a DeprecationWarning
        and is ignored rather than silently defaulted.
        """
        data: dict[str, Any] = {}
        ignored: list[str] = []

        for key, value in options.items():
            if key == "StrategyOptions" and isinstance(value, dict):
                for sub_key, sub_value in value.items():
                    field = _LEGACY_STRATEGY_KEYS.get(sub_key)
                    if field is None and sub_key in cls.model_fields:
                        field = sub_key
                    if field is None:
                        ignored.append(f"StrategyOptions.{sub_key}")
                        continue
                    data[field] = sub_value
                continue

            field = _LEGACY_OPTION_KEYS.get(key)
            if field is None and key in cls.model_fields:
                field = key
            if field is None:
                ignored.append(key)
                continue
            data[field] = value

        if ignored:
            warnings.warn(
                "Ignoring unsupported chunking option keys: " + ", ".join(sorted(ignored)),
                DeprecationWarning,
                stacklevel=2,
            )
        return cls.model_validate(data)


# =============================================================================
# ANALYSIS MODELS (scanner, unit extractor, boundary evaluator)
# =============================================================================


class StructuralElement(BaseModel):
    """A header, list item, or paragraph located by the structural scanner."""

    model_config = {"frozen": True}

    content: str
    position: int = Field(..., ge=0, description="Character offset in the source text")
    type: ElementType
    importance: float = Field(..., ge=0.0, le=1.0)
    level: int = Field(0, ge=0, le=6, description="Heading level, 0 for non-headers")


class DocumentStructure(BaseModel):
    """Scanner output: one list per element type, each in document order."""

    model_config = {"frozen": True}

    headers: list[StructuralElement] = Field(default_factory=list)
    list_items: list[StructuralElement] = Field(default_factory=list)
    paragraphs: list[StructuralElement] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.headers or self.list_items or self.paragraphs)


class SemanticUnit(BaseModel):
    """
    Atomic input to the assemblers: a single line, or a folded table block.

    ``content`` is always the verbatim slice ``text[position:end]``.
    """

    model_config = {"frozen": True}

    content: str
    position: int = Field(..., ge=0)
    semantic_weight: float = Field(..., ge=0.0, le=1.0)
    contextual_relevance: float = Field(..., ge=0.0, le=1.0)
    importance: float = Field(..., ge=0.0, le=1.0)
    is_section_header: bool = False
    is_table: bool = False

    @property
    def end(self) -> int:
        return self.position + len(self.content)

    @property
    def size(self) -> int:
        return len(self.content)


class BoundaryQualityResult(BaseModel):
    """Score of a split position, and the best position found nearby."""

    model_config = {"frozen": True}

    original_position: int
    improved_position: int
    original_quality_score: float = Field(..., ge=0.0, le=1.0)
    quality_score: float = Field(..., ge=0.0, le=1.0)
    boundary_type: BoundaryType = BoundaryType.NONE
    reason: str = ""

    @property
    def improvement(self) -> float:
        return self.quality_score - self.original_quality_score


# =============================================================================
# INPUT DOCUMENT
# =============================================================================


class ContentSection(BaseModel):
    """A titled character range of the document; sections nest via children."""

    title: str
    level: int = Field(1, ge=1)
    start: int = Field(..., ge=0)
    end: int = Field(..., ge=0)
    children: list[ContentSection] = Field(default_factory=list)

    def contains(self, position: int) -> bool:
        return self.start <= position < self.end


class DocumentContent(BaseModel):
    """
    Extracted document text handed to the engine by a parser.

    ``page_ranges`` maps a page number to its (start, end) character range in
    ``text``; ``sections`` provide the heading tree used for heading paths.
    """

    text: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    sections: list[ContentSection] = Field(default_factory=list)
    page_ranges: dict[int, tuple[int, int]] = Field(default_factory=dict)

    @property
    def document_id(self) -> str:
        return str(self.metadata.get("document_id") or self.metadata.get("file_name") or "document")


# =============================================================================
# OUTPUT MODELS
# =============================================================================


class SourceLocation(BaseModel):
    """Where a chunk came from in the source document."""

    start_char: int = Field(0, ge=0)
    end_char: int = Field(0, ge=0)
    start_page: Optional[int] = None
    end_page: Optional[int] = None
    heading_path: list[str] = Field(
        default_factory=list,
        description="Titles of the sections enclosing the chunk start, outermost first",
    )


class DocumentChunk(BaseModel):
    """
    A single retrieval-ready chunk.

    Built once by the finalizer, which is also the only stage that sets
    cross-chunk fields (total_chunks and the nav.* props).
    """

    id: str = Field(
        ...,
        description="Unique identifier (format: {document_id}_chunk_{index:04d})",
    )
    content: str = Field(..., min_length=1)
    index: int = Field(..., ge=0)
    total_chunks: int = Field(0, ge=0)
    location: SourceLocation = Field(default_factory=SourceLocation)
    tokens: int = Field(0, ge=0, description="cl100k_base token estimate")
    quality: float = Field(0.0, ge=0.0, le=1.0)
    importance: float = Field(0.5, ge=0.0, le=1.0)
    density: float = Field(0.0, ge=0.0, le=1.0)
    context_dependency: float = Field(
        0.0,
        ge=0.0,
        le=1.0,
        description="1 - context independence",
    )
    strategy: str = ""
    props: dict[str, Any] = Field(default_factory=dict)

    @property
    def overlap_length(self) -> int:
        return int(self.props.get("overlap_length", 0))

    @property
    def body(self) -> str:
        """Content without the overlap prefix copied from the previous chunk."""
        if not self.overlap_length:
            return self.content
        return self.content[self.overlap_length:].lstrip("\n")

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class ChunkingStats(BaseModel):
    """Statistics about the chunking process."""

    total_chunks: int = 0
    total_characters: int = 0
    total_tokens: int = 0
    avg_chunk_size: float = 0.0
    min_chunk_size: int = 0
    max_chunk_size: int = 0
    avg_quality: float = 0.0
    oversize_chunks: int = 0
    table_chunks: int = 0
    processing_time_seconds: float = 0.0


class ChunkingResult(BaseModel):
    """
    Complete result of chunking a document.

    Contains the ordered chunks, the options that produced them, and
    processing statistics.
    """

    document_id: str
    source: str = Field("", description="Input file path, if any")
    strategy: str = Field("", description="Strategy that actually ran (auto resolved)")
    language: str = ""
    options: ChunkingOptions = Field(default_factory=ChunkingOptions)
    chunks: list[DocumentChunk] = Field(default_factory=list)
    stats: ChunkingStats = Field(default_factory=ChunkingStats)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    @property
    def total_chunks(self) -> int:
        return len(self.chunks)

    def get_chunk_by_id(self, chunk_id: str) -> Optional[DocumentChunk]:
        for chunk in self.chunks:
            if chunk.id == chunk_id:
                return chunk
        return None

    def get_neighbors(
        self, chunk_id: str
    ) -> tuple[Optional[DocumentChunk], Optional[DocumentChunk]]:
        """Get the previous and next chunks for context expansion."""
        chunk = self.get_chunk_by_id(chunk_id)
        if not chunk:
            return None, None
        prev_id = chunk.props.get("nav.previousChunkId")
        next_id = chunk.props.get("nav.nextChunkId")
        prev_chunk = self.get_chunk_by_id(prev_id) if prev_id else None
        next_chunk = self.get_chunk_by_id(next_id) if next_id else None
        return prev_chunk, next_chunk

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=indent)

    def save(self, path: str) -> None:
        """Save chunking result to a JSON file."""
        Path(path).write_text(self.to_json(), encoding="utf-8")

    @classmethod
    def load(cls, path: str) -> "ChunkingResult":
        """Load chunking result from a JSON file."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.model_validate(data)


# =============================================================================
# API MODELS
# =============================================================================


class ChunkRequest(BaseModel):
    """Body of POST /chunk: inline text or a server-side path, not both."""

    text: Optional[str] = None
    path: Optional[str] = None
    document_id: Optional[str] = None
    options: ChunkingOptions = Field(default_factory=ChunkingOptions)
    save: bool = True

    @model_validator(mode="after")
    def _check_source(self) -> "ChunkRequest":
        if (self.text is None) == (self.path is None):
            raise ValueError("exactly one of 'text' or 'path' must be given")
        return self


class ChunkResponse(BaseModel):
    document_id: str
    strategy: str
    total_chunks: int
    output_path: Optional[str] = None
    chunks: list[DocumentChunk] = Field(default_factory=list)

"""
ragchunk - Structure-aware chunking for retrieval-augmented generation

Splits extracted document text into size-bounded, overlapping chunks that
respect sentences, sections and tables, and scores every chunk for
retrieval quality.

Quick Start:
    from ragchunk import DocumentChunker, ChunkingOptions

    chunker = DocumentChunker(ChunkingOptions(max_chunk_size=800))
    result = chunker.chunk_text(open("handbook.md").read(), document_id="handbook")
    result.save("chunks.json")
"""

__version__ = "1.0.0"

from .cancellation import CancellationToken
from .chunker import DocumentChunker, load_document
from .config import ChunkingServiceConfig
from .exceptions import (
    ChunkingCancelledError,
    ChunkingError,
    DocumentLoadError,
    InvalidOptionsError,
    UnknownStrategyError,
)
from .languages import LanguageProfile, LanguageProfileProvider
from .models import (
    ChunkingOptions,
    ChunkingResult,
    ChunkingStats,
    ChunkingStrategyName,
    ContentSection,
    DocumentChunk,
    DocumentContent,
    SourceLocation,
)
from .quality import ChunkQualityScorer
from .sentence_splitter import split_sentences
from .service import ChunkingService
from .token_counter import count_tokens

__all__ = [
    "__version__",
    "CancellationToken",
    "ChunkQualityScorer",
    "ChunkingCancelledError",
    "ChunkingError",
    "ChunkingOptions",
    "ChunkingResult",
    "ChunkingService",
    "ChunkingServiceConfig",
    "ChunkingStats",
    "ChunkingStrategyName",
    "ContentSection",
    "DocumentChunk",
    "DocumentChunker",
    "DocumentContent",
    "DocumentLoadError",
    "InvalidOptionsError",
    "LanguageProfile",
    "LanguageProfileProvider",
    "SourceLocation",
    "UnknownStrategyError",
    "count_tokens",
    "load_document",
    "split_sentences",
]

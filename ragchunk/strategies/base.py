"""
Strategy interface, per-run context and the strategy factory.

A strategy turns the analysed document into RawChunks. Everything a
strategy needs for one run travels in a ChunkingContext, so strategy
instances stay stateless and can be shared between threads.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

from ..boundary import BoundaryQualityEvaluator
from ..cancellation import CancellationToken
from ..exceptions import UnknownStrategyError
from ..languages import LanguageProfile
from ..logging_config import get_logger
from ..models import ChunkingOptions, ChunkingStrategyName, DocumentStructure, SemanticUnit
from ..overlap import OVERLAP_SEPARATOR, AdaptiveOverlapManager
from ..structure import contains_table
from ..text_utils import HEADER_PATTERN

logger = get_logger(__name__)


def overlap_cost(overlap: str) -> int:
    """Characters an overlap adds to a chunk, separator included."""
    return len(overlap) + len(OVERLAP_SEPARATOR) if overlap else 0


# =============================================================================
# RAW CHUNKS AND RUN CONTEXT
# =============================================================================


@dataclass
class RawChunk:
    """
    A chunk between assembly and finalisation.

    ``body`` is a verbatim slice ``text[start:end]`` of the source, except
    for truncated sentence parts which carry a trailing marker. ``overlap``
    is a verbatim suffix of the previous chunk; it is joined to the body
    with OVERLAP_SEPARATOR to form the chunk content.
    """

    body: str
    start: int
    end: int
    overlap: str = ""
    props: dict[str, Any] = field(default_factory=dict)
    is_table: bool = False
    oversize: bool = False
    importance: float = 0.5

    @property
    def content(self) -> str:
        if not self.overlap:
            return self.body
        return self.overlap + OVERLAP_SEPARATOR + self.body

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass
class ChunkingContext:
    """Inputs and shared services for one chunking run."""

    text: str
    options: ChunkingOptions
    profile: LanguageProfile
    structure: DocumentStructure
    units: list[SemanticUnit]
    evaluator: BoundaryQualityEvaluator
    overlap_manager: AdaptiveOverlapManager
    cancel_token: Optional[CancellationToken] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def has_table(self) -> bool:
        return contains_table(self.units)

    @property
    def effective_max_size(self) -> int:
        return self.options.effective_max_size(self.has_table)

    def checkpoint(self, emitted: int) -> None:
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled(emitted)


# =============================================================================
# STRATEGY BASE
# =============================================================================


class ChunkingStrategy(ABC):
    """Base class for chunk assembly strategies."""

    name: str = ""

    @abstractmethod
    def assemble(self, context: ChunkingContext) -> list[RawChunk]:
        """Build raw chunks from the analysed document."""

    def annotate(self, chunks: list[RawChunk], context: ChunkingContext) -> None:
        """Attach strategy-specific props to the optimised chunks."""

    def next_overlap(
        self, context: ChunkingContext, previous_body: str, upcoming_text: str
    ) -> str:
        """
        Overlap to prepend to the chunk after ``previous_body``.

        Disabled when overlap_size is 0. Capped at a quarter of
        max_chunk_size so the overlap never crowds out the new content.
        """
        options = context.options
        if options.overlap_size <= 0 or not previous_body.strip():
            return ""
        manager = context.overlap_manager
        target = manager.calculate_optimal_overlap(previous_body, upcoming_text, options)
        target = min(target, options.max_chunk_size // 4)
        overlap = manager.create_context_preserving_overlap(previous_body, target)
        if len(overlap) > options.max_chunk_size // 2:
            return ""
        return overlap


# =============================================================================
# FACTORY
# =============================================================================


class ChunkingStrategyFactory:
    """Maps strategy names to strategy classes."""

    def __init__(self):
        self._registry: dict[str, type[ChunkingStrategy]] = {}

    def register(self, name: str, strategy_cls: type[ChunkingStrategy]) -> None:
        self._registry[name.lower()] = strategy_cls

    @property
    def available(self) -> list[str]:
        return [ChunkingStrategyName.AUTO.value] + sorted(self._registry)

    def validate(self, name: str) -> str:
        """Return the normalised name, or raise UnknownStrategyError."""
        normalized = (name or "").strip().lower()
        if normalized != ChunkingStrategyName.AUTO.value and normalized not in self._registry:
            raise UnknownStrategyError(name, self.available)
        return normalized

    def resolve(self, name: str, text: str, units: list[SemanticUnit]) -> str:
        """
        Concrete strategy name for a run.

        'auto' becomes 'intelligent' for documents with a table or a
        markdown header and 'smart' otherwise.
        """
        normalized = self.validate(name)
        if normalized != ChunkingStrategyName.AUTO.value:
            return normalized
        if contains_table(units) or HEADER_PATTERN.search(text):
            resolved = ChunkingStrategyName.INTELLIGENT.value
        else:
            resolved = ChunkingStrategyName.SMART.value
        logger.debug(f"Strategy 'auto' resolved to '{resolved}'")
        return resolved

    def create(self, name: str) -> ChunkingStrategy:
        normalized = self.validate(name)
        strategy_cls = self._registry.get(normalized)
        if strategy_cls is None:
            # 'auto' needs a document; callers resolve it first
            raise UnknownStrategyError(name, sorted(self._registry))
        return strategy_cls()

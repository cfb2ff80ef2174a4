"""
Chunk assembly strategies.

Usage:
    from ragchunk.strategies import default_factory

    name = default_factory.resolve("auto", text, units)
    strategy = default_factory.create(name)
"""

from .base import ChunkingContext, ChunkingStrategy, ChunkingStrategyFactory, RawChunk
from .intelligent import IntelligentChunkingStrategy
from .smart import SmartChunkingStrategy

default_factory = ChunkingStrategyFactory()
default_factory.register(SmartChunkingStrategy.name, SmartChunkingStrategy)
default_factory.register(IntelligentChunkingStrategy.name, IntelligentChunkingStrategy)

__all__ = [
    "ChunkingContext",
    "ChunkingStrategy",
    "ChunkingStrategyFactory",
    "IntelligentChunkingStrategy",
    "RawChunk",
    "SmartChunkingStrategy",
    "default_factory",
]

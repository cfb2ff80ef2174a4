"""
Custom Exceptions for the Chunking Engine.

The engine itself degrades instead of failing: blank input yields an empty
result, unsplittable units are emitted as flagged oversize chunks, and
low-quality chunks are re-split locally. Exceptions are reserved for the
caller-facing edges: bad configuration, unknown strategies, unreadable
inputs, and cooperative cancellation.

Exception Hierarchy:
    ChunkingError (base)
    ├── InvalidOptionsError
    │   └── UnknownStrategyError
    ├── DocumentLoadError
    └── ChunkingCancelledError

Usage:
    from ragchunk.exceptions import ChunkingError, UnknownStrategyError

    try:
        result = chunker.chunk(document, options)
    except UnknownStrategyError as e:
        print(f"No such strategy: {e.strategy}")
    except ChunkingError as e:
        print(f"Chunking failed: {e}")
"""

from __future__ import annotations

from typing import Optional


# =============================================================================
# BASE EXCEPTION
# =============================================================================


class ChunkingError(Exception):
    """
    Base exception for all chunking-related errors.

    Attributes:
        message: Human-readable error description
        details: Additional technical details (optional)
    """

    def __init__(
        self,
        message: str = "A chunking error occurred",
        details: Optional[str] = None,
    ):
        self.message = message
        self.details = details

        full_message = message
        if details:
            full_message = f"{message} | Details: {details}"

        super().__init__(full_message)


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class InvalidOptionsError(ChunkingError):
    """
    Raised when caller-supplied options cannot be turned into a valid
    ChunkingOptions value (service and CLI edges).

    Attributes:
        field: Name of the offending option, if known
    """

    def __init__(
        self,
        message: str = "Invalid chunking options",
        field: Optional[str] = None,
        details: Optional[str] = None,
    ):
        self.field = field
        if field:
            message = f"{message} [{field}]"
        super().__init__(message, details)


class UnknownStrategyError(InvalidOptionsError):
    """
    Raised when a strategy name is not registered with the factory.

    Attributes:
        strategy: The requested strategy name
        available: Names that are registered
    """

    def __init__(self, strategy: str, available: Optional[list[str]] = None):
        self.strategy = strategy
        self.available = available or []
        details = None
        if self.available:
            details = "available: " + ", ".join(self.available)
        super().__init__(
            message=f"Unknown chunking strategy: {strategy}",
            field="strategy",
            details=details,
        )


# =============================================================================
# INPUT ERRORS
# =============================================================================


class DocumentLoadError(ChunkingError):
    """
    Raised when an input document cannot be read or parsed.

    Attributes:
        path: Path of the input file
        original_error: The underlying I/O or parse error
    """

    def __init__(
        self,
        path: str,
        original_error: Optional[Exception] = None,
    ):
        self.path = path
        self.original_error = original_error
        details = str(original_error) if original_error else None
        super().__init__(
            message=f"Cannot load document: {path}",
            details=details,
        )


# =============================================================================
# CANCELLATION
# =============================================================================


class ChunkingCancelledError(ChunkingError):
    """
    Raised when a run is cancelled through its CancellationToken.

    Attributes:
        emitted: Number of chunks that were complete when the run stopped
    """

    def __init__(self, emitted: int = 0):
        self.emitted = emitted
        super().__init__(f"Chunking cancelled after {emitted} chunk(s)")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def format_error_chain(error: Exception) -> str:
    """
    Format an exception and its chain for logging.

    Returns a multi-line string showing the error hierarchy.
    """
    lines = []
    current = error
    depth = 0

    while current is not None:
        prefix = "  " * depth + ("└─ " if depth > 0 else "")
        lines.append(f"{prefix}{type(current).__name__}: {current}")

        if getattr(current, "original_error", None):
            current = current.original_error
            depth += 1
        elif current.__cause__:
            current = current.__cause__
            depth += 1
        else:
            break

    return "\n".join(lines)

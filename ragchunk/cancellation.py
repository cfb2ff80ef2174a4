"""
Cooperative cancellation for chunking runs.

The pipeline checks the token once per emitted chunk, so a cancel request
takes effect at the next chunk boundary and never leaves a half-built chunk
in the result.

Usage:
    token = CancellationToken()
    threading.Timer(2.0, token.cancel).start()
    chunker.chunk(document, options, cancel_token=token)
"""

import threading

from .exceptions import ChunkingCancelledError


class CancellationToken:
    """Thread-safe cancel flag shared between a caller and a running pipeline."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, emitted: int = 0) -> None:
        """Raise ChunkingCancelledError if cancel() has been called."""
        if self._event.is_set():
            raise ChunkingCancelledError(emitted)

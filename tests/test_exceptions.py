"""Tests for ragchunk.exceptions and ragchunk.cancellation."""

import pytest

from ragchunk.cancellation import CancellationToken
from ragchunk.exceptions import (
    ChunkingCancelledError,
    ChunkingError,
    DocumentLoadError,
    InvalidOptionsError,
    UnknownStrategyError,
    format_error_chain,
)


class TestExceptionHierarchy:
    def test_all_inherit_from_chunking_error(self):
        for cls in (InvalidOptionsError, UnknownStrategyError, DocumentLoadError, ChunkingCancelledError):
            assert issubclass(cls, ChunkingError)

    def test_unknown_strategy_is_options_error(self):
        assert issubclass(UnknownStrategyError, InvalidOptionsError)


class TestMessages:
    def test_base_message_with_details(self):
        error = ChunkingError("Boom", details="disk full")
        assert str(error) == "Boom | Details: disk full"
        assert error.message == "Boom"

    def test_base_message_without_details(self):
        assert str(ChunkingError("Boom")) == "Boom"

    def test_invalid_options_names_field(self):
        error = InvalidOptionsError("Bad value", field="max_chunk_size")
        assert str(error) == "Bad value [max_chunk_size]"
        assert error.field == "max_chunk_size"

    def test_unknown_strategy(self):
        error = UnknownStrategyError("fancy", ["auto", "intelligent", "smart"])
        assert error.strategy == "fancy"
        assert error.field == "strategy"
        assert "Unknown chunking strategy: fancy" in str(error)
        assert "available: auto, intelligent, smart" in str(error)

    def test_document_load_error(self):
        cause = FileNotFoundError("no such file")
        error = DocumentLoadError("input/missing.txt", cause)
        assert error.path == "input/missing.txt"
        assert error.original_error is cause
        assert "Cannot load document: input/missing.txt" in str(error)
        assert "no such file" in str(error)

    def test_cancelled_error(self):
        error = ChunkingCancelledError(3)
        assert error.emitted == 3
        assert str(error) == "Chunking cancelled after 3 chunk(s)"


class TestFormatErrorChain:
    def test_single_error(self):
        assert format_error_chain(ChunkingError("Boom")) == "ChunkingError: Boom"

    def test_follows_original_error(self):
        error = DocumentLoadError("a.json", ValueError("bad json"))
        lines = format_error_chain(error).split("\n")
        assert lines[0].startswith("DocumentLoadError:")
        assert lines[1] == "  └─ ValueError: bad json"

    def test_follows_cause(self):
        try:
            try:
                raise KeyError("strategy")
            except KeyError as e:
                raise ChunkingError("Lookup failed") from e
        except ChunkingError as error:
            chain = format_error_chain(error)
        assert "ChunkingError: Lookup failed" in chain
        assert "└─ KeyError" in chain


class TestCancellationToken:
    def test_initially_not_cancelled(self):
        token = CancellationToken()
        assert token.is_cancelled is False
        token.raise_if_cancelled(5)

    def test_cancel(self):
        token = CancellationToken()
        token.cancel()
        assert token.is_cancelled is True
        with pytest.raises(ChunkingCancelledError) as exc_info:
            token.raise_if_cancelled(2)
        assert exc_info.value.emitted == 2

"""Tests for ragchunk.storage, ragchunk.service and ragchunk.config."""

import pytest
from pydantic import ValidationError

from ragchunk import ChunkingOptions, ChunkingResult, DocumentLoadError
from ragchunk.config import ChunkingServiceConfig
from ragchunk.models import ChunkRequest
from ragchunk.service import ChunkingService
from ragchunk.storage import ChunkingStorage

_TEXT = (
    "The exporter writes one file per partition. Each file is compressed before upload. "
    "Uploads are retried three times before the run is marked as failed."
)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _make_service(tmp_path, **option_overrides) -> ChunkingService:
    options = ChunkingOptions(**option_overrides) if option_overrides else ChunkingOptions()
    return ChunkingService(ChunkingServiceConfig(data_dir=str(tmp_path), options=options))


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestChunkingStorage:
    def test_build_paths(self, tmp_path):
        paths = ChunkingStorage(str(tmp_path)).build_paths("report")
        assert paths.document_id == "report"
        assert paths.chunk_dir == tmp_path / "report" / "chunks"
        assert paths.chunk_dir.is_dir()
        assert paths.chunk_file.parent == paths.chunk_dir
        assert paths.chunk_file.name.startswith("report_")
        assert paths.chunk_file.suffix == ".json"

    def test_save_and_load_latest(self, tmp_path):
        storage = ChunkingStorage(str(tmp_path))
        first = ChunkingResult(document_id="report", strategy="smart")
        second = ChunkingResult(document_id="report", strategy="intelligent")
        storage.save(first)
        storage.save(second)

        files = storage.list_results("report")
        assert len(files) == 2
        assert storage.load_latest("report").strategy == "intelligent"

    def test_unknown_document(self, tmp_path):
        storage = ChunkingStorage(str(tmp_path))
        assert storage.list_results("missing") == []
        assert storage.load_latest("missing") is None


class TestChunkingService:
    def test_handle_text_and_save(self, tmp_path):
        service = _make_service(tmp_path)
        result, output_path = service.handle(ChunkRequest(text=_TEXT, document_id="export"))

        assert result.document_id == "export"
        assert result.total_chunks == 1
        assert output_path is not None
        saved = ChunkingResult.load(output_path)
        assert saved.chunks[0].content == result.chunks[0].content

    def test_handle_without_save(self, tmp_path):
        service = _make_service(tmp_path)
        result, output_path = service.handle(ChunkRequest(text=_TEXT, save=False))

        assert output_path is None
        assert result.document_id == "document"
        assert not (tmp_path / "document").exists()

    def test_handle_path(self, tmp_path):
        source = tmp_path / "runbook.txt"
        source.write_text(_TEXT, encoding="utf-8")
        result, _ = _make_service(tmp_path).handle(ChunkRequest(path=str(source), save=False))
        assert result.document_id == "runbook"

    def test_handle_missing_path(self, tmp_path):
        with pytest.raises(DocumentLoadError):
            _make_service(tmp_path).handle(ChunkRequest(path=str(tmp_path / "gone.txt")))

    def test_chunk_and_save(self, tmp_path):
        source = tmp_path / "runbook.md"
        source.write_text("# Runbook\n\n" + _TEXT, encoding="utf-8")
        result, output_path = _make_service(tmp_path).chunk_and_save(str(source))

        assert result.strategy == "intelligent"
        assert output_path.startswith(str(tmp_path / "runbook" / "chunks"))

    def test_request_options_override_defaults(self, tmp_path):
        service = _make_service(tmp_path, strategy="intelligent")
        result, _ = service.handle(ChunkRequest(text=_TEXT, options={"strategy": "smart"}, save=False))
        assert result.strategy == "smart"

    def test_config_options_used_by_default(self, tmp_path):
        service = _make_service(tmp_path, strategy="intelligent")
        assert service.chunk_text(_TEXT).strategy == "intelligent"


class TestConfigFromEnv:
    def test_defaults(self, monkeypatch):
        for name in (
            "RAGCHUNK_STRATEGY", "RAGCHUNK_MAX_CHUNK_SIZE", "RAGCHUNK_MIN_CHUNK_SIZE",
            "RAGCHUNK_OVERLAP_SIZE", "RAGCHUNK_LANGUAGE", "RAGCHUNK_DATA_DIR",
        ):
            monkeypatch.delenv(name, raising=False)
        config = ChunkingServiceConfig.from_env()
        assert config.data_dir == "data/chunking"
        assert config.options == ChunkingOptions()

    def test_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("RAGCHUNK_STRATEGY", "Smart")
        monkeypatch.setenv("RAGCHUNK_MAX_CHUNK_SIZE", "600")
        monkeypatch.setenv("RAGCHUNK_OVERLAP_SIZE", "40")
        monkeypatch.setenv("RAGCHUNK_LANGUAGE", "de")
        monkeypatch.setenv("RAGCHUNK_DATA_DIR", str(tmp_path))

        config = ChunkingServiceConfig.from_env()
        assert config.data_dir == str(tmp_path)
        assert config.options.strategy == "smart"
        assert config.options.max_chunk_size == 600
        assert config.options.overlap_size == 40
        assert config.options.language_code == "de"

    def test_invalid_combination(self, monkeypatch):
        monkeypatch.setenv("RAGCHUNK_MAX_CHUNK_SIZE", "100")
        monkeypatch.setenv("RAGCHUNK_OVERLAP_SIZE", "100")
        monkeypatch.delenv("RAGCHUNK_MIN_CHUNK_SIZE", raising=False)
        with pytest.raises(ValidationError):
            ChunkingServiceConfig.from_env()

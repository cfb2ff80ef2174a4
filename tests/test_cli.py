"""Tests for ragchunk.cli."""

import json

import pytest

from ragchunk.cli import build_parser, main

_TEXT = (
    "# Release Notes\n\n"
    "Version two adds incremental exports. Existing jobs keep their schedules. "
    "The old bulk endpoint is deprecated and will be removed next year.\n"
)


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "notes.md"
    path.write_text(_TEXT, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    for name in (
        "RAGCHUNK_STRATEGY", "RAGCHUNK_MAX_CHUNK_SIZE", "RAGCHUNK_MIN_CHUNK_SIZE",
        "RAGCHUNK_OVERLAP_SIZE", "RAGCHUNK_LANGUAGE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("RAGCHUNK_DATA_DIR", str(tmp_path / "data"))


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args(["doc.txt"])
        assert args.strategy is None
        assert args.max_size is None
        assert args.output is None
        assert args.log_level == "INFO"

    def test_rejects_bad_log_level(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["doc.txt", "--log-level", "LOUD"])


class TestMain:
    def test_writes_output_file(self, source, tmp_path, capsys):
        output = tmp_path / "out" / "chunks.json"
        exit_code = main([str(source), "--strategy", "smart", "--max-size", "400", "-o", str(output)])

        assert exit_code == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["document_id"] == "notes"
        assert data["strategy"] == "smart"
        assert data["options"]["max_chunk_size"] == 400
        assert "Chunks:" in capsys.readouterr().out

    def test_default_output_in_data_dir(self, source, tmp_path):
        assert main([str(source)]) == 0
        saved = list((tmp_path / "data" / "notes" / "chunks").glob("notes_*.json"))
        assert len(saved) == 1

    def test_missing_input(self, tmp_path):
        assert main([str(tmp_path / "missing.md")]) == 1

    def test_invalid_options(self, source):
        assert main([str(source), "--overlap", "2000"]) == 2

    def test_unknown_strategy(self, source):
        assert main([str(source), "--strategy", "fancy"]) == 1

    def test_no_input_without_serve(self):
        with pytest.raises(SystemExit):
            main([])

    def test_serve_runs_uvicorn(self, monkeypatch):
        calls = []
        monkeypatch.setattr("ragchunk.cli.uvicorn.run", lambda app, host, port: calls.append((host, port)))
        assert main(["--serve", "--host", "127.0.0.1", "--port", "9100"]) == 0
        assert calls == [("127.0.0.1", 9100)]

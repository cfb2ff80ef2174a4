"""Tests for ragchunk.app - the HTTP service."""

import pytest
from fastapi.testclient import TestClient

from ragchunk.app import create_app
from ragchunk.config import ChunkingServiceConfig

_TEXT = "Backups run at midnight. Restores are tested every Friday. Failed restores page the on-call engineer."


@pytest.fixture
def client(tmp_path):
    return TestClient(create_app(ChunkingServiceConfig(data_dir=str(tmp_path))))


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestChunkEndpoint:
    def test_chunk_text(self, client, tmp_path):
        response = client.post("/chunk", json={"text": _TEXT, "document_id": "backup"})
        assert response.status_code == 200

        data = response.json()
        assert data["document_id"] == "backup"
        assert data["strategy"] == "smart"
        assert data["total_chunks"] == len(data["chunks"]) == 1
        assert data["chunks"][0]["id"] == "backup_chunk_0000"
        assert data["output_path"].startswith(str(tmp_path))

    def test_chunk_without_save(self, client):
        response = client.post("/chunk", json={"text": _TEXT, "save": False})
        assert response.status_code == 200
        assert response.json()["output_path"] is None

    def test_chunk_path(self, client, tmp_path):
        source = tmp_path / "backup.md"
        source.write_text("# Backups\n\n" + _TEXT, encoding="utf-8")
        response = client.post("/chunk", json={"path": str(source), "save": False})
        assert response.status_code == 200
        assert response.json()["document_id"] == "backup"

    def test_unknown_strategy(self, client):
        response = client.post("/chunk", json={"text": _TEXT, "options": {"strategy": "fancy"}})
        assert response.status_code == 400
        assert "fancy" in response.json()["detail"]

    def test_missing_path(self, client, tmp_path):
        response = client.post("/chunk", json={"path": str(tmp_path / "missing.txt")})
        assert response.status_code == 404

    def test_text_and_path_rejected(self, client):
        response = client.post("/chunk", json={"text": _TEXT, "path": "x.txt"})
        assert response.status_code == 422

    def test_invalid_options_rejected(self, client):
        response = client.post(
            "/chunk", json={"text": _TEXT, "options": {"max_chunk_size": 100, "overlap_size": 500}}
        )
        assert response.status_code == 422

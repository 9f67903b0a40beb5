#!/usr/bin/env python3
"""Integration tests for the catalog HTTP API.

Runs the FastAPI app against a catalog manager backed by a temporary
directory, covering upload, listing, download, delete and the bulk
operations.
"""

import json
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from backend.api.main import app
from backend.modules.catalog.catalog_manager import CatalogManager
from backend.modules.catalog.router import get_catalog_manager

ROM = b"0123456789"


class TestCatalogAPI:
    """Test the catalog endpoints end to end."""
    
    @pytest.fixture
    def manager(self):
        """Create a catalog manager over temporary storage."""
        with tempfile.TemporaryDirectory() as temp_dir:
            base = Path(temp_dir)
            yield CatalogManager.from_paths(base / "db.json", base / "uploads", max_upload_size=64)
    
    @pytest.fixture
    def client(self, manager):
        app.dependency_overrides[get_catalog_manager] = lambda: manager
        yield TestClient(app)
        app.dependency_overrides.clear()
    
    def _upload(self, client, **fields):
        data = {"title": "Solar Blaze", "console": "NES", "year": "2019"}
        data.update(fields)
        return client.post(
            "/api/games",
            data=data,
            files={"rom": ("rom.bin", ROM, "application/octet-stream")},
        )
    
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
    
    def test_list_seed(self, client):
        response = client.get("/api/games")
        assert response.status_code == 200
        assert [g["title"] for g in response.json()] == [
            "Solar Blaze", "Pixel Quest", "Mega Kart Homebrew", "StarForth",
        ]
    
    def test_list_filters(self, client):
        response = client.get("/api/games", params={"console": "NES", "minYear": 2020})
        assert [g["id"] for g in response.json()] == [4]
        
        response = client.get("/api/games", params={"q": "arcade"})
        assert [g["id"] for g in response.json()] == [3]
    
    def test_list_unparsable_year_bound(self, client):
        """Test that a non-numeric year bound yields an empty list."""
        response = client.get("/api/games", params={"minYear": "abc"})
        assert response.status_code == 200
        assert response.json() == []
        
        response = client.get("/api/games", params={"maxYear": "nan"})
        assert response.status_code == 200
        assert response.json() == []
    
    def test_list_blank_and_fractional_year_bounds(self, client):
        assert len(client.get("/api/games", params={"minYear": ""}).json()) == 4
        response = client.get("/api/games", params={"maxYear": "2018.5"})
        assert [g["id"] for g in response.json()] == [3]
    
    def test_upload_download_delete(self, client, manager):
        """Test the full lifecycle of a game with a ROM."""
        response = self._upload(client, developer="RetroDev")
        assert response.status_code == 201
        game = response.json()
        assert game["fileName"] == "rom.bin"
        assert game["storedName"].endswith("-rom.bin")
        assert game["year"] == 2019
        
        listed = client.get("/api/games", params={"console": "NES"}).json()
        assert game["id"] in [g["id"] for g in listed]
        
        download = client.get(f"/api/games/{game['id']}/file")
        assert download.status_code == 200
        assert download.content == ROM
        assert "rom.bin" in download.headers["content-disposition"]
        
        response = client.delete(f"/api/games/{game['id']}")
        assert response.status_code == 200
        assert response.json() == {"ok": True}
        
        assert game["id"] not in [g["id"] for g in client.get("/api/games").json()]
        assert not manager.attachments.exists(game["storedName"])
        
        response = client.get(f"/api/games/{game['id']}/file")
        assert response.status_code == 404
        assert response.json()["kind"] == "NotFound"
    
    def test_upload_missing_title(self, client, manager):
        response = self._upload(client, title="")
        assert response.status_code == 400
        assert response.json()["kind"] == "MissingField"
        assert manager.attachments.list_files() == []
        assert len(client.get("/api/games").json()) == 4
    
    def test_upload_invalid_year(self, client, manager):
        response = self._upload(client, year="abc")
        assert response.status_code == 400
        assert response.json()["kind"] == "InvalidYear"
        assert manager.attachments.list_files() == []
    
    def test_upload_without_rom(self, client):
        response = client.post("/api/games", data={"title": "A", "console": "NES", "year": "2019"})
        assert response.status_code == 400
        assert response.json() == {"error": "ROM file is required", "kind": "MissingAttachment"}
    
    def test_upload_too_large(self, client, manager):
        response = client.post(
            "/api/games",
            data={"title": "A", "console": "NES", "year": "2019"},
            files={"rom": ("big.bin", b"x" * 100, "application/octet-stream")},
        )
        assert response.status_code == 413
        assert manager.attachments.list_files() == []
    
    def test_delete_unknown(self, client):
        response = client.delete("/api/games/123456")
        assert response.status_code == 404
        assert response.json()["error"] == "Not found"
    
    def test_export(self, client):
        response = client.get("/api/games/export")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        assert len(json.loads(response.text)) == 4
        assert response.text.startswith("[\n  {")
    
    def test_import(self, client):
        payload = [{"id": 50, "title": "Imported", "storedName": "1-x.bin"}, {"title": "Second"}]
        response = client.post("/api/games/import", json=payload)
        assert response.status_code == 200
        assert response.json() == {"ok": True, "count": 2}
        
        games = client.get("/api/games").json()
        assert [g["title"] for g in games] == ["Imported", "Second"]
        assert all(g["storedName"] is None for g in games)
    
    def test_import_invalid(self, client):
        response = client.post("/api/games/import", json={"games": []})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid payload", "kind": "InvalidPayload"}
    
    def test_reset(self, client, manager):
        self._upload(client)
        client.post("/api/games/import", json=[{"title": "Only"}])
        
        response = client.post("/api/games/reset")
        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert len(client.get("/api/games").json()) == 4
        assert manager.attachments.list_files() == []

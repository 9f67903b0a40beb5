"""Tests for the catalog record store."""

import json
import tempfile
from pathlib import Path

import pytest

from backend.modules.catalog.models import GameRecord, seed_catalog
from backend.modules.catalog.record_store import RecordStore, dump_catalog
from backend.shared.exceptions import IOFailureError


class TestRecordStore:
    """Test suite for RecordStore."""
    
    @pytest.fixture
    def temp_store(self):
        """Create record store backed by a temporary file."""
        with tempfile.TemporaryDirectory() as temp_dir:
            yield RecordStore(Path(temp_dir) / "db.json")
    
    def test_load_missing_writes_seed(self, temp_store):
        """Test that a missing store is initialised with the sample dataset."""
        assert not temp_store.db_path.exists()
        
        records = temp_store.load()
        
        assert records == seed_catalog()
        assert temp_store.db_path.exists()
        on_disk = json.loads(temp_store.db_path.read_text())
        assert [item["title"] for item in on_disk] == [r.title for r in seed_catalog()]
    
    def test_save_and_load(self, temp_store):
        records = [
            GameRecord(id=10, title="Solar Blaze", console="NES", year=2019,
                       file_name="rom.bin", stored_name="10-rom.bin"),
            GameRecord(id=11, title="No Year", console="SNES"),
        ]
        
        temp_store.save(records)
        
        loaded = temp_store.load()
        assert loaded == records
        assert loaded[1].year is None
    
    def test_save_preserves_order(self, temp_store):
        records = [GameRecord(id=i, title=f"Game {i}") for i in (5, 3, 9, 1)]
        temp_store.save(records)
        assert [r.id for r in temp_store.load()] == [5, 3, 9, 1]
    
    def test_serialized_layout(self, temp_store):
        """Test the on-disk document format."""
        temp_store.save([GameRecord(id=1, title="A", download_url="http://x")])
        
        text = temp_store.db_path.read_text()
        assert text.startswith("[\n  {")
        item = json.loads(text)[0]
        assert item["downloadUrl"] == "http://x"
        assert item["fileName"] is None
        assert item["storedName"] is None
    
    def test_corrupted_store_is_masked_not_fixed(self, temp_store):
        """Test fail-soft loading of an unparsable store."""
        temp_store.db_path.write_text("{not json")
        
        records = temp_store.load()
        
        assert records == seed_catalog()
        assert temp_store.db_path.read_text() == "{not json"
    
    def test_wrong_shape_is_masked(self, temp_store):
        temp_store.db_path.write_text(json.dumps({"games": []}))
        assert temp_store.load() == seed_catalog()
        assert json.loads(temp_store.db_path.read_text()) == {"games": []}
    
    def test_empty_catalog(self, temp_store):
        temp_store.save([])
        assert temp_store.load() == []
    
    def test_save_failure(self, temp_store, monkeypatch):
        def failing_write(self, *args, **kwargs):
            raise OSError("disk full")
        
        monkeypatch.setattr(Path, "write_text", failing_write)
        
        with pytest.raises(IOFailureError):
            temp_store.save(seed_catalog())


def test_dump_catalog_matches_save():
    records = seed_catalog()
    assert json.loads(dump_catalog(records)) == [r.to_json_dict() for r in records]

"""Data models for the catalog module."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class GameRecord(BaseModel):
    """One catalog entry: game metadata plus an optional ROM reference."""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    title: str = ""
    console: str = ""
    year: Optional[int] = None
    developer: str = ""
    description: str = ""
    download_url: str = Field(default="", alias="downloadUrl")

    # Attachment (both set or both None)
    file_name: Optional[str] = Field(default=None, alias="fileName")
    stored_name: Optional[str] = Field(default=None, alias="storedName")

    @property
    def has_attachment(self) -> bool:
        return self.stored_name is not None

    def to_json_dict(self) -> Dict[str, Any]:
        """Serialize with the camelCase keys used on disk and over the wire."""
        return self.model_dump(by_alias=True)


class CatalogFilter(BaseModel):
    """Filters for listing catalog records."""
    # Free text over title, developer and description
    query: Optional[str] = None

    # Exact console match
    console: Optional[str] = None

    # Inclusive year range
    min_year: Optional[float] = None
    max_year: Optional[float] = None


class StagedAttachment(BaseModel):
    """An uploaded ROM already written to the content directory."""
    file_name: str
    stored_name: str
    size: int = 0


class ImportResult(BaseModel):
    """Result of a catalog import."""
    ok: bool = True
    count: int


class OperationResult(BaseModel):
    """Generic acknowledgement for mutating operations."""
    ok: bool = True


_SEED_RECORDS: List[Dict[str, Any]] = [
    {"id": 1, "title": "Solar Blaze", "console": "NES", "year": 2019, "developer": "RetroDev",
     "description": "Side-scrolling shooter homebrew.", "downloadUrl": ""},
    {"id": 2, "title": "Pixel Quest", "console": "Game Boy", "year": 2021, "developer": "IndieTeam",
     "description": "An RPG made for old hardware.", "downloadUrl": ""},
    {"id": 3, "title": "Mega Kart Homebrew", "console": "Genesis", "year": 2018, "developer": "KartLab",
     "description": "Arcade racing on classic console.", "downloadUrl": ""},
    {"id": 4, "title": "StarForth", "console": "NES", "year": 2023, "developer": "NewWave",
     "description": "Platformer in the style of classic 8-bit.", "downloadUrl": ""},
]


def seed_catalog() -> List[GameRecord]:
    """Return a fresh copy of the sample dataset."""
    return [GameRecord.model_validate(item) for item in _SEED_RECORDS]

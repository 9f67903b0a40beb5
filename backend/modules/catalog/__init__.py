"""Catalog module - game entries and their ROM files.

This module provides:
- JSON file persistence for the whole catalog
- File system storage for uploaded ROMs
- A manager that keeps the two consistent across create, delete,
  import, export and reset
"""

from .attachment_store import AttachmentStore
from .catalog_manager import CatalogManager, CatalogView, IdGenerator
from .models import (
    CatalogFilter,
    GameRecord,
    ImportResult,
    OperationResult,
    StagedAttachment,
    seed_catalog,
)
from .record_store import RecordStore

__all__ = [
    "AttachmentStore",
    "CatalogFilter",
    "CatalogManager",
    "CatalogView",
    "GameRecord",
    "IdGenerator",
    "ImportResult",
    "OperationResult",
    "RecordStore",
    "StagedAttachment",
    "seed_catalog",
]

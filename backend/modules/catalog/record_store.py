"""JSON file persistence for the whole catalog."""

import json
import threading
from pathlib import Path
from typing import List

from loguru import logger
from pydantic import TypeAdapter, ValidationError

from backend.shared.exceptions import IOFailureError
from .models import GameRecord, seed_catalog

_CATALOG_ADAPTER = TypeAdapter(List[GameRecord])


def dump_catalog(records: List[GameRecord]) -> str:
    """Serialize a catalog the way it is written to disk."""
    return json.dumps([record.to_json_dict() for record in records], indent=2)


class RecordStore:
    """Reads and overwrites the catalog document as a single unit.

    There are no incremental writes: every save replaces the file with the
    full catalog. A missing file is initialised with the sample dataset; an
    unreadable one is masked by the sample dataset for that read only and is
    left on disk for an operator to inspect.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()

    def load(self) -> List[GameRecord]:
        with self._lock:
            if not self.db_path.exists():
                logger.info(f"No catalog at {self.db_path}, writing sample dataset")
                try:
                    self.save(seed_catalog())
                except IOFailureError:
                    logger.warning("Serving sample dataset without persisting it")
                return seed_catalog()

            try:
                raw = self.db_path.read_text(encoding="utf-8")
                return _CATALOG_ADAPTER.validate_python(json.loads(raw))
            except (OSError, UnicodeDecodeError, ValueError, ValidationError) as e:
                logger.warning(f"Catalog at {self.db_path} is unreadable, serving sample dataset: {e}")
                return seed_catalog()

    def save(self, records: List[GameRecord]) -> None:
        payload = dump_catalog(records)
        with self._lock:
            try:
                self.db_path.write_text(payload, encoding="utf-8")
            except OSError as e:
                logger.error(f"Failed to write catalog to {self.db_path}: {e}")
                raise IOFailureError(f"Failed to write catalog: {e}", {"path": str(self.db_path)})
        logger.debug(f"Saved {len(records)} record(s) to {self.db_path}")

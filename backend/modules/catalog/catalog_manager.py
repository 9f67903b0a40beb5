"""Catalog manager that keeps records and their ROM files consistent."""

import math
import threading
import time
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, BinaryIO, Iterator, List, Optional, Tuple

from loguru import logger

from backend.api.config import get_settings
from backend.shared.exceptions import (
    IOFailureError,
    InvalidPayloadError,
    InvalidYearError,
    MissingAttachmentError,
    MissingFieldError,
    NotFoundError,
)
from .attachment_store import DEFAULT_MAX_UPLOAD_SIZE, AttachmentStore
from .models import CatalogFilter, GameRecord, StagedAttachment, seed_catalog
from .record_store import RecordStore, dump_catalog

REQUIRED_FIELDS = ("title", "console", "year")
TEXT_FIELDS = ("title", "console", "developer", "description", "download_url")


class IdGenerator:
    """Hands out clock-derived record ids.

    Ids are epoch milliseconds. Two calls within the same millisecond would
    collide on the raw clock, so the generator never returns a value at or
    below the last one it issued. This only holds inside one process.
    """

    def __init__(self, clock=time.time_ns):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        return self._clock() // 1_000_000

    def next_id(self) -> int:
        return self.reserve(1)

    def reserve(self, count: int) -> int:
        """Reserve ``count`` consecutive ids and return the first one."""
        with self._lock:
            base = max(self.now(), self._last + 1)
            self._last = base + max(count, 1) - 1
            return base


class CatalogView:
    """Restartable, lazily filtered view over a loaded catalog."""

    def __init__(self, records: List[GameRecord], criteria: CatalogFilter):
        self._records = records
        self._criteria = criteria
        self._query = (criteria.query or "").strip().lower()

    def __iter__(self) -> Iterator[GameRecord]:
        return (record for record in self._records if self._matches(record))

    def _matches(self, record: GameRecord) -> bool:
        criteria = self._criteria
        if self._query:
            haystack = f"{record.title} {record.developer or ''} {record.description or ''}".lower()
            if self._query not in haystack:
                return False
        if criteria.console and record.console != criteria.console:
            return False
        year = record.year or 0
        if criteria.min_year is not None and year < criteria.min_year:
            return False
        if criteria.max_year is not None and year > criteria.max_year:
            return False
        return True


def parse_year(value: Any) -> int:
    """Convert a submitted year into an integer.

    Raises:
        InvalidYearError: If the value is not a whole number
    """
    if isinstance(value, bool):
        raise InvalidYearError("year must be a number", {"year": value})
    if isinstance(value, int):
        return value
    try:
        number = float(str(value).strip())
    except ValueError:
        raise InvalidYearError("year must be a number", {"year": value})
    if not math.isfinite(number) or not number.is_integer():
        raise InvalidYearError("year must be a number", {"year": value})
    return int(number)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


def _field(fields: Mapping, name: str) -> Any:
    """Read a field by snake_case or camelCase key."""
    if name in fields:
        return fields[name]
    head, *rest = name.split("_")
    camel = head + "".join(part.title() for part in rest)
    return fields.get(camel)


def _coerce_id(value: Any) -> Optional[int]:
    if not value or isinstance(value, bool):
        return None
    try:
        number = parse_year(value)
    except InvalidYearError:
        return None
    return number or None


def _coerce_text(value: Any) -> str:
    return str(value) if value else ""


class CatalogManager:
    """Orchestrates the record store and the attachment store.

    Every operation runs a full load-modify-save cycle. Mutations are
    serialised by a single-writer lock; the lock only covers this process.
    """

    def __init__(
        self,
        record_store: Optional[RecordStore] = None,
        attachment_store: Optional[AttachmentStore] = None,
        id_generator: Optional[IdGenerator] = None,
    ):
        """Initialize catalog manager.

        Args:
            record_store: Catalog persistence (uses settings if not provided)
            attachment_store: ROM file storage (uses settings if not provided)
            id_generator: Source of record ids
        """
        if record_store is None or attachment_store is None:
            settings = get_settings()
            record_store = record_store or RecordStore(settings.db_path)
            attachment_store = attachment_store or AttachmentStore(
                settings.uploads_dir, settings.max_upload_size
            )
        self.records = record_store
        self.attachments = attachment_store
        self.ids = id_generator or IdGenerator()
        self._write_lock = threading.RLock()

        logger.info(
            f"Catalog manager initialized (store={self.records.db_path}, "
            f"uploads={self.attachments.uploads_dir})"
        )

    @classmethod
    def from_paths(cls, db_path: Path, uploads_dir: Path, max_upload_size: Optional[int] = None) -> "CatalogManager":
        attachments = AttachmentStore(uploads_dir, max_upload_size or DEFAULT_MAX_UPLOAD_SIZE)
        return cls(RecordStore(db_path), attachments)

    def list(self, criteria: Optional[CatalogFilter] = None) -> CatalogView:
        """List records matching the given filters."""
        return CatalogView(self.records.load(), criteria or CatalogFilter())

    def stage_attachment(self, original_name: str, source: BinaryIO) -> StagedAttachment:
        """Write an upload to the content directory ahead of validation."""
        stored_name = self.attachments.save(original_name, source)
        size = (self.attachments.uploads_dir / stored_name).stat().st_size
        return StagedAttachment(file_name=original_name, stored_name=stored_name, size=size)

    def create(self, fields: Mapping, attachment: Optional[StagedAttachment] = None) -> GameRecord:
        """Create a record for an uploaded ROM.

        A staged attachment is removed again when validation fails, so a
        rejected request never leaves a file behind.

        Args:
            fields: Submitted record fields (snake_case or camelCase keys)
            attachment: ROM already written by ``stage_attachment``

        Returns:
            The stored record
        """
        try:
            missing = [name for name in REQUIRED_FIELDS if _is_blank(_field(fields, name))]
            if missing:
                raise MissingFieldError("title, console and year are required", {"missing": missing})
            if attachment is None:
                raise MissingAttachmentError("ROM file is required")
            year = parse_year(_field(fields, "year"))
        except (MissingFieldError, MissingAttachmentError, InvalidYearError) as e:
            if attachment is not None:
                logger.info(f"Discarding staged attachment {attachment.stored_name}: {e.message}")
                self.attachments.remove(attachment.stored_name)
            raise

        with self._write_lock:
            catalog = self.records.load()
            record = GameRecord(
                id=self.ids.next_id(),
                year=year,
                file_name=attachment.file_name,
                stored_name=attachment.stored_name,
                **{name: _coerce_text(_field(fields, name)) for name in TEXT_FIELDS},
            )
            catalog.append(record)
            try:
                self.records.save(catalog)
            except IOFailureError:
                logger.error(f"Attachment {attachment.stored_name} is orphaned after a failed save")
                raise

        logger.info(f"Created record {record.id} ({record.title})")
        return record

    def delete(self, record_id: int) -> None:
        """Delete a record and its ROM file.

        The file goes first: a crash in between leaves an unreferenced file
        rather than a record pointing at nothing.
        """
        with self._write_lock:
            catalog = self.records.load()
            record = self._find(catalog, record_id)
            if record is None:
                raise NotFoundError("Not found", {"id": record_id})

            if record.stored_name:
                self.attachments.remove(record.stored_name)

            self.records.save([item for item in catalog if item.id != record_id])

        logger.info(f"Deleted record {record_id}")

    def get_attachment(self, record_id: int) -> Tuple[BinaryIO, str]:
        """Open the ROM of a record.

        Returns:
            Binary stream and the original file name for download
        """
        record = self._find(self.records.load(), record_id)
        if record is None or not record.stored_name:
            raise NotFoundError("File not found", {"id": record_id})
        if not self.attachments.exists(record.stored_name):
            logger.warning(f"Record {record_id} references missing file {record.stored_name}")
            raise NotFoundError("File missing", {"id": record_id})
        stream = self.attachments.open(record.stored_name)
        return stream, record.file_name or record.stored_name

    def export(self) -> List[GameRecord]:
        return self.records.load()

    def export_json(self) -> str:
        return dump_catalog(self.export())

    def import_records(self, items: Any) -> int:
        """Replace the catalog with imported records.

        Files are never imported: every record comes in without an
        attachment, and existing files in the content directory are kept.

        Returns:
            Number of records imported
        """
        if isinstance(items, (str, bytes, Mapping)) or not isinstance(items, Sequence):
            raise InvalidPayloadError("Invalid payload")
        if not all(isinstance(item, Mapping) for item in items):
            raise InvalidPayloadError("Invalid payload", {"reason": "items must be objects"})

        with self._write_lock:
            base = self.ids.reserve(len(items))
            used = set()
            catalog = []
            for position, item in enumerate(items):
                record_id = _coerce_id(item.get("id"))
                if record_id is None or record_id in used:
                    record_id = base + position
                    while record_id in used:
                        record_id += len(items)
                used.add(record_id)

                try:
                    year = parse_year(item.get("year")) if item.get("year") else None
                except InvalidYearError:
                    year = None

                catalog.append(GameRecord(
                    id=record_id,
                    year=year,
                    file_name=None,
                    stored_name=None,
                    **{name: _coerce_text(_field(item, name)) for name in TEXT_FIELDS},
                ))

            self.records.save(catalog)

        logger.info(f"Imported {len(catalog)} record(s)")
        return len(catalog)

    def reset(self) -> None:
        """Empty the content directory and restore the sample dataset."""
        with self._write_lock:
            clear_error = None
            try:
                self.attachments.clear()
            except IOFailureError as e:
                clear_error = e
            self.records.save(seed_catalog())

        if clear_error is not None:
            raise clear_error
        logger.info("Catalog reset to sample dataset")

    @staticmethod
    def _find(catalog: List[GameRecord], record_id: int) -> Optional[GameRecord]:
        return next((record for record in catalog if record.id == record_id), None)

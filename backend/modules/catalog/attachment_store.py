"""File system storage for uploaded ROM files."""

import re
import time
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional, Tuple

from loguru import logger

from backend.shared.exceptions import IOFailureError, NotFoundError, PayloadTooLargeError

DEFAULT_MAX_UPLOAD_SIZE = 200 * 1024 * 1024
CHUNK_SIZE = 1024 * 1024

_WHITESPACE = re.compile(r"\s+")


def sanitize_filename(original_name: str) -> str:
    """Drop any directory part and collapse whitespace runs into underscores."""
    name = re.split(r"[\\/]", original_name or "")[-1]
    name = _WHITESPACE.sub("_", name)
    if name in ("", ".", ".."):
        name = "upload"
    return name


class AttachmentStore:
    """Owns the content directory where ROM files are kept."""

    def __init__(self, uploads_dir: Path, max_upload_size: int = DEFAULT_MAX_UPLOAD_SIZE):
        """Initialize attachment store.

        Args:
            uploads_dir: Content directory for attachment files
            max_upload_size: Largest accepted upload in bytes
        """
        self.uploads_dir = Path(uploads_dir)
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        self.max_upload_size = max_upload_size

    def save(self, original_name: str, source: BinaryIO) -> str:
        """Store an uploaded file under a unique, sanitized name.

        Args:
            original_name: File name supplied by the uploader
            source: Readable binary stream with the file content

        Returns:
            Storage name of the written file
        """
        stored_name, out = self._reserve_name(original_name)
        dest_path = self.uploads_dir / stored_name
        part_path = self._part_path(stored_name)

        written = 0
        try:
            with out:
                while True:
                    chunk = source.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_upload_size:
                        raise PayloadTooLargeError(
                            f"Upload exceeds {self.max_upload_size} bytes",
                            {"file_name": original_name, "limit": self.max_upload_size},
                        )
                    out.write(chunk)
            part_path.replace(dest_path)
        except PayloadTooLargeError:
            self._discard(part_path)
            logger.warning(f"Rejected oversized upload: {original_name}")
            raise
        except OSError as e:
            self._discard(part_path)
            logger.error(f"Failed to store attachment {original_name}: {e}")
            raise IOFailureError(f"Failed to store attachment: {e}", {"file_name": original_name})

        logger.info(f"Stored attachment {stored_name} ({written} bytes)")
        return stored_name

    def remove(self, stored_name: str) -> None:
        """Delete an attachment; a missing file is not an error."""
        path = self._resolve(stored_name)
        if path is None:
            logger.warning(f"Ignoring removal of invalid attachment name: {stored_name!r}")
            return

        try:
            path.unlink()
            logger.info(f"Removed attachment {stored_name}")
        except FileNotFoundError:
            logger.debug(f"Attachment already absent: {stored_name}")
        except OSError as e:
            logger.error(f"Failed to remove attachment {stored_name}: {e}")
            raise IOFailureError(f"Failed to remove attachment: {e}", {"stored_name": stored_name})

    def exists(self, stored_name: str) -> bool:
        path = self._resolve(stored_name)
        return path is not None and path.is_file()

    def open(self, stored_name: str) -> BinaryIO:
        """Open an attachment for reading.

        Raises:
            NotFoundError: If no such file exists
        """
        path = self._resolve(stored_name)
        if path is None or not path.is_file():
            raise NotFoundError("File missing", {"stored_name": stored_name})
        try:
            return open(path, "rb")
        except FileNotFoundError:
            raise NotFoundError("File missing", {"stored_name": stored_name})
        except OSError as e:
            raise IOFailureError(f"Failed to open attachment: {e}", {"stored_name": stored_name})

    def list_files(self) -> List[str]:
        return sorted(p.name for p in self.uploads_dir.iterdir() if p.is_file())

    def clear(self) -> None:
        """Remove every file in the content directory.

        Every file is attempted; failures are collected and reported together.
        """
        failures: Dict[str, str] = {}
        removed = 0
        for path in self.uploads_dir.iterdir():
            if path.is_dir():
                continue
            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                pass
            except OSError as e:
                failures[path.name] = str(e)

        logger.info(f"Cleared {removed} attachment(s) from {self.uploads_dir}")
        if failures:
            logger.error(f"Failed to remove {len(failures)} attachment(s): {list(failures)}")
            raise IOFailureError(
                f"Failed to remove {len(failures)} attachment(s)",
                {"failures": failures},
            )

    def _part_path(self, stored_name: str) -> Path:
        return self.uploads_dir / f".{stored_name}.part"

    def _reserve_name(self, original_name: str) -> Tuple[str, BinaryIO]:
        """Claim a free storage name and open its partial file.

        The partial file is created exclusively, so concurrent uploads of the
        same name in the same millisecond never share it. The final name is
        checked only after the claim: whoever held the partial before us has
        already renamed it into place.
        """
        safe_name = sanitize_filename(original_name)
        stamp = time.time_ns() // 1_000_000
        while True:
            candidate = f"{stamp}-{safe_name}"
            part_path = self._part_path(candidate)
            try:
                out = open(part_path, "xb")
            except FileExistsError:
                stamp += 1
                continue
            except OSError as e:
                logger.error(f"Failed to create attachment {candidate}: {e}")
                raise IOFailureError(f"Failed to store attachment: {e}", {"file_name": original_name})

            if (self.uploads_dir / candidate).exists():
                out.close()
                self._discard(part_path)
                stamp += 1
                continue
            return candidate, out

    def _resolve(self, stored_name: Optional[str]) -> Optional[Path]:
        """Map a storage name to its path, or None if it cannot live here."""
        if not stored_name or stored_name in (".", ".."):
            return None
        if "/" in stored_name or "\\" in stored_name:
            return None
        return self.uploads_dir / stored_name

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to discard partial upload {path.name}: {e}")

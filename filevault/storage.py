from __future__ import annotations

import logging
import os
import time
import uuid
from pathlib import Path
from typing import List

from filevault.core.exceptions import FileNotFound, StorageError

logger = logging.getLogger("filevault.storage")

COMPRESSED_PREFIX = "compressed_"
DEFAULT_EXTENSION = ".bin"
_TEMP_PREFIX = ".tmp-"
_MAX_NAME_ATTEMPTS = 5


def generate_stored_name(extension: str) -> str:
    """Return ``<unix millis>-<uuid4 hex><extension>``.

    The millisecond prefix keeps names sortable by creation time, the UUID
    keeps concurrent calls from colliding.
    """
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex}{extension or DEFAULT_EXTENSION}"


def _write_synced(path: Path, data: bytes, mode: str) -> None:
    with open(path, mode) as f:
        f.write(data)
        f.flush()
        os.fsync(f.fileno())


class LocalDirectoryStore:
    """Flat directory of stored files; the path of a file is root / name."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def resolve(self, name: str) -> Path:
        """Map a client-supplied name to a path directly inside the root.

        Anything that canonicalizes outside the root (or into a
        subdirectory) is reported as not found.
        """
        if not name or name.startswith(_TEMP_PREFIX):
            raise FileNotFound()
        try:
            path = (self.root / name).resolve()
            path.relative_to(self.root)
        except (ValueError, RuntimeError, OSError):
            logger.warning("event=path_rejected name=%r", name)
            raise FileNotFound()
        if path.parent != self.root:
            logger.warning("event=path_rejected name=%r", name)
            raise FileNotFound()
        return path

    def exists(self, name: str) -> bool:
        try:
            return self.resolve(name).is_file()
        except FileNotFound:
            return False

    def list_names(self) -> List[str]:
        try:
            with os.scandir(self.root) as entries:
                return [
                    entry.name
                    for entry in entries
                    if entry.is_file() and not entry.name.startswith(".")
                ]
        except OSError as exc:
            logger.error("event=list_failure root=%s error=%s", self.root, exc)
            raise StorageError("Failed to list files") from exc

    def save_new(self, extension: str, data: bytes) -> str:
        """Write ``data`` under a freshly generated name and return that name."""
        for _ in range(_MAX_NAME_ATTEMPTS):
            stored_name = generate_stored_name(extension)
            try:
                _write_synced(self.root / stored_name, data, "xb")
            except FileExistsError:
                continue
            except OSError as exc:
                logger.error("event=write_failure stored_name=%s error=%s", stored_name, exc)
                raise StorageError("Failed to save file") from exc
            return stored_name
        raise StorageError("Unable to allocate a unique file name")

    def replace(self, name: str, data: bytes) -> Path:
        """Atomically publish ``data`` under ``name`` via a synced temp file."""
        target = self.resolve(name)
        temp = self.root / f"{_TEMP_PREFIX}{uuid.uuid4().hex}"
        try:
            _write_synced(temp, data, "wb")
            os.replace(temp, target)
        except OSError as exc:
            temp.unlink(missing_ok=True)
            logger.error("event=write_failure stored_name=%s error=%s", name, exc)
            raise StorageError("Failed to save file") from exc
        return target

    def remove(self, name: str) -> None:
        path = self.resolve(name)
        try:
            path.unlink()
        except OSError as exc:
            raise StorageError("Failed to delete file") from exc

    def discard(self, name: str) -> None:
        """Best-effort removal used when unwinding a failed upload."""
        try:
            self.resolve(name).unlink(missing_ok=True)
        except (FileNotFound, OSError) as exc:
            logger.warning("event=discard_failure stored_name=%s error=%s", name, exc)

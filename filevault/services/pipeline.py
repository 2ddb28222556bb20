from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from filevault.config import Settings
from filevault.core.exceptions import ProcessingError, StorageError, UnsupportedFileType, utc_timestamp
from filevault.core.metrics import MetricsStore
from filevault.services.compression import compress_pdf
from filevault.storage import COMPRESSED_PREFIX, LocalDirectoryStore
from filevault.validation import file_extension, is_allowed

logger = logging.getLogger("filevault")

PDF_EXTENSION = ".pdf"


@dataclass
class UploadResult:
    filename: str
    size: int
    compressed: bool = False
    date: str = field(default_factory=utc_timestamp)

    def as_response(self) -> dict:
        return {"status": True, "filename": self.filename, "date": self.date, "size": self.size}


class UploadPipeline:
    """Validate, persist and optionally compress a single uploaded file."""

    def __init__(self, settings: Settings, store: LocalDirectoryStore, metrics: MetricsStore) -> None:
        self.settings = settings
        self.store = store
        self.metrics = metrics

    def should_compress(self, extension: str) -> bool:
        return self.settings.compress_pdf and extension == PDF_EXTENSION

    async def handle(self, original_name: str, data: bytes) -> UploadResult:
        if not is_allowed(original_name, self.settings.allowed_extensions):
            self.metrics.record_rejection()
            logger.warning("event=upload_rejected reason=unsupported_type filename=%s", original_name)
            raise UnsupportedFileType()

        extension = file_extension(original_name)
        stored_name = await asyncio.to_thread(self.store.save_new, extension, data)
        logger.info("event=upload_persisted stored_name=%s size_bytes=%s", stored_name, len(data))

        result = UploadResult(filename=stored_name, size=len(data))
        if self.should_compress(extension):
            result = await asyncio.to_thread(self._compress, stored_name, data)

        self.metrics.record_upload(result.size)
        logger.info(
            "event=upload_success filename=%s original_name=%s size_bytes=%s compressed=%s",
            result.filename,
            original_name,
            result.size,
            result.compressed,
        )
        return result

    def _compress(self, stored_name: str, data: bytes) -> UploadResult:
        target = f"{COMPRESSED_PREFIX}{stored_name}"
        try:
            compressed = compress_pdf(data)
            self.store.replace(target, compressed)
        except ProcessingError:
            self.store.discard(stored_name)
            raise
        except Exception:
            self.store.discard(stored_name)
            self.store.discard(target)
            raise

        try:
            self.store.remove(stored_name)
        except StorageError as exc:
            logger.error("event=compress_failure stage=remove_original source=%s error=%s", stored_name, exc)
            self.store.discard(target)
            self.store.discard(stored_name)
            raise StorageError("Failed to save file") from exc

        self.metrics.record_compression()
        logger.info(
            "event=compress_success source=%s target=%s size_before=%s size_after=%s",
            stored_name,
            target,
            len(data),
            len(compressed),
        )
        return UploadResult(filename=target, size=len(compressed), compressed=True)

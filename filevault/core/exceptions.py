from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("filevault")


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class FileVaultError(Exception):
    """Base error surfaced to clients as a structured payload."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message or self.message)
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code


class UnsupportedFileType(FileVaultError):
    # Existing clients depend on 404 here rather than 400.
    status_code = 404
    message = "Unsupported file type"


class FileNotFound(FileVaultError):
    status_code = 404
    message = "File not found"


class StorageError(FileVaultError):
    status_code = 500
    message = "Storage operation failed"


class ProcessingError(FileVaultError):
    status_code = 500
    message = "Failed to process PDF"


def error_payload(message: str) -> dict:
    return {"status": False, "message": message, "date": utc_timestamp()}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(FileVaultError)
    async def filevault_error_handler(request: Request, exc: FileVaultError):
        return JSONResponse(error_payload(exc.message), status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        detail = exc.detail if exc.detail else "Request failed"
        if exc.status_code >= 500:
            logger.error("event=http_error path=%s status=%s detail=%s", request.url.path, exc.status_code, detail)
        return JSONResponse(
            error_payload(str(detail)),
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

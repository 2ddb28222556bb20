from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse, JSONResponse

from filevault.config import Settings
from filevault.core.exceptions import (
    FileNotFound,
    StorageError,
    UnsupportedFileType,
    utc_timestamp,
)
from filevault.core.metrics import MetricsStore
from filevault.services.pipeline import UploadPipeline
from filevault.storage import LocalDirectoryStore

router = APIRouter()

logger = logging.getLogger("filevault")

PDF_MEDIA_TYPE = "application/pdf"


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> LocalDirectoryStore:
    return request.app.state.store


def get_pipeline(request: Request) -> UploadPipeline:
    return request.app.state.pipeline


def get_metrics(request: Request) -> MetricsStore:
    return request.app.state.metrics


async def enforce_rate_limit(request: Request):
    client = request.client.host if request.client else "unknown"
    allowed, retry_after = request.app.state.rate_limiter.hit(client)
    if not allowed:
        logger.warning("event=rate_limited client=%s retry_after=%s", client, retry_after)
        raise HTTPException(
            status_code=429,
            detail=f"Rate limit exceeded. Try again in {retry_after} seconds.",
            headers={"Retry-After": str(retry_after)},
        )


@router.post("/upload", dependencies=[Depends(enforce_rate_limit)])
async def upload(
    file: Optional[UploadFile] = File(None),
    settings: Settings = Depends(get_settings),
    pipeline: UploadPipeline = Depends(get_pipeline),
    metrics: MetricsStore = Depends(get_metrics),
):
    if file is None or not file.filename:
        metrics.record_rejection()
        logger.warning("event=upload_rejected reason=missing_file")
        raise UnsupportedFileType("No file uploaded")

    data = await file.read()
    size_bytes = len(data)
    if size_bytes > settings.max_file_size:
        metrics.record_rejection()
        logger.warning(
            "event=upload_rejected reason=max_size filename=%s size_bytes=%s limit_bytes=%s",
            file.filename,
            size_bytes,
            settings.max_file_size,
        )
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum allowed size is {settings.max_file_size / (1024 * 1024):.1f} MB.",
        )

    result = await pipeline.handle(file.filename, data)
    return result.as_response()


@router.get("/download/{filename}")
def download(
    filename: str,
    store: LocalDirectoryStore = Depends(get_store),
    metrics: MetricsStore = Depends(get_metrics),
):
    path = store.resolve(filename)
    if not path.is_file():
        logger.warning("event=download_missing filename=%s", filename)
        raise FileNotFound()

    metrics.record_download()
    logger.info("event=file_served filename=%s path=%s", filename, path)
    return FileResponse(path, filename=filename)


@router.get("/files")
async def list_files(store: LocalDirectoryStore = Depends(get_store)):
    return await asyncio.to_thread(store.list_names)


@router.delete("/delete/{filename}")
async def delete_file(
    filename: str,
    store: LocalDirectoryStore = Depends(get_store),
    metrics: MetricsStore = Depends(get_metrics),
):
    try:
        await asyncio.to_thread(store.remove, filename)
    except (FileNotFound, StorageError) as exc:
        logger.error("event=delete_failure filename=%s error=%s", filename, exc)
        raise StorageError("Failed to delete file") from exc

    metrics.record_deletion()
    logger.info("event=file_deleted filename=%s", filename)
    return {"message": "File deleted successfully", "status": True, "date": utc_timestamp()}


@router.get("/view/{filename}")
def view(
    filename: str,
    store: LocalDirectoryStore = Depends(get_store),
    metrics: MetricsStore = Depends(get_metrics),
):
    if not store.exists(filename):
        logger.warning("event=view_missing filename=%s", filename)
        raise FileNotFound()

    path = store.resolve(filename)
    metrics.record_view()
    logger.info("event=file_viewed filename=%s path=%s", filename, path)
    return FileResponse(
        path,
        media_type=PDF_MEDIA_TYPE,
        filename=filename,
        content_disposition_type="inline",
    )


@router.get("/metrics", dependencies=[Depends(enforce_rate_limit)])
def metrics_snapshot(metrics: MetricsStore = Depends(get_metrics)):
    response = JSONResponse(metrics.snapshot())
    response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
    return response


@router.get("/health")
async def health(store: LocalDirectoryStore = Depends(get_store)):
    names = await asyncio.to_thread(store.list_names)
    return {"status": True, "upload_dir": str(store.root), "files": len(names)}

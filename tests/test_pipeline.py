import asyncio

import fitz
import pytest

from filevault.config import Settings
from filevault.core.exceptions import ProcessingError, StorageError, UnsupportedFileType
from filevault.core.metrics import MetricsStore
from filevault.services.compression import compress_pdf
from filevault.services.pipeline import UploadPipeline
from filevault.storage import LocalDirectoryStore


def _make_pdf(pages: int = 2) -> bytes:
    doc = fitz.open()
    for number in range(pages):
        doc.new_page().insert_text((72, 72), f"page {number}")
    data = doc.tobytes(use_objstms=1)
    doc.close()
    return data


def _pipeline(tmp_path, **overrides):
    settings = Settings(upload_dir=tmp_path / "uploads", **overrides)
    store = LocalDirectoryStore(settings.upload_dir)
    store.ensure_root()
    return UploadPipeline(settings, store, MetricsStore())


def test_compress_pdf_disables_object_streams():
    output = compress_pdf(_make_pdf())
    assert b"/ObjStm" not in output
    with fitz.open(stream=output, filetype="pdf") as doc:
        assert doc.page_count == 2


def test_compress_pdf_rejects_garbage():
    with pytest.raises(ProcessingError):
        compress_pdf(b"definitely not a pdf")


def test_pipeline_replaces_original_with_compressed(tmp_path):
    pipeline = _pipeline(tmp_path)
    result = asyncio.run(pipeline.handle("scan.pdf", _make_pdf()))

    assert result.compressed is True
    assert result.filename.startswith("compressed_")
    original = result.filename[len("compressed_"):]
    assert pipeline.store.list_names() == [result.filename]
    assert not pipeline.store.exists(original)
    assert pipeline.metrics.snapshot()["compressed"] == 1


def test_pipeline_rejects_before_writing(tmp_path):
    pipeline = _pipeline(tmp_path)
    with pytest.raises(UnsupportedFileType):
        asyncio.run(pipeline.handle("notes.txt", b"hello"))
    assert pipeline.store.list_names() == []
    assert pipeline.metrics.snapshot()["rejected"] == 1


def test_pipeline_cleans_up_when_publish_fails(tmp_path, monkeypatch):
    pipeline = _pipeline(tmp_path)

    def _fail(name, data):
        raise StorageError("Failed to save file")

    monkeypatch.setattr(pipeline.store, "replace", _fail)
    with pytest.raises(StorageError):
        asyncio.run(pipeline.handle("scan.pdf", _make_pdf()))
    assert pipeline.store.list_names() == []


def test_pipeline_cleans_up_when_original_cannot_be_removed(tmp_path, monkeypatch):
    pipeline = _pipeline(tmp_path)

    def _fail(name):
        raise StorageError("Failed to delete file")

    monkeypatch.setattr(pipeline.store, "remove", _fail)
    with pytest.raises(StorageError) as excinfo:
        asyncio.run(pipeline.handle("scan.pdf", _make_pdf()))
    assert excinfo.value.message == "Failed to save file"
    assert pipeline.store.list_names() == []
    assert pipeline.metrics.snapshot()["compressed"] == 0


def test_pipeline_without_compression(tmp_path):
    pipeline = _pipeline(tmp_path, compress_pdf=False)
    data = _make_pdf()
    result = asyncio.run(pipeline.handle("scan.pdf", data))

    assert result.compressed is False
    assert result.size == len(data)
    assert (pipeline.store.root / result.filename).read_bytes() == data


def test_upload_result_response_shape(tmp_path):
    pipeline = _pipeline(tmp_path, allowed_extensions=frozenset())
    response = asyncio.run(pipeline.handle("a.txt", b"0123456789")).as_response()
    assert set(response) == {"status", "filename", "date", "size"}
    assert response["status"] is True
    assert response["size"] == 10

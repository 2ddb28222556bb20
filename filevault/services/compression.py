from __future__ import annotations

import logging

import fitz  # PyMuPDF

from filevault.core.exceptions import ProcessingError

logger = logging.getLogger("filevault")


def compress_pdf(data: bytes) -> bytes:
    """Re-serialize a PDF with object streams disabled.

    Unused objects are dropped and streams deflated; page content is left
    as MuPDF parsed it.
    """
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            return doc.tobytes(garbage=3, deflate=True, use_objstms=0)
    except Exception as exc:
        logger.warning("event=compress_failure size_bytes=%s error=%s", len(data), exc)
        raise ProcessingError() from exc

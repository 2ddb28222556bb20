from __future__ import annotations

import os
from typing import Iterable


def file_extension(filename: str | None) -> str:
    """Lower-cased extension of ``filename`` including the dot, or ``""``."""
    if not filename:
        return ""
    return os.path.splitext(filename)[1].lower()


def is_allowed(filename: str | None, allowed_extensions: Iterable[str]) -> bool:
    allowed = {ext.lower() for ext in allowed_extensions}
    if not allowed:
        return True
    return file_extension(filename) in allowed

from __future__ import annotations

import threading
from typing import Dict


class MetricsStore:
    """Thread-safe in-memory metrics."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = {
            "uploads": 0,
            "rejected": 0,
            "compressed": 0,
            "downloads": 0,
            "views": 0,
            "deleted": 0,
            "bytes_uploaded": 0,
        }

    def record_upload(self, size_bytes: int) -> None:
        with self._lock:
            self._counters["uploads"] += 1
            self._counters["bytes_uploaded"] += size_bytes

    def record_rejection(self) -> None:
        self._increment("rejected")

    def record_compression(self) -> None:
        self._increment("compressed")

    def record_download(self) -> None:
        self._increment("downloads")

    def record_view(self) -> None:
        self._increment("views")

    def record_deletion(self) -> None:
        self._increment("deleted")

    def _increment(self, key: str) -> None:
        with self._lock:
            self._counters[key] += 1

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counters)

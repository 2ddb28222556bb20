from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

DEFAULT_UPLOAD_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "uploads"))
_TRUTHY = {"true", "1", "yes"}


def _parse_extensions(raw: str) -> frozenset[str]:
    extensions = set()
    for item in raw.split(","):
        item = item.strip().lower()
        if not item:
            continue
        extensions.add(item if item.startswith(".") else f".{item}")
    return frozenset(extensions)


@dataclass(frozen=True)
class Settings:
    upload_dir: Path
    allowed_extensions: frozenset[str] = frozenset({".pdf"})
    compress_pdf: bool = True
    host: str = "0.0.0.0"
    port: int = 5000
    max_file_size: int = 10 * 1024 * 1024
    rate_limit_per_minute: int = 60
    redis_url: str = ""
    cors_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"

    @property
    def restricted(self) -> bool:
        return bool(self.allowed_extensions)


def load_settings() -> Settings:
    """Build settings from the environment (and a local .env, if any)."""
    return Settings(
        upload_dir=Path(os.getenv("UPLOAD_DIR", DEFAULT_UPLOAD_DIR)).resolve(),
        allowed_extensions=_parse_extensions(os.getenv("ALLOWED_EXTENSIONS", ".pdf")),
        compress_pdf=os.getenv("COMPRESS_PDF", "true").lower() in _TRUTHY,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "5000")),
        max_file_size=int(os.getenv("MAX_FILE_SIZE_BYTES", str(10 * 1024 * 1024))),
        rate_limit_per_minute=int(os.getenv("RATE_LIMIT_PER_MINUTE", "60")),
        redis_url=os.getenv("REDIS_URL", ""),
        cors_origins=tuple(
            origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )

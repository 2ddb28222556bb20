import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from filevault.api.routes import router
from filevault.config import Settings, load_settings
from filevault.core.exceptions import register_exception_handlers
from filevault.core.metrics import MetricsStore
from filevault.core.rate_limit import RateLimiter
from filevault.services.pipeline import UploadPipeline
from filevault.storage import LocalDirectoryStore

logger = logging.getLogger("filevault")


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(level=settings.log_level)

    store = LocalDirectoryStore(settings.upload_dir)
    store.ensure_root()
    metrics = MetricsStore()

    app = FastAPI(title="FileVault PDF API", version="4.0.0")
    app.state.settings = settings
    app.state.store = store
    app.state.metrics = metrics
    app.state.pipeline = UploadPipeline(settings, store, metrics)
    app.state.rate_limiter = RateLimiter(settings.rate_limit_per_minute, redis_url=settings.redis_url)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    register_exception_handlers(app)

    logger.info(
        "event=app_configured upload_dir=%s allowed_extensions=%s compress_pdf=%s rate_limit_backend=%s",
        store.root,
        ",".join(sorted(settings.allowed_extensions)) if settings.restricted else "*",
        settings.compress_pdf,
        "redis" if app.state.rate_limiter.use_redis else "memory",
    )
    return app


def run() -> None:
    import uvicorn

    settings = load_settings()
    logger.info("event=server_start host=%s port=%s", settings.host, settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.api.v1 import get_api_router
from app.core.config import get_settings
from app.core.db import create_engine, create_session_factory
from app.core.errors import BadRequestError, ServiceError
from app.core.logging import configure_logging, get_logger
from app.core.storage import get_object_store
from app.ingest.thumbnails import MemoryThumbnailStore, get_thumbnail_store


async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    logger = get_logger(component="api")
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "request_failed",
        method=request.method,
        path=request.url.path,
        status_code=exc.status_code,
        error=exc.code,
        detail=exc.detail,
    )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.code})


# multipart fields whose malformed value means "no usable file"
FILE_FIELD_CODES = {
    "video": "video_file_missing",
    "thumbnail": "thumbnail_file_missing",
}


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    code = "invalid_request"
    for error in exc.errors():
        loc = tuple(error.get("loc") or ())
        if len(loc) >= 2 and loc[0] == "body" and loc[1] in FILE_FIELD_CODES:
            code = FILE_FIELD_CODES[loc[1]]
            break
    fields = [".".join(str(part) for part in error.get("loc") or ()) for error in exc.errors()]
    return await handle_service_error(request, BadRequestError(code, detail=", ".join(fields) or None))


def create_app() -> FastAPI:
    settings = get_settings()
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)
    configure_logging(level=log_level, json_output=settings.log_format == "json")
    object_store = get_object_store(settings)
    thumbnail_store = get_thumbnail_store(settings)
    engine = create_engine(settings)
    session_factory = create_session_factory(engine)
    assets_root = Path(settings.assets_root)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        assets_root.mkdir(parents=True, exist_ok=True)
        Path(settings.staging_root).mkdir(parents=True, exist_ok=True)
        app.state.settings = settings
        app.state.object_store = object_store
        app.state.thumbnail_store = thumbnail_store
        app.state.engine = engine
        app.state.session_factory = session_factory
        try:
            yield
        finally:
            if isinstance(thumbnail_store, MemoryThumbnailStore):
                thumbnail_store.clear()
            await engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        lifespan=lifespan,
        openapi_url="/openapi.json",
        docs_url="/docs",
    )

    app.add_exception_handler(ServiceError, handle_service_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.include_router(get_api_router())
    app.mount("/assets", StaticFiles(directory=assets_root, check_dir=False), name="assets")
    return app


app = create_app()


__all__ = ["app", "create_app"]

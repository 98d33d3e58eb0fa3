from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.auth import AuthContext, get_auth_context
from app.core.config import Settings, get_settings
from app.core.storage import ObjectStore
from app.db.repository import VideoRepository
from app.ingest.thumbnails import ThumbnailStore
from app.services.ingest_service import VideoIngestService
from app.services.thumbnail_service import ThumbnailService


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    session_factory = request.app.state.session_factory
    if not isinstance(session_factory, async_sessionmaker):  # pragma: no cover - defensive
        raise RuntimeError("session_factory_not_configured")
    async with session_factory() as session:
        yield session


def get_object_store(request: Request) -> ObjectStore:
    store: ObjectStore = request.app.state.object_store
    return store


def get_thumbnail_store(request: Request) -> ThumbnailStore:
    store: ThumbnailStore = request.app.state.thumbnail_store
    return store


def get_app_settings() -> Settings:
    return get_settings()


def get_video_repository(session: AsyncSession = Depends(get_session)) -> VideoRepository:
    return VideoRepository(session)


def get_ingest_service(
    repository: VideoRepository = Depends(get_video_repository),
    store: ObjectStore = Depends(get_object_store),
    settings: Settings = Depends(get_app_settings),
) -> VideoIngestService:
    return VideoIngestService(settings, store, repository)


def get_thumbnail_service(
    repository: VideoRepository = Depends(get_video_repository),
    store: ThumbnailStore = Depends(get_thumbnail_store),
) -> ThumbnailService:
    return ThumbnailService(store, repository)


AuthDependency = Annotated[AuthContext, Depends(get_auth_context)]
RepositoryDependency = Annotated[VideoRepository, Depends(get_video_repository)]
IngestServiceDependency = Annotated[VideoIngestService, Depends(get_ingest_service)]
ThumbnailServiceDependency = Annotated[ThumbnailService, Depends(get_thumbnail_service)]


__all__ = [
    "get_session",
    "get_object_store",
    "get_thumbnail_store",
    "get_app_settings",
    "get_video_repository",
    "get_ingest_service",
    "get_thumbnail_service",
    "AuthDependency",
    "RepositoryDependency",
    "IngestServiceDependency",
    "ThumbnailServiceDependency",
]

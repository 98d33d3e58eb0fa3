from __future__ import annotations

import asyncio
from typing import Optional

from fastapi import UploadFile

from app.core.errors import BadRequestError, PayloadTooLargeError
from app.core.logging import get_logger
from app.db.models import Video
from app.db.repository import VideoRepository
from app.ingest.thumbnails import THUMBNAIL_EXTENSIONS, ThumbnailStore

from .ingest_service import load_owned_video

MAX_THUMBNAIL_UPLOAD_BYTES = 10 << 20


class ThumbnailService:
    def __init__(self, store: ThumbnailStore, repository: VideoRepository):
        self.store = store
        self.repository = repository
        self.logger = get_logger(component="thumbnail_service")

    async def upload_thumbnail(self, *, video_id: str, user_id: str, upload: Optional[UploadFile]) -> Video:
        video = await load_owned_video(self.repository, video_id, user_id)

        if upload is None:
            raise BadRequestError("thumbnail_file_missing")
        media_type = (upload.content_type or "").split(";", 1)[0].strip().lower()
        if media_type not in THUMBNAIL_EXTENSIONS:
            raise BadRequestError("unsupported_media_type", detail=media_type or None)
        if upload.size is not None and upload.size > MAX_THUMBNAIL_UPLOAD_BYTES:
            raise PayloadTooLargeError(detail=f"declared size {upload.size}")

        payload = await upload.read(MAX_THUMBNAIL_UPLOAD_BYTES + 1)
        if len(payload) > MAX_THUMBNAIL_UPLOAD_BYTES:
            raise PayloadTooLargeError(detail="thumbnail stream exceeded ceiling")

        url = await asyncio.to_thread(self.store.save, video_id, payload, media_type)
        video.thumbnail_url = url
        await self.repository.update_video(video)
        self.logger.info("thumbnail_stored", video_id=video_id, user_id=user_id, size_bytes=len(payload))
        return video


__all__ = ["MAX_THUMBNAIL_UPLOAD_BYTES", "ThumbnailService"]

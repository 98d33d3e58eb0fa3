from __future__ import annotations

import enum
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from app.core.config import Settings
from app.core.errors import BadRequestError, ForbiddenError, NotFoundError, PayloadTooLargeError
from app.core.logging import get_logger
from app.core.storage import ObjectStore
from app.db.models import Video
from app.db.repository import VideoRepository
from app.ingest import RemotePublisher, classify, discard_staged, probe_geometry, stage_upload

MAX_VIDEO_UPLOAD_BYTES = 1 << 30
ALLOWED_VIDEO_TYPES = frozenset({"video/mp4"})


class IngestState(str, enum.Enum):
    validating = "validating"
    staged = "staged"
    probed = "probed"
    classified = "classified"
    published = "published"
    recorded = "recorded"
    cleaned = "cleaned"
    aborted = "aborted"


async def load_owned_video(repository: VideoRepository, video_id: str, user_id: str) -> Video:
    video = await repository.get_video(video_id)
    if video is None:
        raise NotFoundError("video_not_found")
    if video.user_id != user_id:
        raise ForbiddenError("not_video_owner")
    return video


class VideoIngestService:
    def __init__(self, settings: Settings, store: ObjectStore, repository: VideoRepository):
        self.settings = settings
        self.repository = repository
        self.publisher = RemotePublisher(store)
        self.logger = get_logger(component="ingest_service")

    @staticmethod
    def _validate_upload(upload: Optional[UploadFile]) -> str:
        if upload is None:
            raise BadRequestError("video_file_missing")
        media_type = (upload.content_type or "").split(";", 1)[0].strip().lower()
        if media_type not in ALLOWED_VIDEO_TYPES:
            raise BadRequestError("unsupported_media_type", detail=media_type or None)
        if upload.size is not None and upload.size > MAX_VIDEO_UPLOAD_BYTES:
            raise PayloadTooLargeError(detail=f"declared size {upload.size}")
        return media_type

    async def upload_video(self, *, video_id: str, user_id: str, upload: Optional[UploadFile]) -> Video:
        """Stage, probe, classify and publish ``upload``, then point the video record at it.

        The staged copy is removed whatever happens once it exists; the record
        is only touched after the object store acknowledged the upload.
        """
        logger = self.logger.bind(video_id=video_id, user_id=user_id)
        state = IngestState.validating
        staged: Path | None = None
        try:
            video = await load_owned_video(self.repository, video_id, user_id)
            media_type = self._validate_upload(upload)
            assert upload is not None

            staged = await stage_upload(
                upload,
                Path(self.settings.staging_root),
                media_type,
                max_bytes=MAX_VIDEO_UPLOAD_BYTES,
            )
            state = IngestState.staged
            logger.info("video_ingest_staged", path=str(staged))

            geometry = await probe_geometry(staged, binary=self.settings.ffprobe_binary)
            state = IngestState.probed

            classification = classify(geometry.ratio)
            state = IngestState.classified
            logger.info(
                "video_ingest_classified",
                width=geometry.width,
                height=geometry.height,
                ratio=round(geometry.ratio, 3),
                classification=classification.value,
            )

            reference = await self.publisher.publish(staged, classification, content_type=media_type)
            state = IngestState.published

            video.video_url = reference.url
            await self.repository.update_video(video)
            state = IngestState.recorded
            logger.info("video_ingest_recorded", video_url=reference.url)
        except Exception as exc:
            logger.warning(
                "video_ingest_aborted",
                state=state.value,
                error=getattr(exc, "code", type(exc).__name__),
            )
            state = IngestState.aborted
            raise
        finally:
            if staged is not None and discard_staged(staged):
                state = IngestState.cleaned
                logger.debug("video_ingest_cleaned", path=str(staged), state=state.value)

        return video


__all__ = [
    "ALLOWED_VIDEO_TYPES",
    "MAX_VIDEO_UPLOAD_BYTES",
    "IngestState",
    "VideoIngestService",
    "load_owned_video",
]

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, File, UploadFile, status

from app.api import deps
from app.core.errors import NotFoundError, ForbiddenError

from . import schemas


router = APIRouter(prefix="/videos", tags=["videos"])

ERROR_RESPONSES = {
    400: {"model": schemas.ErrorResponse},
    403: {"model": schemas.ErrorResponse},
    404: {"model": schemas.ErrorResponse},
}


@router.post("", response_model=schemas.VideoResponse, status_code=status.HTTP_201_CREATED)
async def create_video(
    payload: schemas.VideoCreateRequest,
    repository: deps.RepositoryDependency,
    context: deps.AuthDependency,
) -> schemas.VideoResponse:
    video = await repository.create_video(
        user_id=context.user_id,
        title=payload.title,
        description=payload.description,
    )
    return schemas.VideoResponse.model_validate(video)


@router.get("", response_model=List[schemas.VideoResponse])
async def list_videos(
    repository: deps.RepositoryDependency,
    context: deps.AuthDependency,
) -> List[schemas.VideoResponse]:
    videos = await repository.list_videos(context.user_id)
    return [schemas.VideoResponse.model_validate(video) for video in videos]


@router.get("/{video_id}", response_model=schemas.VideoResponse, responses=ERROR_RESPONSES)
async def get_video(
    video_id: str,
    repository: deps.RepositoryDependency,
    context: deps.AuthDependency,
) -> schemas.VideoResponse:
    video = await repository.get_video(video_id)
    if video is None:
        raise NotFoundError("video_not_found")
    if video.user_id != context.user_id:
        raise ForbiddenError("not_video_owner")
    return schemas.VideoResponse.model_validate(video)


@router.post(
    "/{video_id}/video",
    response_model=schemas.VideoResponse,
    responses={
        **ERROR_RESPONSES,
        413: {"model": schemas.ErrorResponse},
        422: {"model": schemas.ErrorResponse},
        502: {"model": schemas.ErrorResponse},
    },
)
async def upload_video(
    video_id: str,
    service: deps.IngestServiceDependency,
    context: deps.AuthDependency,
    video: Optional[UploadFile] = File(default=None),
) -> schemas.VideoResponse:
    updated = await service.upload_video(video_id=video_id, user_id=context.user_id, upload=video)
    return schemas.VideoResponse.model_validate(updated)


@router.post(
    "/{video_id}/thumbnail",
    response_model=schemas.VideoResponse,
    responses={**ERROR_RESPONSES, 413: {"model": schemas.ErrorResponse}},
)
async def upload_thumbnail(
    video_id: str,
    service: deps.ThumbnailServiceDependency,
    context: deps.AuthDependency,
    thumbnail: Optional[UploadFile] = File(default=None),
) -> schemas.VideoResponse:
    updated = await service.upload_thumbnail(video_id=video_id, user_id=context.user_id, upload=thumbnail)
    return schemas.VideoResponse.model_validate(updated)


__all__ = ["router"]

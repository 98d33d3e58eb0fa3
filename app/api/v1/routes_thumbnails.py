from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from app.api import deps
from app.core.errors import NotFoundError
from app.ingest.thumbnails import MemoryThumbnailStore, ThumbnailStore


router = APIRouter(prefix="/thumbnails", tags=["thumbnails"])


@router.get("/{video_id}", response_class=Response, summary="Serve a thumbnail held in memory")
async def get_thumbnail(
    video_id: str,
    store: ThumbnailStore = Depends(deps.get_thumbnail_store),
) -> Response:
    entry = store.get(video_id) if isinstance(store, MemoryThumbnailStore) else None
    if entry is None:
        raise NotFoundError("thumbnail_not_found")
    return Response(content=entry.payload, media_type=entry.media_type)


__all__ = ["router"]

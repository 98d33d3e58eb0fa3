from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models import Video


class VideoRepository:
    """Get/update access to video records for a single request session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_video(self, video_id: str) -> Video | None:
        return await self.session.get(Video, video_id)

    async def update_video(self, video: Video) -> None:
        self.session.add(video)
        await self.session.commit()
        await self.session.refresh(video)

    async def create_video(self, *, user_id: str, title: str, description: Optional[str] = None) -> Video:
        video = Video(user_id=user_id, title=title, description=description)
        self.session.add(video)
        await self.session.commit()
        await self.session.refresh(video)
        return video

    async def list_videos(self, user_id: str) -> Sequence[Video]:
        stmt = select(Video).where(Video.user_id == user_id).order_by(Video.created_at.desc(), Video.id)
        result = await self.session.execute(stmt)
        return result.scalars().all()


__all__ = ["VideoRepository"]

from __future__ import annotations

import base64
import secrets
import threading
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from app.core.config import Settings

THUMBNAIL_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
}


@dataclass(frozen=True, slots=True)
class StoredThumbnail:
    payload: bytes
    media_type: str
    stored_at: float


class ThumbnailStore(ABC):
    @abstractmethod
    def save(self, video_id: str, payload: bytes, media_type: str) -> str:
        """Persist ``payload`` and return the URL to record on the video."""


class MemoryThumbnailStore(ThumbnailStore):
    """Process-local store owned by the application state.

    Holds at most ``max_entries`` thumbnails; the oldest write is evicted first
    and entries expire ``ttl_seconds`` after they were stored. The owner clears
    it on shutdown.
    """

    def __init__(
        self,
        base_url: str,
        *,
        max_entries: int = 256,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.base_url = base_url.rstrip("/")
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, StoredThumbnail] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def save(self, video_id: str, payload: bytes, media_type: str) -> str:
        with self._lock:
            self._entries.pop(video_id, None)
            self._entries[video_id] = StoredThumbnail(payload=payload, media_type=media_type, stored_at=self._clock())
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)
        return f"{self.base_url}/v1/thumbnails/{video_id}"

    def get(self, video_id: str) -> Optional[StoredThumbnail]:
        with self._lock:
            entry = self._entries.get(video_id)
            if entry is None:
                return None
            if self._clock() - entry.stored_at >= self.ttl_seconds:
                del self._entries[video_id]
                return None
            return entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class DataURLThumbnailStore(ThumbnailStore):
    """Encodes the image into the URL itself; nothing is kept server side."""

    def save(self, video_id: str, payload: bytes, media_type: str) -> str:
        encoded = base64.b64encode(payload).decode("ascii")
        return f"data:{media_type};base64,{encoded}"


class FilesystemThumbnailStore(ThumbnailStore):
    def __init__(self, root: Path, base_url: str):
        self.root = root
        self.base_url = base_url.rstrip("/")

    def save(self, video_id: str, payload: bytes, media_type: str) -> str:
        extension = THUMBNAIL_EXTENSIONS.get(media_type, "bin")
        name = f"{secrets.token_urlsafe(32)}.{extension}"
        self.root.mkdir(parents=True, exist_ok=True)
        (self.root / name).write_bytes(payload)
        return f"{self.base_url}/assets/{name}"


def get_thumbnail_store(settings: Settings) -> ThumbnailStore:
    if settings.thumbnail_backend == "memory":
        return MemoryThumbnailStore(
            settings.public_base_url_stripped,
            max_entries=settings.thumbnail_cache_max_entries,
            ttl_seconds=settings.thumbnail_cache_ttl_seconds,
        )
    if settings.thumbnail_backend == "data_url":
        return DataURLThumbnailStore()
    if settings.thumbnail_backend == "filesystem":
        return FilesystemThumbnailStore(Path(settings.assets_root), settings.public_base_url_stripped)
    raise ValueError(f"Unsupported thumbnail backend: {settings.thumbnail_backend}")


__all__ = [
    "THUMBNAIL_EXTENSIONS",
    "StoredThumbnail",
    "ThumbnailStore",
    "MemoryThumbnailStore",
    "DataURLThumbnailStore",
    "FilesystemThumbnailStore",
    "get_thumbnail_store",
]

from __future__ import annotations

import asyncio
from pathlib import Path

from app.core.errors import PublishError
from app.core.logging import get_logger
from app.core.storage import ObjectStore, ObjectStoreError, RemoteObjectReference

from .classify import AspectClassification


def object_key(classification: AspectClassification, file_name: str) -> str:
    return f"{classification.value}/{file_name}"


class RemotePublisher:
    def __init__(self, store: ObjectStore):
        self.store = store
        self.logger = get_logger(component="publisher")

    async def publish(
        self,
        staged: Path,
        classification: AspectClassification,
        *,
        content_type: str,
    ) -> RemoteObjectReference:
        """Upload ``staged`` under its classification prefix; returns once the store acknowledged the write."""
        key = object_key(classification, staged.name)
        try:
            reference = await asyncio.to_thread(self.store.put_file, key, staged, content_type=content_type)
        except ObjectStoreError as exc:
            self.logger.error("object_publish_failed", key=key, error=str(exc.__cause__ or exc))
            raise PublishError(detail=str(exc)) from exc
        self.logger.info("object_published", key=key, url=reference.url)
        return reference


__all__ = ["RemotePublisher", "object_key"]

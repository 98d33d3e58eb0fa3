from __future__ import annotations

import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings


class ObjectStoreError(Exception):
    """Raised when an object store does not acknowledge a write."""


@dataclass(frozen=True, slots=True)
class RemoteObjectReference:
    bucket: str
    key: str
    region: str
    url: str


def s3_object_url(bucket: str, region: str, key: str) -> str:
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"


class ObjectStore(ABC):
    @abstractmethod
    def put_file(self, key: str, source: Path, *, content_type: str) -> RemoteObjectReference: ...


class LocalObjectStore(ObjectStore):
    """Filesystem-backed object store suitable for development."""

    def __init__(self, base_path: Path, *, bucket: str, region: str = "local"):
        self.base_path = base_path
        self.bucket = bucket
        self.region = region

    def _resolve(self, key: str) -> Path:
        root = (self.base_path / self.bucket).resolve()
        target = (root / key).resolve()
        if root not in target.parents:
            raise ValueError(f"Object key escapes bucket: {key}")
        return target

    def put_file(self, key: str, source: Path, *, content_type: str) -> RemoteObjectReference:
        target = self._resolve(key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except OSError as exc:
            raise ObjectStoreError(f"local_put_failed:{key}") from exc
        return RemoteObjectReference(bucket=self.bucket, key=key, region=self.region, url=target.as_uri())


class S3ObjectStore(ObjectStore):
    """Amazon S3 (or compatible) object store backed by boto3."""

    def __init__(self, bucket: str, region: str, *, client: Any = None, endpoint_url: str | None = None) -> None:
        self.bucket = bucket
        self.region = region
        self.client = client or boto3.client("s3", region_name=region, endpoint_url=endpoint_url)

    def put_file(self, key: str, source: Path, *, content_type: str) -> RemoteObjectReference:
        try:
            with source.open("rb") as handle:
                self.client.put_object(Bucket=self.bucket, Key=key, Body=handle, ContentType=content_type)
        except (BotoCoreError, ClientError, OSError) as exc:
            raise ObjectStoreError(f"s3_put_failed:{key}") from exc
        return RemoteObjectReference(
            bucket=self.bucket,
            key=key,
            region=self.region,
            url=s3_object_url(self.bucket, self.region, key),
        )


def get_object_store(settings: Settings) -> ObjectStore:
    if settings.storage_backend == "local":
        return LocalObjectStore(Path(settings.local_storage_base_path), bucket=settings.s3_bucket)
    if settings.storage_backend == "s3":
        return S3ObjectStore(settings.s3_bucket, settings.s3_region, endpoint_url=settings.s3_endpoint_url)
    raise ValueError(f"Unsupported storage backend: {settings.storage_backend}")


__all__ = [
    "ObjectStore",
    "ObjectStoreError",
    "LocalObjectStore",
    "S3ObjectStore",
    "RemoteObjectReference",
    "s3_object_url",
    "get_object_store",
]

from __future__ import annotations

import secrets
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from app.core.errors import PayloadTooLargeError, StagingError
from app.core.logging import get_logger

CHUNK_SIZE = 1024 * 1024


def staged_file_name(media_type: str) -> str:
    """Return a collision resistant file name ending in the media subtype (``video/mp4`` -> ``.mp4``)."""
    _, _, subtype = media_type.partition("/")
    return f"{secrets.token_urlsafe(32)}.{subtype or 'bin'}"


async def stage_upload(
    upload: UploadFile,
    root: Path,
    media_type: str,
    *,
    max_bytes: Optional[int] = None,
) -> Path:
    """Stream ``upload`` into a new file under ``root`` and return its path.

    The caller owns the returned file and must remove it with :func:`discard_staged`.
    Nothing is left behind when this function raises.
    """
    target = root / staged_file_name(media_type)
    written = 0
    try:
        root.mkdir(parents=True, exist_ok=True)
        handle = target.open("xb")
    except OSError as exc:
        # never opened here, so not ours to remove
        raise StagingError(detail=str(exc)) from exc

    try:
        with handle:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if max_bytes is not None and written > max_bytes:
                    raise PayloadTooLargeError(detail=f"stream exceeded {max_bytes} bytes")
                handle.write(chunk)
    except PayloadTooLargeError:
        discard_staged(target)
        raise
    except OSError as exc:
        discard_staged(target)
        raise StagingError(detail=str(exc)) from exc

    get_logger(component="staging").debug("upload_staged", path=str(target), size_bytes=written)
    return target


def discard_staged(path: Path) -> bool:
    try:
        path.unlink(missing_ok=True)
    except OSError as cleanup_error:
        get_logger(component="staging").warning("staged_file_cleanup_failed", path=str(path), error=str(cleanup_error))
        return False
    return True


__all__ = ["CHUNK_SIZE", "staged_file_name", "stage_upload", "discard_staged"]

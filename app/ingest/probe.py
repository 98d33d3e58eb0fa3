from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

from app.core.errors import ProbeError
from app.core.logging import get_logger

FFPROBE_ARGS = (
    "-v",
    "error",
    "-select_streams",
    "v:0",
    "-show_entries",
    "stream=width,height",
    "-of",
    "json",
)


@dataclass(frozen=True, slots=True)
class VideoGeometry:
    width: int
    height: int

    @property
    def ratio(self) -> float:
        return self.width / self.height


def _dimension(stream: dict[str, Any], name: str) -> int:
    value = stream.get(name)
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ProbeError(detail=f"invalid_{name}:{value!r}")
    return value


def parse_probe_output(raw: Union[str, bytes]) -> VideoGeometry:
    """Extract the first stream's width and height from ffprobe's JSON output."""
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise ProbeError(detail="ffprobe_output_not_json") from exc

    streams = payload.get("streams") if isinstance(payload, dict) else None
    if not isinstance(streams, list) or not streams:
        raise ProbeError("no_video_stream")

    first = streams[0]
    if not isinstance(first, dict):
        raise ProbeError("no_video_stream")
    return VideoGeometry(width=_dimension(first, "width"), height=_dimension(first, "height"))


async def probe_geometry(path: Path, *, binary: str = "ffprobe") -> VideoGeometry:
    """Run ffprobe against ``path`` and return the geometry of its first video stream.

    Both output pipes are drained while waiting for exit so a chatty process
    cannot block on a full buffer.
    """
    logger = get_logger(component="probe", path=str(path))
    command = [binary, *FFPROBE_ARGS, str(path)]
    logger.debug("ffprobe_run", command=command)

    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise ProbeError("ffprobe_unavailable", detail=str(exc)) from exc

    assert proc.stdout is not None and proc.stderr is not None
    stdout, stderr, returncode = await asyncio.gather(
        proc.stdout.read(),
        proc.stderr.read(),
        proc.wait(),
    )

    stderr_text = stderr.decode("utf-8", errors="replace")
    if returncode != 0:
        logger.warning("ffprobe_failed", returncode=returncode, stderr=stderr_text.strip())
        raise ProbeError(detail=f"exit status {returncode}")
    if stderr:
        logger.warning("ffprobe_reported_errors", stderr=stderr_text.strip())
        raise ProbeError(detail=stderr_text.strip())

    return parse_probe_output(stdout)


__all__ = ["FFPROBE_ARGS", "VideoGeometry", "parse_probe_output", "probe_geometry"]

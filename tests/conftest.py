import asyncio
import json
from pathlib import Path

import jwt
import pytest
from fastapi.testclient import TestClient

from app.core.config import get_settings
from app.core.db import create_engine, create_schema, drop_schema
from app.main import create_app

JWT_SECRET = "test-secret"
JWT_ISSUER = "tubely-test"
JWT_AUDIENCE = "tubely"


def _write_fake_ffprobe(path: Path, *, stdout: str, stderr: str, exit_code: int) -> Path:
    lines = ["#!/bin/sh"]
    if stdout:
        lines += ["cat <<'__STDOUT__'", stdout, "__STDOUT__"]
    if stderr:
        lines += ["cat >&2 <<'__STDERR__'", stderr, "__STDERR__"]
    lines.append(f"exit {exit_code}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n")
    path.chmod(0o755)
    return path


def probe_payload(width: int, height: int) -> str:
    return json.dumps({"programs": [], "streams": [{"width": width, "height": height}]})


@pytest.fixture(autouse=True)
def configure_environment(monkeypatch, tmp_path):
    db_path = tmp_path / "tubely_test.db"
    ffprobe_path = _write_fake_ffprobe(
        tmp_path / "bin" / "ffprobe",
        stdout=probe_payload(1920, 1080),
        stderr="",
        exit_code=0,
    )

    monkeypatch.setenv("TUBELY_ENV", "test")
    monkeypatch.setenv("TUBELY_LOG_LEVEL", "debug")
    monkeypatch.setenv("TUBELY_DB_URL", f"sqlite+aiosqlite:///{db_path}")
    monkeypatch.setenv("TUBELY_STAGING_ROOT", str(tmp_path / "staging"))
    monkeypatch.setenv("TUBELY_ASSETS_ROOT", str(tmp_path / "assets"))
    monkeypatch.setenv("TUBELY_PUBLIC_BASE_URL", "http://testserver")
    monkeypatch.setenv("TUBELY_STORAGE_BACKEND", "local")
    monkeypatch.setenv("TUBELY_LOCAL_STORAGE_BASE_PATH", str(tmp_path / "objects"))
    monkeypatch.setenv("TUBELY_S3_BUCKET", "tubely-test")
    monkeypatch.setenv("TUBELY_FFPROBE_BINARY", str(ffprobe_path))
    monkeypatch.setenv("TUBELY_THUMBNAIL_BACKEND", "filesystem")
    monkeypatch.setenv("TUBELY_JWT_SECRET", JWT_SECRET)
    monkeypatch.setenv("TUBELY_JWT_ISSUER", JWT_ISSUER)
    monkeypatch.setenv("TUBELY_JWT_AUDIENCE", JWT_AUDIENCE)

    get_settings.cache_clear()
    settings = get_settings()
    engine = create_engine(settings)

    async def _setup() -> None:
        await create_schema(engine)

    asyncio.run(_setup())

    yield settings

    async def _teardown() -> None:
        await drop_schema(engine)
        await engine.dispose()

    asyncio.run(_teardown())
    get_settings.cache_clear()


@pytest.fixture()
def fake_ffprobe(configure_environment):
    """Rewrite the fake ffprobe executable that the configured settings point at."""
    path = Path(configure_environment.ffprobe_binary)

    def configure(*, width=1920, height=1080, stdout=None, stderr="", exit_code=0) -> Path:
        if stdout is None:
            stdout = probe_payload(width, height)
        return _write_fake_ffprobe(path, stdout=stdout, stderr=stderr, exit_code=exit_code)

    return configure


@pytest.fixture()
def client(configure_environment):
    app = create_app()
    with TestClient(app) as client:
        yield client


def build_token(user_id: str, *, scopes: list[str] | None = None) -> str:
    payload = {"sub": user_id, "iss": JWT_ISSUER, "aud": JWT_AUDIENCE}
    if scopes:
        payload["scopes"] = scopes
    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


@pytest.fixture()
def headers_for():
    def _headers(user_id: str, *, scopes: list[str] | None = None) -> dict[str, str]:
        return {"Authorization": f"Bearer {build_token(user_id, scopes=scopes)}"}

    return _headers


@pytest.fixture()
def staged_files(configure_environment):
    """List whatever is currently left in the staging directory."""
    root = Path(configure_environment.staging_root)

    def _list() -> list[Path]:
        if not root.exists():
            return []
        return sorted(root.iterdir())

    return _list

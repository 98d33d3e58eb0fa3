from __future__ import annotations

from pathlib import Path
from urllib.parse import urlparse

import pytest
from fastapi.testclient import TestClient

from app.core.config import get_settings
from app.main import create_app

MP4_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 1024


def _create_video(client, headers, title="demo") -> dict:
    resp = client.post("/v1/videos", json={"title": title, "description": "take one"}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _upload_video(client, video_id, headers, *, payload=MP4_BYTES, content_type="video/mp4"):
    return client.post(
        f"/v1/videos/{video_id}/video",
        files={"video": ("clip.mp4", payload, content_type)},
        headers=headers,
    )


@pytest.fixture()
def memory_thumbnail_client(monkeypatch, configure_environment):
    monkeypatch.setenv("TUBELY_THUMBNAIL_BACKEND", "memory")
    get_settings.cache_clear()
    app = create_app()
    with TestClient(app) as client:
        yield client


def test_v1_health_ok(client):
    resp = client.get("/v1/health")
    assert resp.status_code == 200
    payload = resp.json()
    assert payload["status"] == "ok"
    assert payload["version"] == "0.1.0"


def test_upload_requires_bearer_token(client):
    resp = _upload_video(client, "anything", {})
    assert resp.status_code == 401


def test_upload_publishes_landscape_video(client, headers_for, staged_files, configure_environment):
    headers = headers_for("alice")
    video = _create_video(client, headers)

    resp = _upload_video(client, video["id"], headers)

    assert resp.status_code == 200, resp.text
    video_url = resp.json()["video_url"]
    published = Path(urlparse(video_url).path)
    assert published.parent.name == "landscape"
    assert published.read_bytes() == MP4_BYTES
    assert published.is_relative_to(Path(configure_environment.local_storage_base_path).resolve())
    assert staged_files() == []

    fetched = client.get(f"/v1/videos/{video['id']}", headers=headers)
    assert fetched.json()["video_url"] == video_url


def test_upload_classifies_square_video_as_other(client, headers_for, fake_ffprobe):
    fake_ffprobe(width=1080, height=1080)
    headers = headers_for("alice")
    video = _create_video(client, headers)

    resp = _upload_video(client, video["id"], headers)

    assert resp.status_code == 200, resp.text
    assert "/other/" in resp.json()["video_url"]


def test_upload_rejects_disallowed_mime_type(client, headers_for, staged_files):
    headers = headers_for("alice")
    video = _create_video(client, headers)

    resp = _upload_video(client, video["id"], headers, content_type="video/webm")

    assert resp.status_code == 400
    assert resp.json() == {"error": "unsupported_media_type"}
    assert staged_files() == []


def test_upload_without_file_is_bad_request(client, headers_for):
    headers = headers_for("alice")
    video = _create_video(client, headers)

    resp = client.post(f"/v1/videos/{video['id']}/video", data={"other": "field"}, headers=headers)

    assert resp.status_code == 400
    assert resp.json() == {"error": "video_file_missing"}


def test_upload_with_text_instead_of_file_is_bad_request(client, headers_for, staged_files):
    headers = headers_for("alice")
    video = _create_video(client, headers)

    resp = client.post(f"/v1/videos/{video['id']}/video", data={"video": "not-a-file"}, headers=headers)

    assert resp.status_code == 400
    assert resp.json() == {"error": "video_file_missing"}
    assert staged_files() == []


def test_thumbnail_with_text_instead_of_file_is_bad_request(client, headers_for):
    headers = headers_for("alice")
    video = _create_video(client, headers)

    resp = client.post(f"/v1/videos/{video['id']}/thumbnail", data={"thumbnail": "not-a-file"}, headers=headers)

    assert resp.status_code == 400
    assert resp.json() == {"error": "thumbnail_file_missing"}


def test_malformed_video_body_is_bad_request(client, headers_for):
    resp = client.post("/v1/videos", json={"description": "no title"}, headers=headers_for("alice"))

    assert resp.status_code == 400
    assert resp.json() == {"error": "invalid_request"}


def test_upload_for_unknown_video_is_not_found(client, headers_for):
    resp = _upload_video(client, "does-not-exist", headers_for("alice"))
    assert resp.status_code == 404
    assert resp.json() == {"error": "video_not_found"}


def test_non_owner_upload_is_forbidden(client, headers_for):
    video = _create_video(client, headers_for("alice"))

    resp = _upload_video(client, video["id"], headers_for("mallory"))

    assert resp.status_code == 403
    fetched = client.get(f"/v1/videos/{video['id']}", headers=headers_for("alice"))
    assert fetched.json()["video_url"] is None


def test_probe_failure_returns_unprocessable(client, headers_for, fake_ffprobe, staged_files):
    fake_ffprobe(stdout="", stderr="Invalid data found when processing input", exit_code=1)
    headers = headers_for("alice")
    video = _create_video(client, headers)

    resp = _upload_video(client, video["id"], headers)

    assert resp.status_code == 422
    assert resp.json() == {"error": "probe_failed"}
    assert "Invalid data" not in resp.text
    assert staged_files() == []
    fetched = client.get(f"/v1/videos/{video['id']}", headers=headers)
    assert fetched.json()["video_url"] is None


def test_list_videos_returns_only_callers_records(client, headers_for):
    _create_video(client, headers_for("alice"), title="a1")
    _create_video(client, headers_for("alice"), title="a2")
    _create_video(client, headers_for("bob"), title="b1")

    resp = client.get("/v1/videos", headers=headers_for("alice"))

    assert resp.status_code == 200
    assert sorted(item["title"] for item in resp.json()) == ["a1", "a2"]


def test_get_video_of_other_user_is_forbidden(client, headers_for):
    video = _create_video(client, headers_for("alice"))
    resp = client.get(f"/v1/videos/{video['id']}", headers=headers_for("bob"))
    assert resp.status_code == 403


def test_filesystem_thumbnail_is_served_from_assets(client, headers_for, configure_environment):
    headers = headers_for("alice")
    video = _create_video(client, headers)

    resp = client.post(
        f"/v1/videos/{video['id']}/thumbnail",
        files={"thumbnail": ("thumb.png", b"\x89PNG\r\n", "image/png")},
        headers=headers,
    )

    assert resp.status_code == 200, resp.text
    thumbnail_url = resp.json()["thumbnail_url"]
    assert thumbnail_url.startswith("http://testserver/assets/")
    served = client.get(urlparse(thumbnail_url).path)
    assert served.status_code == 200
    assert served.content == b"\x89PNG\r\n"


def test_thumbnail_rejects_non_image(client, headers_for):
    headers = headers_for("alice")
    video = _create_video(client, headers)

    resp = client.post(
        f"/v1/videos/{video['id']}/thumbnail",
        files={"thumbnail": ("thumb.gif", b"GIF89a", "image/gif")},
        headers=headers,
    )

    assert resp.status_code == 400


def test_memory_thumbnail_round_trip(memory_thumbnail_client, headers_for):
    client = memory_thumbnail_client
    headers = headers_for("alice")
    video = _create_video(client, headers)

    resp = client.post(
        f"/v1/videos/{video['id']}/thumbnail",
        files={"thumbnail": ("thumb.jpg", b"\xff\xd8\xff", "image/jpeg")},
        headers=headers,
    )

    assert resp.status_code == 200, resp.text
    assert resp.json()["thumbnail_url"] == f"http://testserver/v1/thumbnails/{video['id']}"
    served = client.get(f"/v1/thumbnails/{video['id']}")
    assert served.status_code == 200
    assert served.headers["content-type"] == "image/jpeg"
    assert served.content == b"\xff\xd8\xff"


def test_thumbnail_route_is_empty_without_memory_backend(client):
    assert client.get("/v1/thumbnails/anything").status_code == 404


def test_env_check_requires_admin_scope(client, headers_for):
    assert client.get("/v1/admin/env-check", headers=headers_for("alice")).status_code == 403

    resp = client.get("/v1/admin/env-check", headers=headers_for("alice", scopes=["admin"]))
    assert resp.status_code == 200
    assert resp.json() == {"ffprobe": True}


def test_dev_token_disabled_outside_development(client):
    resp = client.post("/v1/admin/dev-token", json={"user_id": "alice"})
    assert resp.status_code == 403


def test_openapi_lists_upload_route(client):
    payload = client.get("/openapi.json").json()
    assert "/v1/videos/{video_id}/video" in payload["paths"]

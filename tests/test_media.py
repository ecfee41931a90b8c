"""Tests for profile photo storage."""

import os

import pytest
from fastapi.testclient import TestClient

from api import create_app
from media import MediaError, MediaStore

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.mark.asyncio
async def test_stores_by_content_hash(tmp_path):
    store = MediaStore(str(tmp_path / "uploads"), max_bytes=1024)

    url = await store.accept(PNG, "image/png")
    again = await store.accept(PNG, "image/png; charset=binary")

    assert url == again
    assert url.startswith("/uploads/")
    assert url.endswith(".png")
    stored = tmp_path / "uploads" / os.path.basename(url)
    assert stored.read_bytes() == PNG


@pytest.mark.parametrize("content,content_type,message", [
    (PNG, "text/plain", "File must be an image"),
    (PNG, "image/tiff", "Unsupported image type: image/tiff"),
    (b"", "image/png", "File is empty"),
    (b"x" * 2048, "image/jpeg", "File is too large"),
])
@pytest.mark.asyncio
async def test_rejects_bad_uploads(tmp_path, content, content_type, message):
    store = MediaStore(str(tmp_path), max_bytes=1024)

    with pytest.raises(MediaError) as exc_info:
        await store.accept(content, content_type)
    assert exc_info.value.message == message
    assert exc_info.value.status_code == 400
    assert exc_info.value.errors[0]['field'] == 'photo'


def test_photo_upload_endpoint(store, pool, settings):
    with TestClient(create_app(settings, pool=pool)) as client:
        registered = client.post("/api/auth/register", json={
            "email": "alice@example.com",
            "password": "password123",
            "name": "Alice"
        }).json()["data"]
        headers = {"Authorization": f"Bearer {registered['token']}"}

        response = client.post(
            "/api/auth/profile/photo",
            files={"photo": ("me.png", PNG, "image/png")},
            headers=headers
        )
        assert response.status_code == 200
        url = response.json()["data"]["photo"]
        assert response.json()["data"]["user"]["photo"] == url

        served = client.get(url)
        assert served.status_code == 200
        assert served.content == PNG

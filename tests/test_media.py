"""
LocalMediaStore: what gets written, what gets skipped, and where the
disk I/O runs.
"""
import io

import pytest
from fastapi import UploadFile
from httpx import AsyncClient
from starlette.datastructures import Headers

import blogapi.media
from blogapi.errors import ValidationError
from blogapi.media import LocalMediaStore


def _upload(filename: str, content: bytes, content_type: str) -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


# ---------------------------------------------------------------------------
# save
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_save_writes_bytes_unchanged(tmp_path):
    payload = bytes(range(256)) * 1024
    store = LocalMediaStore(tmp_path / "media")

    [name] = await store.save([_upload("big.PNG", payload, "image/png")])

    assert name.endswith(".png")
    assert (tmp_path / "media" / name).read_bytes() == payload


@pytest.mark.asyncio
async def test_save_writes_off_the_event_loop(tmp_path, monkeypatch):
    offloaded = []
    original = blogapi.media.run_in_threadpool

    async def recording(func, *args, **kwargs):
        offloaded.append(func)
        return await original(func, *args, **kwargs)

    monkeypatch.setattr(blogapi.media, "run_in_threadpool", recording)
    store = LocalMediaStore(tmp_path)
    await store.save([
        _upload("a.png", b"one", "image/png"),
        _upload("b.gif", b"two", "image/gif"),
    ])

    assert offloaded == [LocalMediaStore._write, LocalMediaStore._write]


@pytest.mark.asyncio
async def test_save_skips_empty_file_fields(tmp_path):
    store = LocalMediaStore(tmp_path / "media")
    stored = await store.save([
        _upload("", b"", "application/octet-stream"),
        _upload("cat.jpg", b"\xff\xd8", "image/jpeg"),
    ])

    assert len(stored) == 1
    assert stored[0].endswith(".jpg")
    assert [p.name for p in (tmp_path / "media").iterdir()] == stored


@pytest.mark.asyncio
async def test_save_rejects_non_images_before_writing(tmp_path):
    store = LocalMediaStore(tmp_path / "media")
    with pytest.raises(ValidationError):
        await store.save([
            _upload("ok.png", b"png", "image/png"),
            _upload("notes.txt", b"plain", "text/plain"),
        ])
    assert not (tmp_path / "media").exists()


# ---------------------------------------------------------------------------
# Through the API
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_post_with_empty_file_field(async_client: AsyncClient, register, media_dir):
    # What a browser sends when the file input is left empty.
    _, headers = await register("nofile")
    boundary = "formboundary7MA4YWxkTrZu0gW"
    body = (
        f"--{boundary}\r\n"
        'Content-Disposition: form-data; name="title"\r\n\r\n'
        "Words Only\r\n"
        f"--{boundary}\r\n"
        'Content-Disposition: form-data; name="content"\r\n\r\n'
        "No pictures today\r\n"
        f"--{boundary}\r\n"
        'Content-Disposition: form-data; name="images"; filename=""\r\n'
        "Content-Type: application/octet-stream\r\n\r\n"
        "\r\n"
        f"--{boundary}--\r\n"
    ).encode()

    resp = await async_client.post(
        "/posts",
        content=body,
        headers={**headers, "Content-Type": f"multipart/form-data; boundary={boundary}"},
    )
    assert resp.status_code == 201, resp.text
    assert resp.json()["media"] == []
    assert not media_dir.exists() or list(media_dir.iterdir()) == []

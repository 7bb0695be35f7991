import io
import re
from pathlib import Path

import httpx
import pytest
from PIL import Image

from storefront import models
from storefront.errors import ValidationFailed
from storefront.images import MAX_UPLOAD_BYTES, optimize_image, validate_upload
from storefront.storage import StorageError, SupabaseStorage


def make_png(width, height, mode="RGB"):
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color=(200, 30, 30) if mode == "RGB" else None).save(buffer, format="PNG")
    return buffer.getvalue()


def open_image(data):
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


def test_wide_images_are_downscaled_to_webp():
    result = open_image(optimize_image(make_png(3000, 1000)))
    assert result.format == "WEBP"
    assert result.size == (1920, 640)


def test_small_images_keep_their_size():
    result = open_image(optimize_image(make_png(800, 600)))
    assert result.format == "WEBP"
    assert result.size == (800, 600)


def test_palette_images_are_converted():
    result = open_image(optimize_image(make_png(40, 40, mode="P")))
    assert result.format == "WEBP"


def test_garbage_is_rejected():
    with pytest.raises(ValidationFailed):
        optimize_image(b"definitely not an image")


@pytest.mark.parametrize(
    "content_type, size",
    [("text/plain", 10), ("image/svg+xml", 10), (None, 10), ("image/png", MAX_UPLOAD_BYTES + 1)],
)
def test_validate_upload_rejects(content_type, size):
    with pytest.raises(ValidationFailed):
        validate_upload(content_type, size)


def test_validate_upload_accepts_allowed_types():
    for content_type in ("image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"):
        validate_upload(content_type, MAX_UPLOAD_BYTES)


def test_upload_stores_optimised_file_and_row(client, storage, count_rows):
    resp = client.post(
        "/api/admin/images/upload",
        files={"file": ("Red Shoes.png", make_png(2400, 1200), "image/png")},
        data={"title": "Red Shoes", "alt": "A pair of red shoes"},
    )

    assert resp.status_code == 201
    image = resp.json()["data"]
    assert re.match(r"^red-shoes-\d+\.webp$", image["filename"])
    assert image["mimeType"] == "image/webp"
    assert image["originalName"] == "Red Shoes.png"
    assert image["url"] == f"/uploads/images/{image['filename']}"
    stored = Path(storage.root) / "images" / image["filename"]
    assert stored.stat().st_size == image["size"]
    assert open_image(stored.read_bytes()).size == (1920, 960)
    assert count_rows(models.Image) == 1


def test_upload_rejects_non_images(client, count_rows):
    resp = client.post(
        "/api/admin/images/upload", files={"file": ("notes.txt", b"hello", "text/plain")}
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid file type"
    assert count_rows(models.Image) == 0


def test_upload_rejects_oversized_files(client, storage, count_rows, monkeypatch):
    stored = []
    monkeypatch.setattr(storage, "upload", lambda path, data, content_type: stored.append(path))
    resp = client.post(
        "/api/admin/images/upload",
        files={"file": ("huge.png", b"\0" * (MAX_UPLOAD_BYTES + 4096), "image/png")},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "File too large (max 10MB)"
    assert stored == []
    assert count_rows(models.Image) == 0


def test_failed_storage_write_creates_no_row(client, storage, count_rows, monkeypatch):
    def refuse(path, data, content_type):
        raise StorageError("disk full")

    monkeypatch.setattr(storage, "upload", refuse)
    resp = client.post(
        "/api/admin/images/upload", files={"file": ("a.png", make_png(10, 10), "image/png")}
    )
    assert resp.status_code == 500
    assert resp.json()["error"] == "Upload failed"
    assert count_rows(models.Image) == 0


def test_delete_removes_file_and_row(client, storage):
    image = client.post(
        "/api/admin/images/upload", files={"file": ("cat.png", make_png(10, 10), "image/png")}
    ).json()["data"]
    stored = Path(storage.root) / "images" / image["filename"]
    assert stored.exists()

    assert client.delete(f"/api/admin/images/{image['id']}").status_code == 200
    assert not stored.exists()
    assert client.get(f"/api/admin/images/{image['id']}").status_code == 404


def test_update_image_metadata(client):
    image = client.post(
        "/api/admin/images/upload", files={"file": ("cat.png", make_png(10, 10), "image/png")}
    ).json()["data"]
    resp = client.put(f"/api/admin/images/{image['id']}", json={"alt": "Cat", "isVisible": False})
    assert resp.json()["data"]["alt"] == "Cat"
    assert resp.json()["data"]["isVisible"] is False


def test_supabase_storage_talks_to_storage_api():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"Key": "ok"})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    storage = SupabaseStorage("https://proj.supabase.co/", "service-key", "media", client=client)

    url = storage.upload("images/cat-1.webp", b"RIFF", "image/webp")
    storage.remove(storage.path_from_url(url))

    assert url == "https://proj.supabase.co/storage/v1/object/public/media/images/cat-1.webp"
    upload, removal = requests
    assert upload.method == "POST"
    assert upload.url.path == "/storage/v1/object/media/images/cat-1.webp"
    assert upload.headers["authorization"] == "Bearer service-key"
    assert upload.headers["x-upsert"] == "true"
    assert upload.content == b"RIFF"
    assert removal.method == "DELETE"
    assert b"images/cat-1.webp" in removal.content


def test_supabase_errors_raise_storage_error():
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(403, text="denied")))
    storage = SupabaseStorage("https://proj.supabase.co", "key", "media", client=client)
    with pytest.raises(StorageError):
        storage.upload("images/x.webp", b"data", "image/webp")

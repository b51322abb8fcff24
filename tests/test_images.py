from io import BytesIO

import pytest
from PIL import Image

from menumagi.services.images import ImageRejected, ImageStorage, compress_image


def _png(size=(1600, 900), mode="RGBA") -> bytes:
    buffer = BytesIO()
    Image.new(mode, size, (200, 30, 30, 128) if mode == "RGBA" else (200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


def test_compress_fits_bounds_and_keeps_ratio():
    data = compress_image(_png((1600, 900)), max_width=800, max_height=600)
    image = Image.open(BytesIO(data))
    assert image.format == "JPEG"
    assert image.mode == "RGB"
    assert image.size == (800, 450)


def test_small_images_are_not_enlarged():
    image = Image.open(BytesIO(compress_image(_png((300, 200), mode="RGB"))))
    assert image.size == (300, 200)


def test_rejects_non_images():
    with pytest.raises(ImageRejected) as excinfo:
        compress_image(b"definitely not a picture")
    assert excinfo.value.status_code == 415


def test_storage_upload_and_delete(tmp_path):
    storage = ImageStorage(tmp_path, "http://testserver", max_bytes=5 * 1024 * 1024)
    stored = storage.upload("owner-1", _png())

    assert stored.path.exists()
    assert stored.url.startswith("http://testserver/media/menu-images/owner-1/")
    assert stored.url.endswith(".jpg")
    assert storage.path_for_url(stored.url) == stored.path.resolve()

    assert storage.delete(stored.url, "owner-1") is True
    assert not stored.path.exists()
    assert storage.delete(stored.url, "owner-1") is False


def test_storage_limits(tmp_path):
    storage = ImageStorage(tmp_path, "http://testserver", max_bytes=100)
    with pytest.raises(ImageRejected) as excinfo:
        storage.upload("owner-1", _png())
    assert excinfo.value.status_code == 413

    with pytest.raises(ImageRejected) as excinfo:
        storage.upload("owner-1", b"")
    assert excinfo.value.status_code == 400


def test_foreign_urls_are_not_deleted(tmp_path):
    storage = ImageStorage(tmp_path, "http://testserver", max_bytes=1024)
    assert storage.path_for_url("https://cdn.example/photo.jpg") is None
    assert storage.path_for_url("http://testserver/media/menu-images/../../etc/passwd") is None
    assert storage.delete("https://cdn.example/photo.jpg", "owner-1") is False


def test_images_are_only_deleted_from_their_owners_folder(tmp_path):
    storage = ImageStorage(tmp_path, "http://testserver", max_bytes=5 * 1024 * 1024)
    stored = storage.upload("owner-1", _png())

    assert storage.path_for_url(stored.url, "owner-2") is None
    assert storage.delete(stored.url, "owner-2") is False
    assert stored.path.exists()

    sneaky = stored.url.replace("/owner-1/", "/owner-2/../owner-1/")
    assert storage.delete(sneaky, "owner-2") is False
    assert stored.path.exists()

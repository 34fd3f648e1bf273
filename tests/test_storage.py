"""Image compression and file storage."""

import base64
import io
import os

import pytest
from PIL import Image

from resolution_desk.core.exceptions import ValidationError
from resolution_desk.services import storage_service
from resolution_desk.services.gateway import get_gateway


def _png(width, height, mode="RGBA"):
    buf = io.BytesIO()
    Image.new(mode, (width, height), (200, 30, 30, 255) if mode == "RGBA" else (200, 30, 30)).save(buf, "PNG")
    return buf.getvalue()


class TestCompressImage:
    def test_downscales_longer_side_to_1200(self):
        out = storage_service.compress_image(_png(2400, 1000))
        img = Image.open(io.BytesIO(out))
        assert img.format == "JPEG"
        assert img.size == (1200, 500)

    def test_small_image_keeps_size(self):
        img = Image.open(io.BytesIO(storage_service.compress_image(_png(300, 200, "RGB"))))
        assert img.size == (300, 200)

    def test_accepts_data_url(self):
        encoded = "data:image/png;base64," + base64.b64encode(_png(1300, 1300)).decode()
        img = Image.open(io.BytesIO(storage_service.compress_image(encoded)))
        assert img.size == (1200, 1200)

    def test_rejects_bad_base64(self):
        with pytest.raises(ValidationError):
            storage_service.compress_image("###not-base64###")

    def test_rejects_non_image(self):
        with pytest.raises(ValidationError):
            storage_service.compress_image(b"%PDF-1.4 not an image")


class TestUpload:
    def test_upload_writes_file_and_returns_url(self, app):
        url = storage_service.upload_file(b"%PDF-1.4", "صورتجلسه.pdf", "documents")
        assert url.startswith("/api/v1/uploads/documents/")
        assert url.endswith(".pdf")
        relative = url.split("/api/v1/uploads/", 1)[1]
        assert os.path.exists(os.path.join(app.config["UPLOAD_FOLDER"], relative))

    def test_unsupported_extension(self):
        with pytest.raises(ValidationError):
            storage_service.upload_file(b"MZ", "tool.exe")

    def test_gateway_store_upload_compresses_images(self, app):
        url = get_gateway().store_upload(_png(1600, 800), "photo.png")
        assert url.endswith(".jpg")
        relative = url.split("/api/v1/uploads/", 1)[1]
        with Image.open(os.path.join(app.config["UPLOAD_FOLDER"], relative)) as img:
            assert img.size == (1200, 600)

    def test_gateway_store_upload_keeps_documents_as_is(self, app):
        url = get_gateway().store_upload(b"%PDF-1.4 minutes", "minutes.pdf", "documents")
        assert url.endswith(".pdf")
        relative = url.split("/api/v1/uploads/", 1)[1]
        with open(os.path.join(app.config["UPLOAD_FOLDER"], relative), "rb") as fh:
            assert fh.read() == b"%PDF-1.4 minutes"

    def test_public_base_url(self, app, monkeypatch):
        monkeypatch.setitem(app.config, "PUBLIC_FILES_BASE_URL", "https://cdn.example.org/files/")
        assert storage_service.public_url("general/a.jpg") == "https://cdn.example.org/files/general/a.jpg"

"""
Upload validation, presigned upload URLs and stored object references.
"""

from unittest.mock import MagicMock, patch

import boto3
import pytest
from botocore.config import Config as BotoConfig
from botocore.exceptions import NoCredentialsError

from richhabits.core.exceptions import ValidationError
from richhabits.models import db
from richhabits.models.order import Order, OrderLineItem
from richhabits.services.upload_service import (
    MB,
    create_upload,
    normalize_object_reference,
    sanitize_filename,
    scan_file_content,
    validate_file_upload,
)


# ═══════════════════════════════════════════════════════════════
# VALIDATION
# ═══════════════════════════════════════════════════════════════

class TestValidateFileUpload:
    def test_valid_png(self):
        result = validate_file_upload("logo.png", 2 * MB, "image/png")
        assert result["valid"] is True
        assert result["errors"] == []
        assert result["sanitizedFilename"] == "logo.png"

    def test_too_large_for_images(self):
        result = validate_file_upload("logo.png", 11 * MB, "image/png")
        assert result["valid"] is False
        assert "10MB" in result["errors"][0]

    def test_design_files_allow_100mb(self):
        result = validate_file_upload("art.psd", 80 * MB, "image/vnd.adobe.photoshop",
                                      category="design_files")
        assert result["valid"] is True

    def test_zero_size(self):
        assert "File size must be positive" in validate_file_upload("a.png", 0, "image/png")["errors"]

    def test_wrong_extension_and_mime(self):
        result = validate_file_upload("run.exe", 100, "application/x-msdownload")
        assert result["valid"] is False
        assert len(result["errors"]) == 2

    def test_traversal_rejected(self):
        result = validate_file_upload("../../etc/passwd.png", 100, "image/png")
        assert result["valid"] is False
        assert "Filename was sanitized for security" in result["securityWarnings"]

    def test_mime_mismatch_warns(self):
        result = validate_file_upload("photo.jpg", 100, "image/png")
        assert result["valid"] is True
        assert result["securityWarnings"] == [
            "MIME type mismatch: JPEG file with different MIME type",
        ]

    def test_malicious_content(self):
        result = validate_file_upload("x.svg", 100, "image/svg+xml",
                                      content="<svg><script>alert(1)</script></svg>")
        assert result["valid"] is False
        assert "File contains potentially malicious content" in result["errors"]

    def test_unknown_category(self):
        with pytest.raises(ValueError):
            validate_file_upload("a.png", 1, "image/png", category="videos")


class TestHelpers:
    def test_sanitize(self):
        assert sanitize_filename('a<b>:c.png') == "a_b__c.png"
        assert sanitize_filename("..").startswith("file_")
        long_name = sanitize_filename("x" * 300 + ".png")
        assert len(long_name) == 255
        assert long_name.endswith(".png")

    def test_scan_only_first_8kb(self):
        assert scan_file_content(b"a" * 9000 + b"<?php") == []
        assert scan_file_content(b"<?php echo 1;") == ["Potentially malicious content detected: PHP open tag"]


# ═══════════════════════════════════════════════════════════════
# PRESIGNED URLS + OBJECT REFERENCES
# ═══════════════════════════════════════════════════════════════

def _fake_presign(ClientMethod, Params, ExpiresIn, HttpMethod):
    return (f"https://{Params['Bucket']}.s3.amazonaws.com/{Params['Key']}"
            f"?X-Amz-Algorithm=AWS4-HMAC-SHA256&X-Amz-Expires={ExpiresIn}"
            f"&X-Amz-Signature=deadbeef")


@pytest.fixture()
def storage():
    """Stand-in S3 client; presigning never leaves the process."""
    client = MagicMock()
    client.generate_presigned_url.side_effect = _fake_presign
    with patch("richhabits.services.upload_service.get_storage_client", return_value=client):
        yield client


class TestPresignedUploads:
    def test_create_upload_presigns_put(self, storage):
        upload = create_upload("images", content_type="image/png")
        assert upload["objectPath"] == f"/public-objects/{upload['uploadId']}"

        storage.generate_presigned_url.assert_called_once_with(
            "put_object",
            Params={
                "Bucket": "richhabits-uploads",
                "Key": f"uploads/{upload['uploadId']}",
                "ContentType": "image/png",
            },
            ExpiresIn=900,
            HttpMethod="PUT",
        )

    def test_storage_failure_propagates(self, storage):
        storage.generate_presigned_url.side_effect = NoCredentialsError()
        with pytest.raises(NoCredentialsError):
            create_upload()

    def test_real_client_signs_sigv4(self, app):
        client = boto3.client(
            "s3", region_name="us-east-1",
            aws_access_key_id="AKIDEXAMPLE", aws_secret_access_key="secret",
            config=BotoConfig(signature_version="s3v4"),
        )
        app.extensions["object_storage"] = client
        try:
            upload = create_upload("images", content_type="image/png")
        finally:
            app.extensions.pop("object_storage", None)

        url = upload["uploadURL"]
        assert f"uploads/{upload['uploadId']}" in url
        assert "X-Amz-Signature=" in url
        assert normalize_object_reference(url) == upload["objectPath"]

    def test_normalize(self, storage):
        upload = create_upload()
        assert normalize_object_reference(upload["uploadURL"]) == upload["objectPath"]
        assert normalize_object_reference("abc123") == "/public-objects/abc123"
        assert normalize_object_reference("/public-objects/abc123?x=1") == "/public-objects/abc123"
        assert normalize_object_reference("https://cdn.example/img.png") == "https://cdn.example/img.png"
        assert normalize_object_reference("") is None

    def test_normalize_rejects_garbage(self):
        with pytest.raises(ValidationError):
            normalize_object_reference("not a/valid ref")


# ═══════════════════════════════════════════════════════════════
# API
# ═══════════════════════════════════════════════════════════════

@pytest.mark.usefixtures("storage")
class TestUploadAPI:
    def test_anonymous(self, client):
        res = client.post("/api/upload/image", json={"filename": "a.png"})
        assert res.status_code == 401

    def test_image_accepted(self, login, sales_user):
        res = login(sales_user).post("/api/upload/image", json={
            "filename": "logo.png", "size": 1024, "mimeType": "image/png",
        })
        assert res.status_code == 200
        body = res.get_json()
        assert body["objectPath"].startswith("/public-objects/")
        assert body["sanitizedFilename"] == "logo.png"

    def test_image_rejected(self, login, sales_user):
        res = login(sales_user).post("/api/upload/image", json={
            "filename": "logo.gifv", "size": 1024, "mimeType": "video/mp4",
        })
        assert res.status_code == 400
        body = res.get_json()
        assert body["error"] == "File validation failed"
        assert body["errors"]

    def test_file_category(self, login, sales_user):
        c = login(sales_user)
        res = c.post("/api/upload/file", json={"filename": "specs.zip", "size": 1024,
                                               "mimeType": "application/zip",
                                               "category": "manufacturing_attachments"})
        assert res.status_code == 200
        res = c.post("/api/upload/file", json={"filename": "a.png", "size": 1,
                                               "mimeType": "image/png", "category": "videos"})
        assert res.status_code == 400

    def test_line_item_stores_object_path(self, login, admin_user):
        c = login(admin_user)
        order = Order(order_code="ORD-U1", order_name="Upload test")
        db.session.add(order)
        db.session.flush()
        item = OrderLineItem(order_id=order.id, item_name="Singlet")
        db.session.add(item)
        db.session.commit()

        upload = c.post("/api/upload/image", json={
            "filename": "mock.png", "size": 2048, "mimeType": "image/png",
        }).get_json()
        res = c.patch(f"/api/order-line-items/{item.id}", json={"imageUrl": upload["uploadURL"]})

        assert res.status_code == 200
        assert res.get_json()["imageUrl"] == upload["objectPath"]

    def test_storage_unavailable(self, login, sales_user, storage):
        storage.generate_presigned_url.side_effect = NoCredentialsError()
        res = login(sales_user).post("/api/upload/image", json={
            "filename": "logo.png", "size": 1024, "mimeType": "image/png",
        })
        assert res.status_code == 503

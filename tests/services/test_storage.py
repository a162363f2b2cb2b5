# tests/services/test_storage.py
"""Tests for attachment storage backends."""

import pytest
from botocore.exceptions import ClientError

from inspira.core.errors import ApiErrorCode, UpstreamError
from inspira.services.storage import InMemoryStorage, S3Storage, object_key


def test_object_key_sanitizes_filename() -> None:
    key = object_key("images", "my photo (1).png")

    folder, name = key.split("/", 1)
    assert folder == "images"
    assert name.endswith("_my_photo_1_.png")
    assert " " not in name


def test_object_key_without_filename() -> None:
    assert object_key("videos", None).endswith("_upload")


def test_in_memory_storage_keeps_bytes() -> None:
    storage = InMemoryStorage()

    storage.put("images/1_a.png", b"png", "image/png")

    assert storage.objects["images/1_a.png"] == (b"png", "image/png")
    assert storage.public_url("images/1_a.png") == "memory://uploads/images/1_a.png"


class _FailingS3Client:
    def put_object(self, **kwargs):
        raise ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}},
            "PutObject",
        )


class _RecordingS3Client:
    def __init__(self) -> None:
        self.calls: list[dict] = []

    def put_object(self, **kwargs):
        self.calls.append(kwargs)
        return {}


def _s3(public_base_url: str | None = "https://cdn.example.com") -> S3Storage:
    return S3Storage(
        "attachments",
        region="us-east-1",
        endpoint="https://r2.example.com",
        public_base_url=public_base_url,
        access_key_id="key",
        secret_access_key="secret",
    )


def test_s3_put_and_public_url() -> None:
    storage = _s3()
    client = _RecordingS3Client()
    storage._client = client

    storage.put("images/1_a.png", b"png", "image/png")

    assert client.calls == [
        {
            "Bucket": "attachments",
            "Key": "images/1_a.png",
            "Body": b"png",
            "ContentType": "image/png",
        }
    ]
    assert storage.public_url("images/1_a.png") == (
        "https://cdn.example.com/attachments/images/1_a.png"
    )


def test_s3_failures_become_upstream_errors() -> None:
    storage = _s3()
    storage._client = _FailingS3Client()

    with pytest.raises(UpstreamError) as exc_info:
        storage.put("images/1_a.png", b"png", "image/png")

    assert exc_info.value.code is ApiErrorCode.E_STORAGE_ERROR

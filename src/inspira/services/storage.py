"""Object storage for post attachments."""

from __future__ import annotations

import logging
import re
import threading
import time
from functools import lru_cache
from typing import Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from inspira.core.errors import ApiErrorCode, UpstreamError
from inspira.core.settings import settings

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class ObjectStorage(Protocol):
    """Object storage capability."""

    def put(self, key: str, data: bytes, content_type: str) -> None: ...

    def public_url(self, key: str) -> str: ...


class S3Storage:
    """S3-compatible storage (AWS S3 or Cloudflare R2) using path-style URLs."""

    def __init__(
        self,
        bucket: str,
        *,
        region: str,
        endpoint: str | None,
        public_base_url: str | None,
        access_key_id: str,
        secret_access_key: str,
    ) -> None:
        self.bucket = bucket
        self.endpoint = endpoint
        self.public_base_url = (public_base_url or endpoint or "").rstrip("/")
        self._client = boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            config=Config(s3={"addressing_style": "path"}),
        )

    @classmethod
    def from_settings(cls) -> S3Storage:
        return cls(
            settings.s3_bucket or "",
            region=settings.s3_region,
            endpoint=settings.s3_endpoint,
            public_base_url=settings.s3_public_url,
            access_key_id=settings.s3_access_key_id or "",
            secret_access_key=settings.s3_secret_access_key or "",
        )

    def put(self, key: str, data: bytes, content_type: str) -> None:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("S3 upload failed bucket=%s key=%s: %s", self.bucket, key, exc)
            raise UpstreamError(ApiErrorCode.E_STORAGE_ERROR, "Failed to upload file") from exc
        logger.info("S3 upload complete bucket=%s key=%s", self.bucket, key)

    def public_url(self, key: str) -> str:
        if not self.public_base_url:
            return f"https://{self.bucket}.s3.amazonaws.com/{key}"
        return f"{self.public_base_url}/{self.bucket}/{key}"


class InMemoryStorage:
    """Keeps uploads in process memory; used when S3 is not configured."""

    def __init__(self, base_url: str = "memory://uploads") -> None:
        self.base_url = base_url.rstrip("/")
        self.objects: dict[str, tuple[bytes, str]] = {}
        self._lock = threading.Lock()

    def put(self, key: str, data: bytes, content_type: str) -> None:
        with self._lock:
            self.objects[key] = (data, content_type)

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{key}"


def object_key(folder: str, filename: str | None) -> str:
    """Build a collision-resistant key such as ``images/1700000000000_photo.png``."""
    name = _UNSAFE_KEY_CHARS.sub("_", filename or "upload").strip("_") or "upload"
    return f"{folder}/{time.time_ns() // 1_000_000}_{name}"


@lru_cache(maxsize=1)
def get_storage() -> ObjectStorage:
    """Return the process-wide storage backend."""
    if settings.storage_configured:
        return S3Storage.from_settings()
    logger.warning("S3 storage is not configured; attachments are kept in memory")
    return InMemoryStorage()

"""Publishing normalized images at a URL the vision model can fetch."""

import logging
import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional, Tuple

import boto3
from botocore.config import Config as BotoConfig

from fruit_counter.config import (
    STORAGE_BACKEND,
    NCP_OS_REGION,
    NCP_OS_ENDPOINT,
    NCP_OS_ACCESS_KEY,
    NCP_OS_SECRET_KEY,
    NCP_OS_BUCKET,
    PRESIGN_EXPIRES_SEC,
    PUBLIC_BASE_URL,
    IMAGE_TTL_SEC,
    MEMORY_STORE_MAX_ITEMS,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishedImage:
    url: str
    key: str


def _extension(mime: Optional[str]) -> str:
    ext = (mime or "").split("/")[-1] or "jpg"
    return "jpg" if ext == "jpeg" else ext


class ImageStorage:
    """Publish bytes, get back a fetchable URL, delete by key."""

    def publish(self, data: bytes, mime: str) -> PublishedImage:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


# -----------------------------------
# NCP Object Storage (S3 compatible)
# -----------------------------------


class S3ImageStorage(ImageStorage):
    """
    Uploads to a (possibly private) bucket and hands out a presigned GET URL.
    NCP Object Storage works best with path-style addressing.
    """

    def __init__(
        self,
        bucket: Optional[str] = None,
        client=None,
        expires_in: int = PRESIGN_EXPIRES_SEC,
    ):
        bucket = bucket or NCP_OS_BUCKET
        if not bucket:
            raise RuntimeError("NCP_OS_BUCKET is not set")
        self.bucket = bucket
        self.expires_in = expires_in
        self.client = client or boto3.client(
            "s3",
            region_name=NCP_OS_REGION,
            endpoint_url=NCP_OS_ENDPOINT,
            aws_access_key_id=NCP_OS_ACCESS_KEY,
            aws_secret_access_key=NCP_OS_SECRET_KEY,
            config=BotoConfig(s3={"addressing_style": "path"}),
        )

    @staticmethod
    def make_key(mime: str) -> str:
        day = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        return f"uploads/{day}/{uuid.uuid4()}.{_extension(mime)}"

    def publish(self, data: bytes, mime: str) -> PublishedImage:
        key = self.make_key(mime)
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=mime or "application/octet-stream",
        )
        url = self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=self.expires_in,
        )
        logger.info("Uploaded %s bytes to s3://%s/%s", len(data), self.bucket, key)
        return PublishedImage(url=url, key=key)

    def delete(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=key)
        logger.info("Deleted s3://%s/%s", self.bucket, key)


# -----------------------------------
# In-process store served via GET /images/{key}
# -----------------------------------


class MemoryImageStorage(ImageStorage):
    """Keeps images in memory for `ttl` seconds, at most `max_items` at once."""

    def __init__(
        self,
        base_url: str = PUBLIC_BASE_URL,
        ttl: int = IMAGE_TTL_SEC,
        max_items: int = MEMORY_STORE_MAX_ITEMS,
        clock=time.monotonic,
    ):
        self.base_url = base_url.rstrip("/")
        self.ttl = ttl
        self.max_items = max_items
        self._clock = clock
        self._items: "OrderedDict[str, Tuple[bytes, str, float]]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            self._evict()
            return len(self._items)

    def _evict(self) -> None:
        now = self._clock()
        expired = [key for key, (_, _, expires_at) in self._items.items() if expires_at <= now]
        for key in expired:
            del self._items[key]
        while len(self._items) > self.max_items:
            self._items.popitem(last=False)

    def publish(self, data: bytes, mime: str) -> PublishedImage:
        key = f"{uuid.uuid4().hex}.{_extension(mime)}"
        with self._lock:
            self._items[key] = (data, mime, self._clock() + self.ttl)
            self._evict()
        logger.info("Stored %s bytes in memory as %s (ttl=%ss)", len(data), key, self.ttl)
        return PublishedImage(url=f"{self.base_url}/images/{key}", key=key)

    def get(self, key: str) -> Optional[Tuple[bytes, str]]:
        with self._lock:
            self._evict()
            item = self._items.get(key)
        if item is None:
            return None
        data, mime, _ = item
        return data, mime

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)


@lru_cache
def get_storage() -> ImageStorage:
    logger.info("Initializing image storage backend=%s", STORAGE_BACKEND)
    if STORAGE_BACKEND == "memory":
        return MemoryImageStorage()
    if STORAGE_BACKEND == "s3":
        return S3ImageStorage()
    raise RuntimeError(f"Unknown STORAGE_BACKEND: {STORAGE_BACKEND}")

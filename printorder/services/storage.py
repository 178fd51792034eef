"""
S3-compatible object storage (Cloudflare R2 in production).

The rest of the app only sees `upload(data, name, content_type) -> url`.
"""
from __future__ import annotations

import asyncio
import logging
import time
from functools import lru_cache

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..errors import UpstreamError, UpstreamTimeoutError
from ..settings import settings

logger = logging.getLogger(__name__)


def safe_file_name(name: str, default: str = "file") -> str:
    """Flatten path separators so a user-supplied name stays one path segment."""
    return name.replace("/", "_").replace("\\", "_") or default


class ObjectStore:
    """Puts order files in the bucket and hands back their public URL."""

    def __init__(self):
        if not settings.storage_bucket:
            raise RuntimeError("STORAGE_BUCKET is not set. Object storage is required.")
        self.client = boto3.client(
            "s3",
            endpoint_url=settings.storage_endpoint_url,
            aws_access_key_id=settings.storage_access_key_id,
            aws_secret_access_key=settings.storage_secret_access_key,
            region_name="auto",
            config=Config(
                connect_timeout=settings.upstream_timeout_seconds,
                read_timeout=settings.upstream_timeout_seconds,
                retries={"max_attempts": 2},
            ),
        )
        self.bucket = settings.storage_bucket
        self.prefix = settings.storage_key_prefix
        self.public_url = settings.storage_public_url.rstrip("/")

    def object_key(self, file_name: str) -> str:
        return f"{self.prefix}{int(time.time() * 1000)}-{safe_file_name(file_name)}"

    def put(self, data: bytes, file_name: str, content_type: str) -> str:
        key = self.object_key(file_name)
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type or "application/octet-stream",
        )
        return f"{self.public_url}/{key}"


@lru_cache
def get_store() -> ObjectStore:
    return ObjectStore()


async def upload(data: bytes, file_name: str, content_type: str) -> str:
    """Upload in a worker thread; any failure or timeout becomes an UpstreamError."""
    store = get_store()
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(store.put, data, file_name, content_type),
            timeout=settings.upstream_timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.error("upload of %s timed out", file_name)
        raise UpstreamTimeoutError(f"Upload of {file_name} timed out")
    except (BotoCoreError, ClientError) as exc:
        logger.error("upload of %s failed: %s", file_name, exc)
        raise UpstreamError(f"Failed to upload {file_name}")

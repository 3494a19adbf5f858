# services/object_store.py
"""
S3-compatible object storage (Cloudflare R2 in production).

boto3 is blocking, so every call is pushed onto the default executor.
Keys are content-derived, which makes repeated uploads plain overwrites.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from webinar.settings.config import settings

logger = logging.getLogger(__name__)

CACHE_CONTROL = "public, max-age=31536000, immutable"
AUDIO_PREFIX = "audio/"
AUDIO_PROXY_PATH = "/api/audio"


class UploadError(RuntimeError):
    pass


class AudioNotFound(LookupError):
    pass


class StorageError(RuntimeError):
    pass


@dataclass
class StoredObject:
    body: bytes
    content_type: Optional[str]


def make_s3_client():
    kwargs = dict(
        region_name="auto",
        aws_access_key_id=settings.R2_ACCESS_KEY_ID,
        aws_secret_access_key=settings.R2_SECRET_ACCESS_KEY,
    )
    if settings.r2_endpoint:
        kwargs["endpoint_url"] = settings.r2_endpoint
    return boto3.client("s3", **kwargs)


class ObjectStore:
    def __init__(self, client=None, bucket: Optional[str] = None, public_url: Optional[str] = None):
        self._client = client
        self.bucket = bucket or settings.R2_BUCKET
        self.public_url = (settings.R2_PUBLIC_URL if public_url is None else public_url).rstrip("/")

    @property
    def client(self):
        if self._client is None:
            self._client = make_s3_client()
        return self._client

    async def _run(self, func: Callable[..., Any], **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, **kwargs))

    def public_url_for(self, key: str) -> str:
        if self.public_url:
            return f"{self.public_url}/{key}"
        # no public bucket: serve through our own proxy, which re-adds the prefix
        name = key[len(AUDIO_PREFIX):] if key.startswith(AUDIO_PREFIX) else key
        return f"{AUDIO_PROXY_PATH}/{name}"

    async def upload(self, key: str, body: bytes, content_type: str) -> str:
        try:
            await self._run(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
                CacheControl=CACHE_CONTROL,
            )
        except (BotoCoreError, ClientError) as e:
            raise UploadError(f"put_object failed for {key}: {e}") from e
        url = self.public_url_for(key)
        logger.debug("object_store: uploaded %s (%d bytes) -> %s", key, len(body), url)
        return url

    async def fetch(self, key: str) -> StoredObject:
        try:
            result = await self._run(self.client.get_object, Bucket=self.bucket, Key=key)
        except ClientError as e:
            code = (e.response.get("Error") or {}).get("Code", "")
            if code in {"NoSuchKey", "404", "NotFound"}:
                raise AudioNotFound(key) from e
            raise StorageError(f"get_object failed for {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"get_object failed for {key}: {e}") from e

        stream = result.get("Body")
        if stream is None:
            raise AudioNotFound(key)
        try:
            body = await self._run(stream.read)
        except BotoCoreError as e:
            raise StorageError(f"reading {key} failed: {e}") from e
        finally:
            stream.close()
        return StoredObject(body=body, content_type=result.get("ContentType"))


_default_store: Optional[ObjectStore] = None


def get_object_store() -> ObjectStore:
    global _default_store
    if _default_store is None:
        _default_store = ObjectStore()
    return _default_store

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Protocol

from minio import Minio

from field_dispatch.core.config import settings
from field_dispatch.models import now_utc

logger = logging.getLogger(__name__)


class ObjectStore(Protocol):
    async def get_upload_url(self, key: str, content_type: str, expires_in: int) -> dict: ...

    async def get_download_url(self, key: str, expires_in: int) -> str: ...

    async def delete_file(self, key: str) -> None: ...

    def get_public_url(self, key: str) -> str: ...


class _BaseStore:
    def __init__(self, public_url: str):
        self.public_url = public_url.rstrip("/")

    def get_public_url(self, key: str) -> str:
        return f"{self.public_url}/{key}"

    @staticmethod
    def _expires_at(expires_in: int) -> datetime:
        return now_utc() + timedelta(seconds=expires_in)


class MinioObjectStore(_BaseStore):
    """MinIO/S3 backend.

    The minio client is synchronous, so every client call runs in a worker
    thread to keep the event loop free.
    """

    def __init__(self, client: Minio, bucket: str, public_url: str):
        super().__init__(public_url)
        self.client = client
        self.bucket = bucket
        self._bucket_checked = False

    def _ensure_bucket(self) -> None:
        if self._bucket_checked:
            return
        if not self.client.bucket_exists(self.bucket):
            logger.info("creating bucket %s", self.bucket)
            self.client.make_bucket(self.bucket)
        self._bucket_checked = True

    def _presign_put(self, key: str, expires_in: int) -> str:
        self._ensure_bucket()
        return self.client.presigned_put_object(self.bucket, key, expires=timedelta(seconds=expires_in))

    async def get_upload_url(self, key: str, content_type: str, expires_in: int) -> dict:
        url = await asyncio.to_thread(self._presign_put, key, expires_in)
        return {
            "upload_url": url,
            "public_url": self.get_public_url(key),
            "key": key,
            "expires_at": self._expires_at(expires_in),
        }

    async def get_download_url(self, key: str, expires_in: int) -> str:
        return await asyncio.to_thread(
            self.client.presigned_get_object, self.bucket, key, expires=timedelta(seconds=expires_in)
        )

    async def delete_file(self, key: str) -> None:
        await asyncio.to_thread(self.client.remove_object, self.bucket, key)


class LocalObjectStore(_BaseStore):
    """Filesystem backend for development and tests.

    Upload and download URLs are plain ``file://`` URIs under ``root``.
    """

    def __init__(self, root: str, public_url: str):
        super().__init__(public_url)
        self.root = Path(root).resolve()

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root not in path.parents:
            raise ValueError(f"Key escapes storage root: {key}")
        return path

    async def get_upload_url(self, key: str, content_type: str, expires_in: int) -> dict:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        return {
            "upload_url": path.as_uri(),
            "public_url": self.get_public_url(key),
            "key": key,
            "expires_at": self._expires_at(expires_in),
        }

    async def get_download_url(self, key: str, expires_in: int) -> str:
        return self._path(key).as_uri()

    async def delete_file(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


def build_object_store(backend: str | None = None) -> ObjectStore:
    backend = backend or settings.object_store_backend
    if backend == "fs":
        return LocalObjectStore(settings.local_object_store_path, settings.object_store_public_url)
    if backend == "minio":
        # an explicit region keeps presigning offline
        client = Minio(
            settings.minio_endpoint,
            access_key=settings.minio_access_key,
            secret_key=settings.minio_secret_key,
            secure=settings.minio_secure,
            region=settings.minio_region,
        )
        return MinioObjectStore(client, settings.object_store_bucket, settings.object_store_public_url)
    raise ValueError(f"Unsupported object store backend: {backend}")


object_store = build_object_store()

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlencode

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    pass


class ObjectStorage:
    """
    Abstract bucket/path object store. Implementations must support overwrite
    on upload and time-limited access URLs.
    """

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        overwrite: bool = True,
    ) -> None:
        raise NotImplementedError

    def create_signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        raise NotImplementedError


@dataclass
class StoragePaths:
    root: Path

    def bucket_dir(self, bucket: str) -> Path:
        return self.root / bucket

    def object_path(self, bucket: str, path: str) -> Path:
        target = (self.bucket_dir(bucket) / path).resolve()
        if self.bucket_dir(bucket).resolve() not in target.parents:
            raise StorageError(f"Object path escapes bucket {bucket}: {path}")
        return target


class LocalObjectStorage(ObjectStorage):
    """
    Filesystem-backed object store for local runs and tests. Signed URLs are
    file:// URLs carrying the expiry as a query parameter; nothing enforces it.
    """

    def __init__(self, storage_paths: StoragePaths, clock=time.time):
        self.paths = storage_paths
        self.clock = clock

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        overwrite: bool = True,
    ) -> None:
        target = self.paths.object_path(bucket, path)
        if target.exists() and not overwrite:
            raise StorageError(f"Object already exists: {bucket}/{path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        logger.debug("Stored %s bytes at %s (%s)", len(data), target, content_type)

    def read(self, bucket: str, path: str) -> bytes:
        target = self.paths.object_path(bucket, path)
        if not target.exists():
            raise StorageError(f"Object not found: {bucket}/{path}")
        return target.read_bytes()

    def create_signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        target = self.paths.object_path(bucket, path)
        if not target.exists():
            raise StorageError(f"Object not found: {bucket}/{path}")
        expires = int(self.clock()) + int(ttl_seconds)
        return f"{target.as_uri()}?{urlencode({'expires': expires})}"


class SupabaseObjectStorage(ObjectStorage):
    """
    Supabase Storage backend. Expects a service-role client so bucket policies
    do not apply; server use only.
    """

    def __init__(self, client: Any):
        self.client = client

    @classmethod
    def from_credentials(cls, url: Optional[str], key: Optional[str]) -> "SupabaseObjectStorage":
        if not url or not key:
            raise StorageError("Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY")
        from supabase import create_client

        return cls(create_client(url, key))

    def upload(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str = "application/octet-stream",
        overwrite: bool = True,
    ) -> None:
        file_options = {"content-type": content_type, "upsert": "true" if overwrite else "false"}
        self.client.storage.from_(bucket).upload(path, data, file_options=file_options)
        logger.debug("Uploaded %s bytes to supabase %s/%s", len(data), bucket, path)

    def create_signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        signed = self.client.storage.from_(bucket).create_signed_url(path, ttl_seconds)
        url = None
        if isinstance(signed, dict):
            url = signed.get("signedURL") or signed.get("signedUrl")
        if not url:
            raise StorageError(f"No signed URL returned for {bucket}/{path}")
        return url

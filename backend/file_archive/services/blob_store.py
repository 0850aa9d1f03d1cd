"""Blob store abstraction. Local filesystem for dev, S3 for production.

Every backend speaks the same contract: put bytes under a key, delete a key,
and hand out a time-limited URL for reading a key. SDK and OS failures are
re-raised as the typed storage errors from file_archive.errors.
"""
import asyncio
import hashlib
import hmac
import os
import re
import time
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import quote, urlencode

import aiofiles
import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from file_archive.errors import (
    NotFoundError,
    SignatureError,
    StorageDeleteError,
    StorageReadError,
    StorageWriteError,
)


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class BlobStore(ABC):
    """Abstract base class for blob store backends."""

    async def startup(self) -> None:
        """Acquire resources. Called once from the app lifespan."""
        pass

    async def shutdown(self) -> None:
        """Release resources. Called once from the app lifespan."""
        pass

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str, access: str = "private") -> str:
        """Store bytes under key. Returns a backend-specific reference."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete the blob at key. Deleting a missing key is not an error."""

    @abstractmethod
    async def signed_url(self, key: str, ttl_seconds: int) -> str:
        """Return a URL granting read access to key for ttl_seconds."""


class LocalBlobStore(BlobStore):
    """Blobs as files on local disk, read back through HMAC-signed URLs.

    Signed URLs point at the /blobs route, which calls verify() before
    streaming the file.
    """

    def __init__(self, base_path: str, signing_secret: str, public_base_url: str):
        if not signing_secret:
            raise ValueError("LocalBlobStore requires a signing secret")
        self.base_path = Path(base_path)
        self._secret = signing_secret.encode()
        self.public_base_url = public_base_url.rstrip("/")

    def _path_for(self, key: str) -> Path:
        """Map a key onto a single file name inside base_path."""
        name = _UNSAFE_CHARS.sub("-", key.strip())
        if not name or name in (".", ".."):
            raise StorageWriteError(f"Invalid blob key: {key!r}")
        return self.base_path / name

    def _sign(self, key: str, expires: int) -> str:
        message = f"{key}:{expires}".encode()
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    async def put(self, key: str, data: bytes, content_type: str, access: str = "private") -> str:
        file_path = self._path_for(key)
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(file_path, "wb") as f:
                await f.write(data)
        except OSError as e:
            raise StorageWriteError(f"Failed to write blob {key}: {e}") from e
        return str(file_path)

    async def delete(self, key: str) -> None:
        try:
            file_path = self._path_for(key)
        except StorageWriteError as e:
            raise StorageDeleteError(str(e)) from e
        try:
            if file_path.exists():
                os.remove(file_path)
        except OSError as e:
            raise StorageDeleteError(f"Failed to delete blob {key}: {e}") from e

    async def signed_url(self, key: str, ttl_seconds: int) -> str:
        expires = int(time.time()) + ttl_seconds
        query = urlencode({"expires": expires, "signature": self._sign(key, expires)})
        return f"{self.public_base_url}/blobs/{quote(key, safe='')}?{query}"

    def verify(self, key: str, expires: int, signature: str) -> Path:
        """Check a signed reference and return the blob's path on disk."""
        if expires < int(time.time()):
            raise SignatureError("Signed URL has expired")
        if not hmac.compare_digest(self._sign(key, expires), signature):
            raise SignatureError("Invalid signature")
        try:
            file_path = self._path_for(key)
        except StorageWriteError as e:
            raise StorageReadError(str(e)) from e
        if not file_path.is_file():
            raise NotFoundError(f"Blob {key} not found")
        return file_path


class S3BlobStore(BlobStore):
    """Blobs in an S3 (or S3-compatible) bucket via boto3.

    boto3 is sync, so every call runs in a worker thread.
    """

    def __init__(
        self,
        bucket: str,
        region: str,
        access_key_id: str = "",
        secret_access_key: str = "",
        endpoint_url: str = "",
        client=None,
    ):
        self.bucket = bucket
        self._client = client or boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url or None,
            aws_access_key_id=access_key_id or None,
            aws_secret_access_key=secret_access_key or None,
            config=Config(signature_version="s3v4"),
        )

    async def put(self, key: str, data: bytes, content_type: str, access: str = "private") -> str:
        try:
            await asyncio.to_thread(
                self._client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                ACL=access,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageWriteError(f"Failed to upload {key} to s3://{self.bucket}: {e}") from e
        return f"s3://{self.bucket}/{key}"

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._client.delete_object, Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as e:
            raise StorageDeleteError(f"Failed to delete {key} from s3://{self.bucket}: {e}") from e

    async def signed_url(self, key: str, ttl_seconds: int) -> str:
        try:
            return await asyncio.to_thread(
                self._client.generate_presigned_url,
                "get_object",
                Params={"Bucket": self.bucket, "Key": key},
                ExpiresIn=ttl_seconds,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageReadError(f"Failed to sign URL for {key}: {e}") from e

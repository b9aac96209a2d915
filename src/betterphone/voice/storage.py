"""
Object storage for voice recordings.
"""

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import aioboto3
from botocore.exceptions import ClientError

from betterphone.config import Settings, get_settings
from betterphone.shared.exceptions import StorageError
from betterphone.shared.logging import get_logger

logger = get_logger(__name__)

AUDIO_CONTENT_TYPE = "audio/webm"


class AudioStorage(ABC):
    """Abstract audio blob storage."""

    def __init__(self, bucket_name: str, public_base_url: str) -> None:
        self.bucket_name = bucket_name
        self.public_base_url = public_base_url.rstrip("/")

    def public_url(self, key: str) -> str:
        """URL the dashboard uses to play a recording back."""
        return f"{self.public_base_url}/{self.bucket_name}/{key}"

    @abstractmethod
    async def upload(self, key: str, content: bytes, content_type: str = AUDIO_CONTENT_TYPE) -> str:
        """Store (or overwrite) an object and return its key."""

    @abstractmethod
    async def download(self, key: str) -> bytes:
        """Return object content. Raises StorageError when missing."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete an object. Returns True if something was removed."""


class S3AudioStorage(AudioStorage):
    """S3-compatible storage (AWS, MinIO, Supabase storage)."""

    def __init__(
        self,
        bucket_name: str,
        public_base_url: str,
        region: str,
        endpoint_url: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
    ) -> None:
        super().__init__(bucket_name, public_base_url)
        self.region = region
        self.endpoint_url = endpoint_url
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key

    def _get_session(self) -> aioboto3.Session:
        """Get aioboto3 session."""
        return aioboto3.Session(
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            region_name=self.region,
        )

    async def upload(self, key: str, content: bytes, content_type: str = AUDIO_CONTENT_TYPE) -> str:
        session = self._get_session()
        try:
            async with session.client("s3", endpoint_url=self.endpoint_url) as s3:
                await s3.put_object(
                    Bucket=self.bucket_name,
                    Key=key,
                    Body=content,
                    ContentType=content_type,
                )
        except ClientError as e:
            logger.error(
                "Failed to upload recording to S3",
                extra={"bucket": self.bucket_name, "key": key, "error": str(e)},
            )
            raise StorageError(
                message="Failed to upload file",
                operation="upload",
                details={"bucket": self.bucket_name, "key": key},
            ) from e
        logger.info("Recording uploaded to S3", extra={"bucket": self.bucket_name, "key": key})
        return key

    async def download(self, key: str) -> bytes:
        session = self._get_session()
        try:
            async with session.client("s3", endpoint_url=self.endpoint_url) as s3:
                response = await s3.get_object(Bucket=self.bucket_name, Key=key)
                async with response["Body"] as stream:
                    return await stream.read()
        except ClientError as e:
            logger.error(
                "Failed to download recording from S3",
                extra={"bucket": self.bucket_name, "key": key, "error": str(e)},
            )
            raise StorageError(
                message="Failed to download file",
                operation="download",
                details={"bucket": self.bucket_name, "key": key},
            ) from e

    async def delete(self, key: str) -> bool:
        session = self._get_session()
        try:
            async with session.client("s3", endpoint_url=self.endpoint_url) as s3:
                await s3.delete_object(Bucket=self.bucket_name, Key=key)
                return True
        except ClientError as e:
            logger.error(
                "Failed to delete recording from S3",
                extra={"bucket": self.bucket_name, "key": key, "error": str(e)},
            )
            return False


class LocalAudioStorage(AudioStorage):
    """Filesystem storage rooted at ``<root>/<bucket>``; used in development and tests."""

    def __init__(self, root: str | Path, bucket_name: str, public_base_url: str) -> None:
        super().__init__(bucket_name, public_base_url)
        self.root = Path(root) / bucket_name

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise StorageError(message="Invalid storage key", operation="resolve", details={"key": key})
        return path

    async def upload(self, key: str, content: bytes, content_type: str = AUDIO_CONTENT_TYPE) -> str:
        path = self._path(key)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)

        try:
            await asyncio.to_thread(_write)
        except OSError as e:
            raise StorageError(message="Failed to upload file", operation="upload", details={"key": key}) from e
        logger.info("Recording stored locally", extra={"key": key, "bytes": len(content)})
        return key

    async def download(self, key: str) -> bytes:
        path = self._path(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise StorageError(message="Failed to download file", operation="download", details={"key": key}) from e

    async def delete(self, key: str) -> bool:
        path = self._path(key)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return False
        return True


def create_audio_storage(settings: Settings | None = None) -> AudioStorage:
    """Build the storage backend selected by configuration."""
    settings = settings or get_settings()
    if settings.storage_backend == "s3":
        return S3AudioStorage(
            bucket_name=settings.storage_bucket,
            public_base_url=settings.public_storage_url,
            region=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
        )
    return LocalAudioStorage(
        root=settings.storage_local_dir,
        bucket_name=settings.storage_bucket,
        public_base_url=settings.public_storage_url,
    )


def get_audio_storage() -> AudioStorage:
    """FastAPI dependency for the configured audio storage."""
    return create_audio_storage()

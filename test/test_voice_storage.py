"""
Tests for the audio storage backends.
"""

from pathlib import Path

import pytest
from botocore.exceptions import ClientError

from betterphone.config import Settings
from betterphone.shared.exceptions import StorageError
from betterphone.voice.storage import LocalAudioStorage, S3AudioStorage, create_audio_storage


@pytest.fixture
def storage(tmp_path: Path) -> LocalAudioStorage:
    return LocalAudioStorage(root=tmp_path, bucket_name="voice-recordings", public_base_url="https://cdn.test/storage/")


class TestLocalAudioStorage:
    @pytest.mark.asyncio
    async def test_upload_download_delete(self, storage: LocalAudioStorage, tmp_path: Path) -> None:
        key = "sess_1/step-1-1700000000000.webm"

        assert await storage.upload(key, b"audio") == key
        assert (tmp_path / "voice-recordings" / "sess_1" / "step-1-1700000000000.webm").read_bytes() == b"audio"
        assert await storage.download(key) == b"audio"
        assert await storage.delete(key) is True
        assert await storage.delete(key) is False

    @pytest.mark.asyncio
    async def test_upload_overwrites(self, storage: LocalAudioStorage) -> None:
        await storage.upload("sess_1/a.webm", b"first")
        await storage.upload("sess_1/a.webm", b"second")
        assert await storage.download("sess_1/a.webm") == b"second"

    @pytest.mark.asyncio
    async def test_missing_object(self, storage: LocalAudioStorage) -> None:
        with pytest.raises(StorageError) as exc_info:
            await storage.download("sess_1/missing.webm")
        assert exc_info.value.operation == "download"

    @pytest.mark.asyncio
    async def test_keys_cannot_escape_the_bucket(self, storage: LocalAudioStorage) -> None:
        with pytest.raises(StorageError, match="Invalid storage key"):
            await storage.upload("../outside.webm", b"x")

    def test_public_url(self, storage: LocalAudioStorage) -> None:
        assert storage.public_url("sess_1/step-2-1.webm") == (
            "https://cdn.test/storage/voice-recordings/sess_1/step-2-1.webm"
        )


class FailingS3Client:
    async def __aenter__(self) -> "FailingS3Client":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None

    async def _fail(self, **kwargs: object) -> None:
        raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject")

    put_object = get_object = delete_object = _fail


class FailingSession:
    def client(self, service_name: str, endpoint_url: str | None = None) -> FailingS3Client:
        return FailingS3Client()


class TestS3AudioStorage:
    @pytest.fixture
    def s3(self, monkeypatch: pytest.MonkeyPatch) -> S3AudioStorage:
        storage = S3AudioStorage(bucket_name="voice-recordings", public_base_url="https://s3.test", region="us-east-1")
        monkeypatch.setattr(storage, "_get_session", lambda: FailingSession())
        return storage

    @pytest.mark.asyncio
    async def test_client_errors_become_storage_errors(self, s3: S3AudioStorage) -> None:
        with pytest.raises(StorageError, match="Failed to upload file"):
            await s3.upload("k.webm", b"x")
        with pytest.raises(StorageError, match="Failed to download file"):
            await s3.download("k.webm")

    @pytest.mark.asyncio
    async def test_failed_delete_returns_false(self, s3: S3AudioStorage) -> None:
        assert await s3.delete("k.webm") is False


class TestFactory:
    def test_local_backend(self, tmp_path: Path) -> None:
        storage = create_audio_storage(Settings(storage_backend="local", storage_local_dir=str(tmp_path)))

        assert isinstance(storage, LocalAudioStorage)
        assert storage.root == tmp_path / "voice-recordings"

    def test_s3_backend(self) -> None:
        storage = create_audio_storage(
            Settings(storage_backend="s3", storage_bucket="rec", s3_endpoint_url="http://minio:9000")
        )

        assert isinstance(storage, S3AudioStorage)
        assert storage.bucket_name == "rec"
        assert storage.endpoint_url == "http://minio:9000"

"""
Tests for the voice endpoints: upload, transcription, polling and extraction.
"""

import pytest
from fastapi import status
from httpx import AsyncClient

from betterphone.voice.service import parse_recording_id, recording_key
from betterphone.shared.exceptions import NotFoundError, ValidationError

AUDIO = b"\x1a\x45\xdf\xa3fake-webm-bytes"


async def upload(client: AsyncClient, session_id: str = "sess_voice", step: int = 1) -> dict:
    response = await client.post(
        "/api/voice/upload",
        files={"file": ("recording.webm", AUDIO, "audio/webm")},
        data={"sessionId": session_id, "stepNumber": str(step)},
    )
    assert response.status_code == status.HTTP_200_OK, response.text
    return response.json()


class TestUpload:
    """POST /api/voice/upload."""

    @pytest.mark.asyncio
    async def test_upload_stores_blob_and_row(self, async_client: AsyncClient, audio_storage) -> None:
        body = await upload(async_client, step=4)

        assert body["success"] is True
        assert body["recordingId"]
        assert body["url"].startswith("http://test/storage/voice-recordings/sess_voice/step-4-")
        assert body["url"].endswith(".webm")

        key = body["url"].removeprefix("http://test/storage/voice-recordings/")
        assert await audio_storage.download(key) == AUDIO

    @pytest.mark.asyncio
    async def test_uploaded_file_is_served_back(self, async_client: AsyncClient) -> None:
        body = await upload(async_client)
        path = body["url"].removeprefix("http://test")

        response = await async_client.get(path)

        assert response.status_code == status.HTTP_200_OK
        assert response.content == AUDIO
        assert response.headers["content-type"].startswith("audio/webm")

    @pytest.mark.asyncio
    async def test_missing_fields(self, async_client: AsyncClient) -> None:
        response = await async_client.post(
            "/api/voice/upload",
            files={"file": ("recording.webm", AUDIO, "audio/webm")},
            data={"sessionId": "sess_voice"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "Missing required fields"}

    @pytest.mark.asyncio
    async def test_unknown_storage_file(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/storage/voice-recordings/nope/step-1-0.webm")
        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestTranscription:
    """POST /api/transcribe and GET /api/voice/transcription."""

    @pytest.mark.asyncio
    async def test_transcribe_then_poll(self, async_client: AsyncClient, fake_llm) -> None:
        recording_id = (await upload(async_client))["recordingId"]

        poll = await async_client.get("/api/voice/transcription", params={"recordingId": recording_id})
        assert poll.json() == {"transcription": None}

        response = await async_client.post("/api/transcribe", json={"recordingId": recording_id})

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"success": True, "transcript": fake_llm.transcript}
        assert fake_llm.transcription_requests[0].audio == AUDIO
        assert fake_llm.transcription_requests[0].language == "en"

        poll = await async_client.get("/api/voice/transcription", params={"recordingId": recording_id})
        assert poll.json() == {"transcription": fake_llm.transcript}

    @pytest.mark.asyncio
    async def test_transcribe_missing_id(self, async_client: AsyncClient) -> None:
        response = await async_client.post("/api/transcribe", json={})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "Missing recordingId"}

    @pytest.mark.asyncio
    async def test_transcribe_unknown_recording(self, async_client: AsyncClient) -> None:
        response = await async_client.post(
            "/api/transcribe",
            json={"recordingId": "00000000-0000-0000-0000-000000000000"},
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"error": "Recording not found"}

    @pytest.mark.asyncio
    async def test_transcription_failure_marks_recording(self, async_client: AsyncClient, fake_llm, admin_client) -> None:
        recording_id = (await upload(async_client, session_id="sess_fail"))["recordingId"]
        await async_client.post("/api/save", json={"sessionId": "sess_fail"})
        fake_llm.fail = True

        response = await async_client.post("/api/transcribe", json={"recordingId": recording_id})

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json() == {"error": "Transcription failed"}
        detail = (await admin_client.get("/api/admin/responses/sess_fail")).json()
        assert detail["recordings"][0]["processing_status"] == "failed"

    @pytest.mark.asyncio
    async def test_poll_with_malformed_id(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/api/voice/transcription", params={"recordingId": "xyz"})
        assert response.json() == {"transcription": None}

    @pytest.mark.asyncio
    async def test_poll_requires_id(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/api/voice/transcription")
        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestExtraction:
    """POST /api/extract."""

    @pytest.mark.asyncio
    async def test_extract_after_transcription(self, async_client: AsyncClient, fake_llm) -> None:
        recording_id = (await upload(async_client, step=4))["recordingId"]
        await async_client.post("/api/transcribe", json={"recordingId": recording_id})
        fake_llm.chat_replies.append({"urgency_level": 8, "urgency_reasoning": "every night"})

        response = await async_client.post("/api/extract", json={"recordingId": recording_id})

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {
            "success": True,
            "extractedData": {"urgency_level": 8, "urgency_reasoning": "every night"},
        }
        request = fake_llm.chat_requests[-1]
        assert request.response_format == "json_object"
        assert fake_llm.transcript in request.messages[-1].content

    @pytest.mark.asyncio
    async def test_extract_without_transcript(self, async_client: AsyncClient) -> None:
        recording_id = (await upload(async_client))["recordingId"]

        response = await async_client.post("/api/extract", json={"recordingId": recording_id})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "No transcript available for extraction"}


class TestHelpers:
    def test_recording_key(self) -> None:
        assert recording_key("sess_1", 6, timestamp_ms=1700000000000) == "sess_1/step-6-1700000000000.webm"

    def test_parse_recording_id(self) -> None:
        with pytest.raises(ValidationError):
            parse_recording_id(None)
        with pytest.raises(NotFoundError):
            parse_recording_id("not-a-uuid")

"""
Voice pipeline service: upload, transcription and structured extraction.
"""

from __future__ import annotations

import time
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from betterphone.config import Settings, get_settings
from betterphone.llm.gateway import LLMGateway
from betterphone.llm.models import ChatMessage, ChatRequest, LLMError, TranscriptionRequest
from betterphone.llm.parser import parse_json_object
from betterphone.shared.database import utc_now
from betterphone.shared.exceptions import (
    NotFoundError,
    StorageError,
    UpstreamServiceError,
    ValidationError,
)
from betterphone.shared.logging import get_logger
from betterphone.voice.models import ProcessingStatus, VoiceRecording
from betterphone.voice.prompts import SYSTEM_PROMPT, build_extraction_prompt
from betterphone.voice.repository import VoiceRecordingRepository
from betterphone.voice.storage import AUDIO_CONTENT_TYPE, AudioStorage

logger = get_logger(__name__)

RECORDING_NOT_FOUND = "Recording not found"


def recording_key(session_id: str, step_number: int, timestamp_ms: int | None = None) -> str:
    """Storage key ``{sessionId}/step-{n}-{epoch_ms}.webm``."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{session_id}/step-{step_number}-{timestamp_ms}.webm"


def parse_recording_id(value: str | None) -> UUID:
    if not value:
        raise ValidationError("Missing recordingId")
    try:
        return UUID(str(value))
    except ValueError:
        raise NotFoundError(RECORDING_NOT_FOUND) from None


class VoiceService:
    """Coordinates storage, the recordings table and the LLM gateway."""

    def __init__(
        self,
        session: AsyncSession,
        storage: AudioStorage,
        llm: LLMGateway | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._session = session
        self._storage = storage
        self._llm = llm
        self._settings = settings or get_settings()
        self._repo = VoiceRecordingRepository(session)

    def _gateway(self) -> LLMGateway:
        if self._llm is None:
            raise UpstreamServiceError("LLM gateway not configured")
        return self._llm

    async def upload(
        self,
        session_id: str,
        step_number: int,
        content: bytes,
        content_type: str | None = None,
    ) -> VoiceRecording:
        """Store the audio blob and record it as pending."""
        key = recording_key(session_id, step_number)
        await self._storage.upload(key, content, content_type or AUDIO_CONTENT_TYPE)

        recording = VoiceRecording(
            session_id=session_id,
            step_number=step_number,
            storage_key=key,
            file_url=self._storage.public_url(key),
            duration=0,
            processing_status=ProcessingStatus.PENDING.value,
        )
        await self._repo.add(recording)
        await self._session.commit()

        logger.info(
            "Voice recording uploaded",
            extra={
                "session_id": session_id,
                "step_number": step_number,
                "recording_id": str(recording.id),
                "bytes": len(content),
            },
        )
        return recording

    async def _get_recording(self, recording_id: str | None) -> VoiceRecording:
        recording = await self._repo.get(parse_recording_id(recording_id))
        if recording is None:
            raise NotFoundError(RECORDING_NOT_FOUND)
        return recording

    async def transcribe(self, recording_id: str | None) -> str:
        """Transcribe a stored recording and persist the transcript.

        Raises:
            NotFoundError: Unknown recording.
            UpstreamServiceError: Download or speech-to-text failed; the
                recording is marked failed.
        """
        recording = await self._get_recording(recording_id)
        gateway = self._gateway()

        recording.processing_status = ProcessingStatus.PROCESSING.value
        await self._session.commit()

        try:
            audio = await self._storage.download(recording.storage_key)
            result = await gateway.transcribe(
                TranscriptionRequest(
                    audio=audio,
                    filename="audio.webm",
                    model=self._settings.openai_transcription_model,
                    language="en",
                )
            )
        except (StorageError, LLMError) as exc:
            recording.processing_status = ProcessingStatus.FAILED.value
            recording.error_message = str(exc)
            await self._session.commit()
            logger.error(
                "Transcription failed",
                extra={"recording_id": str(recording.id), "error": str(exc)},
            )
            raise UpstreamServiceError("Transcription failed") from exc

        recording.transcript = result.text
        recording.processing_status = ProcessingStatus.COMPLETED.value
        recording.processed_at = utc_now()
        recording.error_message = None
        await self._session.commit()

        logger.info(
            "Recording transcribed",
            extra={"recording_id": str(recording.id), "chars": len(result.text)},
        )
        return result.text

    async def get_transcription(self, recording_id: str) -> str | None:
        """Transcript for polling clients; None when absent or unknown."""
        try:
            recording = await self._repo.get(UUID(recording_id))
        except ValueError:
            return None
        if recording is None:
            return None
        return recording.transcript or None

    async def extract(self, recording_id: str | None) -> dict[str, Any]:
        """Run structured-field extraction over a recording's transcript."""
        recording = await self._get_recording(recording_id)
        if not recording.transcript:
            raise ValidationError("No transcript available for extraction")
        gateway = self._gateway()

        request = ChatRequest(
            messages=[
                ChatMessage.system(SYSTEM_PROMPT),
                ChatMessage.user(build_extraction_prompt(recording.step_number, recording.transcript)),
            ],
            model=self._settings.openai_chat_model,
            response_format="json_object",
            temperature=0.3,
        )
        try:
            response = await gateway.chat_completion(request)
            extracted = parse_json_object(response.content)
        except LLMError as exc:
            logger.error(
                "Extraction failed",
                extra={"recording_id": str(recording.id), "error": str(exc)},
            )
            raise UpstreamServiceError("Extraction failed") from exc

        recording.extracted_data = extracted
        recording.processing_status = ProcessingStatus.COMPLETED.value
        await self._session.commit()

        logger.info(
            "Extraction stored",
            extra={"recording_id": str(recording.id), "fields": sorted(extracted)},
        )
        return extracted


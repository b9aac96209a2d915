"""
Voice recording endpoints: upload, transcription trigger, polling and extraction.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from betterphone.llm.factory import get_llm_gateway
from betterphone.llm.gateway import LLMGateway
from betterphone.shared.database import get_db_session
from betterphone.shared.exceptions import NotFoundError, StorageError, ValidationError
from betterphone.shared.logging import get_logger
from betterphone.voice.schemas import (
    ExtractResponse,
    RecordingIdRequest,
    TranscribeResponse,
    TranscriptionLookupResponse,
    UploadResponse,
)
from betterphone.voice.service import VoiceService
from betterphone.voice.storage import AUDIO_CONTENT_TYPE, AudioStorage, get_audio_storage

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["voice"])
storage_router = APIRouter(prefix="/storage", tags=["voice"])


def get_voice_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    storage: Annotated[AudioStorage, Depends(get_audio_storage)],
    llm: Annotated[LLMGateway, Depends(get_llm_gateway)],
) -> VoiceService:
    return VoiceService(session=session, storage=storage, llm=llm)


@router.post("/voice/upload", response_model=UploadResponse, response_model_by_alias=True)
async def upload_recording(
    service: Annotated[VoiceService, Depends(get_voice_service)],
    file: Annotated[UploadFile | None, File()] = None,
    sessionId: Annotated[str | None, Form()] = None,
    stepNumber: Annotated[str | None, Form()] = None,
) -> UploadResponse:
    """Upload an audio blob for a session/step."""
    if file is None or not sessionId or not stepNumber:
        raise ValidationError("Missing required fields")
    try:
        step_number = int(stepNumber)
    except ValueError:
        raise ValidationError("Missing required fields", details={"stepNumber": stepNumber}) from None

    content = await file.read()
    recording = await service.upload(
        session_id=sessionId,
        step_number=step_number,
        content=content,
        content_type=file.content_type,
    )
    return UploadResponse(success=True, url=recording.file_url, recording_id=recording.id)


@router.post("/transcribe", response_model=TranscribeResponse)
async def transcribe_recording(
    payload: RecordingIdRequest,
    service: Annotated[VoiceService, Depends(get_voice_service)],
) -> TranscribeResponse:
    """Transcribe a recording and store the transcript."""
    transcript = await service.transcribe(payload.recording_id)
    return TranscribeResponse(success=True, transcript=transcript)


@router.get("/voice/transcription", response_model=TranscriptionLookupResponse)
async def get_transcription(
    service: Annotated[VoiceService, Depends(get_voice_service)],
    recordingId: Annotated[str | None, Query()] = None,
) -> TranscriptionLookupResponse:
    """Poll for a recording's transcript; null until available."""
    if not recordingId:
        raise ValidationError("Missing recordingId")
    try:
        transcription = await service.get_transcription(recordingId)
    except Exception:
        logger.exception("Transcription lookup failed", extra={"recording_id": recordingId})
        transcription = None
    return TranscriptionLookupResponse(transcription=transcription)


@router.post("/extract", response_model=ExtractResponse, response_model_by_alias=True)
async def extract_fields(
    payload: RecordingIdRequest,
    service: Annotated[VoiceService, Depends(get_voice_service)],
) -> ExtractResponse:
    """Run structured-field extraction over a recording's transcript."""
    extracted = await service.extract(payload.recording_id)
    return ExtractResponse(success=True, extracted_data=extracted)


@storage_router.get("/{bucket}/{key:path}")
async def read_recording_file(
    bucket: str,
    key: str,
    storage: Annotated[AudioStorage, Depends(get_audio_storage)],
) -> Response:
    """Stream a stored recording back for playback."""
    if bucket != storage.bucket_name:
        raise NotFoundError("Recording file not found")
    try:
        content = await storage.download(key)
    except StorageError:
        raise NotFoundError("Recording file not found") from None
    return Response(content=content, media_type=AUDIO_CONTENT_TYPE)

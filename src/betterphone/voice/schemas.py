"""
Pydantic schemas for the voice endpoints.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from betterphone.shared.schemas import CamelModel


class UploadResponse(CamelModel):
    success: bool = True
    url: str
    recording_id: UUID


class RecordingIdRequest(CamelModel):
    recording_id: str | None = Field(default=None, description="Voice recording id")


class TranscribeResponse(BaseModel):
    success: bool = True
    transcript: str


class TranscriptionLookupResponse(BaseModel):
    transcription: str | None = None


class ExtractResponse(CamelModel):
    success: bool = True
    extracted_data: dict[str, Any]


class VoiceRecordingRead(BaseModel):
    """A voice_recordings row as returned by admin endpoints."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    session_id: str
    step_number: int
    file_url: str
    duration: float
    transcript: str | None = None
    extracted_data: dict[str, Any] | None = None
    processing_status: str
    created_at: datetime
    processed_at: datetime | None = None

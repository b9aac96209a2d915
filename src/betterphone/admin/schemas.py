"""
Pydantic schemas for the admin API.

Envelope and request bodies are camelCase on the wire; embedded database
rows keep their snake_case column names.
"""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from betterphone.shared.schemas import CamelModel
from betterphone.survey.schemas import SurveyResponseRead
from betterphone.voice.schemas import VoiceRecordingRead

UrgencyBucket = Literal["low", "medium", "high", "critical"]


class LoginRequest(CamelModel):
    password: str | None = None


class SuccessResponse(BaseModel):
    success: bool = True


# Dashboard


class FunnelStep(CamelModel):
    step: str
    step_id: str
    count: int
    color: str


class UrgencyDistribution(CamelModel):
    low: int = 0
    medium: int = 0
    high: int = 0
    critical: int = 0
    dominant: UrgencyBucket = "low"
    dominant_pct: int = 0


class DailyActivity(CamelModel):
    date: str
    started: int
    completed: int


class DailyCompletionRate(CamelModel):
    date: str
    rate: int


class TimeSeries(CamelModel):
    daily: list[DailyActivity] = Field(default_factory=list)
    completion_rate: list[DailyCompletionRate] = Field(default_factory=list)


class StepDuration(CamelModel):
    step_id: str
    step_name: str
    avg_duration_seconds: float = 0
    drop_off_pct: int = 0


class RecentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    session_id: str
    email: str | None = None
    is_completed: bool
    started_at: datetime
    current_step: str


class DashboardStats(CamelModel):
    """Everything the admin dashboard renders, recomputed per request."""

    total_responses: int
    completed_responses: int
    voice_recordings: int
    completion_rate: int
    funnel: list[FunnelStep]
    urgency: UrgencyDistribution
    time_series: TimeSeries
    step_durations: list[StepDuration]
    recent_responses: list[RecentResponse]


# Responses


class ResponseListPage(CamelModel):
    data: list[SurveyResponseRead]
    total_count: int
    page: int
    page_size: int
    total_pages: int


class TagRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    color: str
    created_at: datetime


class NoteRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    response_id: UUID
    content: str
    created_at: datetime
    updated_at: datetime


class ResponseDetail(BaseModel):
    """One session with everything the detail view shows."""

    response: SurveyResponseRead
    recordings: list[VoiceRecordingRead]
    tags: list[TagRead]
    notes: list[NoteRead]
    answers: dict[str, dict[str, Any]]


class BulkRequest(CamelModel):
    action: str | None = None
    session_ids: list[str] | None = None
    tag_id: str | None = None


class BulkExportRow(SurveyResponseRead):
    voice_recordings: list[VoiceRecordingRead] = Field(default_factory=list)


class BulkResult(BaseModel):
    success: bool = True
    deleted: int | None = None
    tagged: int | None = None
    data: list[BulkExportRow] | None = None


class CompareRequest(CamelModel):
    session_ids: list[str] | None = None


class TranscriptExcerpt(CamelModel):
    step_number: int
    transcript: str


class ComparisonData(CamelModel):
    session_id: str
    email: str
    is_completed: bool
    pain_check: str | None = None
    issues: list[str] = Field(default_factory=list)
    ranking: list[str] = Field(default_factory=list)
    benefits: list[str] = Field(default_factory=list)
    transcripts: list[TranscriptExcerpt] = Field(default_factory=list)
    ai_summary: dict[str, Any] | None = None
    form_data: dict[str, Any] = Field(default_factory=dict)


class CompareResponse(BaseModel):
    data: list[ComparisonData]


# Insights


class InsightsEnvelope(CamelModel):
    insights: dict[str, Any] | None = None
    response_count: int = 0
    generated_at: datetime | None = None
    cached: bool = False
    stale: bool = False


class ResponseSummaryRequest(CamelModel):
    session_id: str | None = None
    force_refresh: bool = False


class ResponseSummaryEnvelope(BaseModel):
    summary: dict[str, Any]
    cached: bool


class GenerateProfileRequest(CamelModel):
    session_id: str | None = None


class ProfileEnvelope(BaseModel):
    success: bool = True
    profile: dict[str, Any]


# Tags and notes


class TagCreate(CamelModel):
    name: str | None = None
    color: str | None = None


class TagDelete(CamelModel):
    tag_id: str | None = None


class TagAssignRequest(CamelModel):
    response_id: str | None = None
    tag_id: str | None = None


class NoteCreate(CamelModel):
    response_id: str | None = None
    content: str | None = None


class NoteUpdate(CamelModel):
    note_id: str | None = None
    content: str | None = None


class NoteDelete(CamelModel):
    note_id: str | None = None


class TagListResponse(BaseModel):
    tags: list[TagRead]


class TagResponse(BaseModel):
    tag: TagRead


class NoteListResponse(BaseModel):
    notes: list[NoteRead]


class NoteResponse(BaseModel):
    note: NoteRead

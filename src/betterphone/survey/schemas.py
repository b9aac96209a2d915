"""
Pydantic schemas for the save endpoint and response rows.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from betterphone.shared.schemas import CamelModel


class SaveRequest(CamelModel):
    """Body of POST /api/save.

    Besides the named fields the body carries arbitrary answer fields
    (``painCheck``, ``step1Text`` ...); they are kept in ``model_extra``.
    """

    model_config = ConfigDict(extra="allow")

    session_id: str | None = Field(default=None, description="Client-generated session identifier")
    current_step: str | None = Field(default=None, description="Step the respondent is now on")
    is_completed: bool | None = Field(default=None, description="Whether the survey was finished")
    email: str | None = Field(default=None, description="Contact email, kept only when valid")
    survey_type: str | None = Field(default=None, description="parent or school_admin")
    client_seq: int | None = Field(
        default=None,
        ge=0,
        description="Monotonic per-session counter; older saves are ignored",
    )

    def form_fields(self) -> dict[str, Any]:
        """Every body field except the session id and sequence, camelCase keyed."""
        fields = self.model_dump(
            by_alias=True,
            exclude={"session_id", "client_seq"},
            exclude_none=True,
        )
        fields.update(self.model_extra or {})
        return fields


class SurveyResponseRead(BaseModel):
    """A survey_responses row as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    session_id: str
    survey_type: str | None = None
    current_step: str
    form_data: dict[str, Any]
    is_completed: bool
    email: str | None = None
    client_seq: int | None = None
    ai_summary: dict[str, Any] | None = None
    ai_summary_generated_at: datetime | None = None
    started_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None


class SaveResponse(BaseModel):
    success: bool = True
    data: SurveyResponseRead
    stale: bool = False

"""
SQLAlchemy model for survey responses (one row per respondent session).
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, Boolean, DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from betterphone.shared.database import Base, JSONType, utc_now


class SurveyType:
    """Values of survey_responses.survey_type. NULL rows predate the column and are parents."""

    PARENT = "parent"
    SCHOOL_ADMIN = "school_admin"


class SurveyResponse(Base):
    """A respondent's survey attempt, upserted by session_id."""

    __tablename__ = "survey_responses"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    session_id: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
    survey_type: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    current_step: Mapped[str] = mapped_column(String(64), nullable=False, default="unknown")
    form_data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, index=True)
    client_seq: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    ai_summary: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    ai_summary_generated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<SurveyResponse session_id={self.session_id!r} step={self.current_step!r}>"

"""
SQLAlchemy models for admin annotations and the insights cache.
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from betterphone.shared.database import Base, JSONType, utc_now

DEFAULT_TAG_COLOR = "#3B82F6"
GLOBAL_INSIGHTS = "global_insights"


class ResponseTag(Base):
    """A label admins attach to responses."""

    __tablename__ = "response_tags"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    color: Mapped[str] = mapped_column(String(16), nullable=False, default=DEFAULT_TAG_COLOR)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)


class ResponseTagAssignment(Base):
    __tablename__ = "response_tag_assignments"
    __table_args__ = (UniqueConstraint("response_id", "tag_id", name="uq_response_tag"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    response_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("survey_responses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tag_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("response_tags.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)


class AdminNote(Base):
    __tablename__ = "admin_notes"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    response_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("survey_responses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
    )


class AIInsightsCache(Base):
    """Cached LLM output, one row per insight type."""

    __tablename__ = "ai_insights_cache"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    insight_type: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False)
    response_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

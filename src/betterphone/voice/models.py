"""
SQLAlchemy model for uploaded voice recordings.
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Float, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from betterphone.shared.database import Base, JSONType, utc_now


class ProcessingStatus(str, Enum):
    """Recording processing lifecycle."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class VoiceRecording(Base):
    """One uploaded answer recording.

    Re-recording a step inserts a new row; older rows for the same step are
    kept.
    """

    __tablename__ = "voice_recordings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    # Not a foreign key: uploads can race the session's first save
    session_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    step_number: Mapped[int] = mapped_column(Integer, nullable=False)
    storage_key: Mapped[str] = mapped_column(String(512), nullable=False)
    file_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    duration: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    transcript: Mapped[str | None] = mapped_column(Text, nullable=True)
    extracted_data: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    processing_status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=ProcessingStatus.PENDING.value,
        index=True,
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

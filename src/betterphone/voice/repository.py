"""
Voice recording repository for database operations.
"""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from betterphone.voice.models import ProcessingStatus, VoiceRecording


class VoiceRecordingRepository:
    """Repository for voice_recordings rows."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, recording_id: UUID) -> VoiceRecording | None:
        return await self._session.get(VoiceRecording, recording_id)

    async def add(self, recording: VoiceRecording) -> VoiceRecording:
        self._session.add(recording)
        await self._session.flush()
        return recording

    async def list_for_session(self, session_id: str, completed_only: bool = False) -> list[VoiceRecording]:
        stmt = select(VoiceRecording).where(VoiceRecording.session_id == session_id)
        if completed_only:
            stmt = stmt.where(VoiceRecording.processing_status == ProcessingStatus.COMPLETED.value)
        stmt = stmt.order_by(VoiceRecording.step_number, VoiceRecording.created_at)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_for_sessions(self, session_ids: Sequence[str]) -> list[VoiceRecording]:
        if not session_ids:
            return []
        stmt = (
            select(VoiceRecording)
            .where(VoiceRecording.session_id.in_(list(session_ids)))
            .order_by(VoiceRecording.session_id, VoiceRecording.step_number)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_completed(self) -> list[VoiceRecording]:
        stmt = select(VoiceRecording).where(
            VoiceRecording.processing_status == ProcessingStatus.COMPLETED.value
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self._session.execute(select(func.count(VoiceRecording.id)))
        return int(result.scalar_one())

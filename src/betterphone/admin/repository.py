"""
Repositories for admin tags, notes and the insights cache.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from betterphone.admin.models import AdminNote, AIInsightsCache, ResponseTag, ResponseTagAssignment
from betterphone.shared.database import utc_now


class TagRepository:
    """Tags and their assignment to responses."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_all(self) -> list[ResponseTag]:
        result = await self._session.execute(select(ResponseTag).order_by(ResponseTag.created_at))
        return list(result.scalars().all())

    async def get(self, tag_id: UUID) -> ResponseTag | None:
        return await self._session.get(ResponseTag, tag_id)

    async def create(self, name: str, color: str) -> ResponseTag:
        tag = ResponseTag(name=name, color=color)
        self._session.add(tag)
        await self._session.flush()
        return tag

    async def delete(self, tag_id: UUID) -> None:
        await self._session.execute(
            delete(ResponseTagAssignment).where(ResponseTagAssignment.tag_id == tag_id)
        )
        await self._session.execute(delete(ResponseTag).where(ResponseTag.id == tag_id))

    async def assign(self, response_id: UUID, tag_id: UUID) -> bool:
        """Attach a tag to a response. Returns False when it was already attached."""
        stmt = select(ResponseTagAssignment.id).where(
            ResponseTagAssignment.response_id == response_id,
            ResponseTagAssignment.tag_id == tag_id,
        )
        if (await self._session.execute(stmt)).first() is not None:
            return False
        self._session.add(ResponseTagAssignment(response_id=response_id, tag_id=tag_id))
        await self._session.flush()
        return True

    async def unassign(self, response_id: UUID, tag_id: UUID) -> None:
        await self._session.execute(
            delete(ResponseTagAssignment).where(
                ResponseTagAssignment.response_id == response_id,
                ResponseTagAssignment.tag_id == tag_id,
            )
        )

    async def tags_for_response(self, response_id: UUID) -> list[ResponseTag]:
        stmt = (
            select(ResponseTag)
            .join(ResponseTagAssignment, ResponseTagAssignment.tag_id == ResponseTag.id)
            .where(ResponseTagAssignment.response_id == response_id)
            .order_by(ResponseTag.name)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())


class NoteRepository:
    """Free-text admin notes attached to responses."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def list_for_response(self, response_id: UUID) -> list[AdminNote]:
        stmt = (
            select(AdminNote)
            .where(AdminNote.response_id == response_id)
            .order_by(AdminNote.created_at.desc())
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get(self, note_id: UUID) -> AdminNote | None:
        return await self._session.get(AdminNote, note_id)

    async def create(self, response_id: UUID, content: str) -> AdminNote:
        note = AdminNote(response_id=response_id, content=content)
        self._session.add(note)
        await self._session.flush()
        return note

    async def delete(self, note_id: UUID) -> None:
        await self._session.execute(delete(AdminNote).where(AdminNote.id == note_id))


class InsightsCacheRepository:
    """One cached LLM result per insight type."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, insight_type: str) -> AIInsightsCache | None:
        stmt = select(AIInsightsCache).where(AIInsightsCache.insight_type == insight_type)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert(
        self,
        insight_type: str,
        data: dict[str, Any],
        response_count: int,
        expires_at: datetime,
    ) -> AIInsightsCache:
        entry = await self.get(insight_type)
        if entry is None:
            entry = AIInsightsCache(insight_type=insight_type)
            self._session.add(entry)
        entry.data = data
        entry.response_count = response_count
        entry.generated_at = utc_now()
        entry.expires_at = expires_at
        await self._session.flush()
        return entry


"""
Survey response repository for database operations.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Literal, Protocol
from uuid import UUID

from sqlalchemy import Select, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from betterphone.admin.models import AdminNote, ResponseTagAssignment
from betterphone.survey.models import SurveyResponse, SurveyType
from betterphone.voice.models import VoiceRecording

StatusFilter = Literal["all", "completed", "ongoing"]
SurveyTypeFilter = Literal["parent", "school_admin", "all"]


@dataclass
class ResponseFilters:
    """Admin listing filters. Empty values mean "no filter"."""

    status: StatusFilter = "all"
    search: str = ""
    pain_check: str = ""
    has_voice: Literal["", "yes", "no"] = ""
    date_from: date | None = None
    date_to: date | None = None
    tag_ids: list[UUID] = field(default_factory=list)


class SurveyResponseRepositoryProtocol(Protocol):
    """Protocol for survey response persistence."""

    async def get_by_session_id(self, session_id: str) -> SurveyResponse | None:
        ...

    async def add(self, response: SurveyResponse) -> SurveyResponse:
        ...

    async def delete_by_session_ids(self, session_ids: Sequence[str]) -> int:
        ...


def apply_survey_type(stmt: Select, survey_type: SurveyTypeFilter) -> Select:
    """Restrict a statement to one survey flow; legacy NULL rows are parents."""
    if survey_type == "school_admin":
        return stmt.where(SurveyResponse.survey_type == SurveyType.SCHOOL_ADMIN)
    if survey_type == "parent":
        return stmt.where(
            or_(
                SurveyResponse.survey_type == SurveyType.PARENT,
                SurveyResponse.survey_type.is_(None),
            )
        )
    return stmt


class SurveyResponseRepository:
    """Repository for survey response rows."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async database session.
        """
        self._session = session

    async def get_by_session_id(self, session_id: str) -> SurveyResponse | None:
        stmt = select(SurveyResponse).where(SurveyResponse.session_id == session_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id(self, response_id: UUID) -> SurveyResponse | None:
        return await self._session.get(SurveyResponse, response_id)

    async def get_by_session_ids(self, session_ids: Sequence[str]) -> list[SurveyResponse]:
        if not session_ids:
            return []
        stmt = select(SurveyResponse).where(SurveyResponse.session_id.in_(list(session_ids)))
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def add(self, response: SurveyResponse) -> SurveyResponse:
        self._session.add(response)
        await self._session.flush()
        return response

    async def count(self, survey_type: SurveyTypeFilter = "all", completed: bool | None = None) -> int:
        stmt = apply_survey_type(select(func.count(SurveyResponse.id)), survey_type)
        if completed is not None:
            stmt = stmt.where(SurveyResponse.is_completed.is_(completed))
        result = await self._session.execute(stmt)
        return int(result.scalar_one())

    async def list_all(self, survey_type: SurveyTypeFilter = "all") -> list[SurveyResponse]:
        stmt = apply_survey_type(select(SurveyResponse), survey_type)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_recent(self, survey_type: SurveyTypeFilter = "all", limit: int = 8) -> list[SurveyResponse]:
        stmt = (
            apply_survey_type(select(SurveyResponse), survey_type)
            .order_by(SurveyResponse.started_at.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def search(
        self,
        filters: ResponseFilters,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[SurveyResponse], int]:
        """Filtered, paginated listing ordered newest first.

        Returns:
            Tuple of (rows on the page, total matching rows).
        """
        conditions = []

        if filters.status == "completed":
            conditions.append(SurveyResponse.is_completed.is_(True))
        elif filters.status == "ongoing":
            conditions.append(SurveyResponse.is_completed.is_(False))

        if filters.search:
            pattern = f"%{filters.search}%"
            conditions.append(
                or_(
                    SurveyResponse.email.ilike(pattern),
                    SurveyResponse.session_id.ilike(pattern),
                )
            )

        if filters.pain_check:
            conditions.append(SurveyResponse.form_data["painCheck"].as_string() == filters.pain_check)

        if filters.date_from is not None:
            conditions.append(
                SurveyResponse.started_at >= datetime.combine(filters.date_from, time.min, tzinfo=timezone.utc)
            )
        if filters.date_to is not None:
            conditions.append(
                SurveyResponse.started_at <= datetime.combine(filters.date_to, time.max, tzinfo=timezone.utc)
            )

        if filters.has_voice:
            voiced = select(VoiceRecording.session_id).distinct()
            if filters.has_voice == "yes":
                conditions.append(SurveyResponse.session_id.in_(voiced))
            else:
                conditions.append(SurveyResponse.session_id.not_in(voiced))

        if filters.tag_ids:
            tagged = select(ResponseTagAssignment.response_id).where(
                ResponseTagAssignment.tag_id.in_(filters.tag_ids)
            )
            conditions.append(SurveyResponse.id.in_(tagged))

        count_stmt = select(func.count(SurveyResponse.id)).where(*conditions)
        total = int((await self._session.execute(count_stmt)).scalar_one())

        stmt = (
            select(SurveyResponse)
            .where(*conditions)
            .order_by(SurveyResponse.started_at.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all()), total

    async def delete_by_session_ids(self, session_ids: Sequence[str]) -> int:
        """Delete responses together with their recordings, tag assignments and notes."""
        ids = list(session_ids)
        if not ids:
            return 0
        response_ids = select(SurveyResponse.id).where(SurveyResponse.session_id.in_(ids))
        await self._session.execute(
            delete(ResponseTagAssignment).where(ResponseTagAssignment.response_id.in_(response_ids))
        )
        await self._session.execute(delete(AdminNote).where(AdminNote.response_id.in_(response_ids)))
        await self._session.execute(delete(VoiceRecording).where(VoiceRecording.session_id.in_(ids)))
        result = await self._session.execute(delete(SurveyResponse).where(SurveyResponse.session_id.in_(ids)))
        return int(result.rowcount or 0)

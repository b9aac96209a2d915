"""
Admin services: response browsing, bulk actions, comparison and annotations.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any
from uuid import UUID

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from betterphone.admin.models import DEFAULT_TAG_COLOR, AdminNote, ResponseTag
from betterphone.admin.repository import NoteRepository, TagRepository
from betterphone.admin.schemas import (
    BulkExportRow,
    BulkResult,
    ComparisonData,
    NoteRead,
    ResponseDetail,
    ResponseListPage,
    TagRead,
    TranscriptExcerpt,
)
from betterphone.shared.database import utc_now
from betterphone.shared.exceptions import NotFoundError, ValidationError
from betterphone.shared.logging import get_logger
from betterphone.survey.answers import StepAnswers
from betterphone.survey.repository import ResponseFilters, SurveyResponseRepository
from betterphone.survey.schemas import SurveyResponseRead
from betterphone.survey.variants import PARENT, SCHOOL_ADMIN, SurveyVariant
from betterphone.voice.repository import VoiceRecordingRepository
from betterphone.voice.schemas import VoiceRecordingRead

logger = get_logger(__name__)

BULK_ACTIONS = ("delete", "export", "tag")
COMPARISON_FORM_FIELDS = (
    "kidAges",
    "kidsWithPhones",
    "currentDevice",
    "deviceDuration",
    "priceWillingness",
    "step1Text",
    "step4Text",
    "step5Text",
    "step6Text",
)


def parse_uuid(value: str | None, message: str) -> UUID:
    """Parse an id from a request body or query, raising a 400 with ``message``."""
    if not value:
        raise ValidationError(message)
    try:
        return UUID(str(value))
    except ValueError:
        raise ValidationError(message, details={"value": value}) from None


def variant_for(survey_type: str | None) -> SurveyVariant:
    return SCHOOL_ADMIN if survey_type == SCHOOL_ADMIN.survey_type else PARENT


class ResponseAdminService:
    """Read and bulk-modify survey responses for the admin views."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._responses = SurveyResponseRepository(session)
        self._recordings = VoiceRecordingRepository(session)
        self._tags = TagRepository(session)
        self._notes = NoteRepository(session)

    async def list_responses(self, filters: ResponseFilters, page: int, page_size: int) -> ResponseListPage:
        rows, total = await self._responses.search(filters, page=page, page_size=page_size)
        return ResponseListPage(
            data=[SurveyResponseRead.model_validate(row) for row in rows],
            total_count=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size),
        )

    async def get_detail(self, session_id: str) -> ResponseDetail:
        response = await self._responses.get_by_session_id(session_id)
        if response is None:
            raise NotFoundError("Response not found")

        recordings = await self._recordings.list_for_session(session_id)
        tags = await self._tags.tags_for_response(response.id)
        notes = await self._notes.list_for_response(response.id)

        try:
            answers = StepAnswers.from_form_data(variant_for(response.survey_type), response.form_data or {}).model_dump()
        except PydanticValidationError as exc:
            logger.warning(
                "Stored answers do not match step types",
                extra={"session_id": session_id, "errors": exc.error_count()},
            )
            answers = {}

        return ResponseDetail(
            response=SurveyResponseRead.model_validate(response),
            recordings=[VoiceRecordingRead.model_validate(r) for r in recordings],
            tags=[TagRead.model_validate(t) for t in tags],
            notes=[NoteRead.model_validate(n) for n in notes],
            answers=answers,
        )

    async def bulk(self, action: str | None, session_ids: Sequence[str] | None, tag_id: str | None) -> BulkResult:
        if not action or not session_ids:
            raise ValidationError("Missing action or sessionIds")

        if action == "delete":
            deleted = await self._responses.delete_by_session_ids(session_ids)
            await self._session.commit()
            logger.info("Bulk delete", extra={"requested": len(session_ids), "deleted": deleted})
            return BulkResult(deleted=deleted)

        if action == "export":
            rows = await self._responses.get_by_session_ids(session_ids)
            recordings = await self._recordings.list_for_sessions([row.session_id for row in rows])
            by_session: dict[str, list[VoiceRecordingRead]] = {}
            for recording in recordings:
                by_session.setdefault(recording.session_id, []).append(VoiceRecordingRead.model_validate(recording))
            data = [
                BulkExportRow(
                    **SurveyResponseRead.model_validate(row).model_dump(),
                    voice_recordings=by_session.get(row.session_id, []),
                )
                for row in rows
            ]
            return BulkResult(data=data)

        if action == "tag":
            tag_uuid = parse_uuid(tag_id, "Missing tagId")
            rows = await self._responses.get_by_session_ids(session_ids)
            for row in rows:
                await self._tags.assign(row.id, tag_uuid)
            await self._session.commit()
            logger.info("Bulk tag", extra={"tag_id": str(tag_uuid), "tagged": len(rows)})
            return BulkResult(tagged=len(rows))

        raise ValidationError("Invalid action", details={"action": action, "allowed": list(BULK_ACTIONS)})

    async def compare(self, session_ids: Sequence[str] | None) -> list[ComparisonData]:
        if not session_ids or not 2 <= len(session_ids) <= 3:
            raise ValidationError("Provide 2-3 session IDs")

        results = []
        for session_id in session_ids:
            response = await self._responses.get_by_session_id(session_id)
            if response is None:
                continue
            form: dict[str, Any] = response.form_data or {}
            recordings = await self._recordings.list_for_session(session_id, completed_only=True)
            results.append(
                ComparisonData(
                    session_id=response.session_id,
                    email=response.email or form.get("email") or "Anonymous",
                    is_completed=response.is_completed,
                    pain_check=form.get("painCheck") or None,
                    issues=form.get("issues") or [],
                    ranking=form.get("ranking") or [],
                    benefits=form.get("benefits") or [],
                    transcripts=[
                        TranscriptExcerpt(step_number=r.step_number, transcript=r.transcript)
                        for r in recordings
                        if r.transcript
                    ],
                    ai_summary=response.ai_summary,
                    form_data={name: form.get(name) for name in COMPARISON_FORM_FIELDS},
                )
            )

        if len(results) < 2:
            raise NotFoundError("Could not find enough valid responses")
        return results


class AnnotationService:
    """Tags and notes."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._tags = TagRepository(session)
        self._notes = NoteRepository(session)

    async def list_tags(self) -> list[ResponseTag]:
        return await self._tags.list_all()

    async def create_tag(self, name: str | None, color: str | None) -> ResponseTag:
        if not name:
            raise ValidationError("Missing name")
        tag = await self._tags.create(name=name, color=color or DEFAULT_TAG_COLOR)
        await self._session.commit()
        logger.info("Tag created", extra={"tag_id": str(tag.id), "tag_name": name})
        return tag

    async def delete_tag(self, tag_id: str | None) -> None:
        await self._tags.delete(parse_uuid(tag_id, "Missing tagId"))
        await self._session.commit()

    async def assign_tag(self, response_id: str | None, tag_id: str | None) -> None:
        message = "Missing responseId or tagId"
        if not response_id or not tag_id:
            raise ValidationError(message)
        await self._tags.assign(parse_uuid(response_id, message), parse_uuid(tag_id, message))
        await self._session.commit()

    async def unassign_tag(self, response_id: str | None, tag_id: str | None) -> None:
        message = "Missing responseId or tagId"
        if not response_id or not tag_id:
            raise ValidationError(message)
        await self._tags.unassign(parse_uuid(response_id, message), parse_uuid(tag_id, message))
        await self._session.commit()

    async def list_notes(self, response_id: str | None) -> list[AdminNote]:
        return await self._notes.list_for_response(parse_uuid(response_id, "Missing responseId"))

    async def create_note(self, response_id: str | None, content: str | None) -> AdminNote:
        if not response_id or not content:
            raise ValidationError("Missing fields")
        note = await self._notes.create(parse_uuid(response_id, "Missing fields"), content)
        await self._session.commit()
        return note

    async def update_note(self, note_id: str | None, content: str | None) -> None:
        if not note_id or not content:
            raise ValidationError("Missing fields")
        note = await self._notes.get(parse_uuid(note_id, "Missing fields"))
        if note is None:
            raise NotFoundError("Note not found")
        note.content = content
        note.updated_at = utc_now()
        await self._session.commit()

    async def delete_note(self, note_id: str | None) -> None:
        await self._notes.delete(parse_uuid(note_id, "Missing noteId"))
        await self._session.commit()

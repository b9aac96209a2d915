"""
Save service: idempotent upsert of a session's accumulated answers.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from betterphone.shared.database import utc_now
from betterphone.shared.exceptions import ValidationError
from betterphone.shared.logging import get_logger
from betterphone.survey.models import SurveyResponse
from betterphone.survey.repository import SurveyResponseRepository
from betterphone.survey.schemas import SaveRequest
from betterphone.survey.validation import is_valid_email

logger = get_logger(__name__)

DEFAULT_CLIENT_IP = "127.0.0.1"


def client_ip_from_headers(headers: Any) -> str:
    """Client IP from x-forwarded-for (first hop), then x-real-ip."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return headers.get("x-real-ip") or DEFAULT_CLIENT_IP


class SaveResult:
    __slots__ = ("response", "stale")

    def __init__(self, response: SurveyResponse, stale: bool) -> None:
        self.response = response
        self.stale = stale


class SaveService:
    """Upserts survey_responses rows keyed by session_id."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._repo = SurveyResponseRepository(session)

    async def save(self, request: SaveRequest, client_ip: str = DEFAULT_CLIENT_IP) -> SaveResult:
        """Merge the request into the session's row, creating it if needed.

        A request carrying a ``clientSeq`` lower than the stored one is
        stale: the row is returned untouched.
        """
        session_id = (request.session_id or "").strip()
        if not session_id:
            raise ValidationError("Missing sessionId")

        fields = request.form_fields()
        fields["ipAddress"] = client_ip

        try:
            result = await self._upsert(session_id, request, fields)
        except IntegrityError:
            # A concurrent first save inserted the row; retry as an update
            await self._session.rollback()
            logger.info("Save raced an insert; retrying as update", extra={"session_id": session_id})
            result = await self._upsert(session_id, request, fields)

        await self._session.commit()
        return result

    async def _upsert(self, session_id: str, request: SaveRequest, fields: dict[str, Any]) -> SaveResult:
        response = await self._repo.get_by_session_id(session_id)
        seq = request.client_seq

        if response is not None and seq is not None and response.client_seq is not None and seq < response.client_seq:
            logger.info(
                "Ignoring stale save",
                extra={"session_id": session_id, "client_seq": seq, "stored_seq": response.client_seq},
            )
            return SaveResult(response, stale=True)

        email = request.email if is_valid_email(request.email) else None
        completed = bool(request.is_completed)

        if response is None:
            response = SurveyResponse(
                session_id=session_id,
                survey_type=request.survey_type,
                current_step=request.current_step or "unknown",
                form_data=fields,
                is_completed=completed,
                email=email,
                client_seq=seq,
                completed_at=utc_now() if completed else None,
            )
            await self._repo.add(response)
            logger.info(
                "Survey session created",
                extra={"session_id": session_id, "survey_type": request.survey_type},
            )
            return SaveResult(response, stale=False)

        # Shallow merge: top-level keys overwrite, nested values are replaced
        response.form_data = {**(response.form_data or {}), **fields}
        response.current_step = request.current_step or response.current_step or "unknown"
        if email is not None:
            response.email = email
        if request.survey_type and not response.survey_type:
            response.survey_type = request.survey_type
        if completed and not response.is_completed:
            response.is_completed = True
            response.completed_at = utc_now()
        if seq is not None:
            response.client_seq = seq
        response.updated_at = utc_now()
        await self._session.flush()

        logger.info(
            "Survey session saved",
            extra={
                "session_id": session_id,
                "current_step": response.current_step,
                "is_completed": response.is_completed,
            },
        )
        return SaveResult(response, stale=False)

"""
Respondent save endpoint.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from betterphone.shared.database import get_db_session
from betterphone.shared.exceptions import AppError, UpstreamServiceError
from betterphone.shared.logging import get_logger
from betterphone.survey.schemas import SaveRequest, SaveResponse, SurveyResponseRead
from betterphone.survey.service import SaveService, client_ip_from_headers

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["survey"])


def get_save_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> SaveService:
    return SaveService(session)


@router.post("/save", response_model=SaveResponse)
async def save_response(
    payload: SaveRequest,
    request: Request,
    service: Annotated[SaveService, Depends(get_save_service)],
) -> SaveResponse:
    """Upsert a session's accumulated answers, keyed by sessionId."""
    try:
        result = await service.save(payload, client_ip=client_ip_from_headers(request.headers))
    except AppError:
        raise
    except Exception as exc:
        logger.exception("Failed to save response", extra={"session_id": payload.session_id})
        raise UpstreamServiceError("Failed to save response") from exc

    return SaveResponse(
        success=True,
        data=SurveyResponseRead.model_validate(result.response),
        stale=result.stale,
    )

"""
Admin API: login, dashboard stats, response browsing, insights and annotations.

Every route except login/logout re-checks the admin session cookie through
the ``require_admin`` dependency.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from betterphone.admin.auth import (
    AdminAuthenticator,
    clear_session_cookie,
    get_authenticator,
    require_admin,
    set_session_cookie,
)
from betterphone.admin.insights import InsightsService
from betterphone.admin.schemas import (
    BulkRequest,
    BulkResult,
    CompareRequest,
    CompareResponse,
    DashboardStats,
    GenerateProfileRequest,
    InsightsEnvelope,
    LoginRequest,
    NoteCreate,
    NoteDelete,
    NoteListResponse,
    NoteRead,
    NoteResponse,
    NoteUpdate,
    ProfileEnvelope,
    ResponseDetail,
    ResponseListPage,
    ResponseSummaryEnvelope,
    ResponseSummaryRequest,
    SuccessResponse,
    TagAssignRequest,
    TagCreate,
    TagDelete,
    TagListResponse,
    TagRead,
    TagResponse,
)
from betterphone.admin.service import AnnotationService, ResponseAdminService, parse_uuid
from betterphone.admin.stats import DashboardService
from betterphone.llm.factory import get_llm_gateway
from betterphone.llm.gateway import LLMGateway
from betterphone.shared.database import get_db_session
from betterphone.shared.exceptions import AppError, UnauthorizedError, UpstreamServiceError
from betterphone.shared.logging import get_logger
from betterphone.survey.repository import ResponseFilters

logger = get_logger(__name__)

auth_router = APIRouter(prefix="/api/admin", tags=["admin"])
router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])

DbSession = Annotated[AsyncSession, Depends(get_db_session)]


@contextmanager
def failure_message(message: str) -> Iterator[None]:
    """Let AppErrors through; report anything else as a 500 with ``message``."""
    try:
        yield
    except AppError:
        raise
    except Exception as exc:
        logger.exception(message)
        raise UpstreamServiceError(message) from exc


def get_response_service(session: DbSession) -> ResponseAdminService:
    return ResponseAdminService(session)


def get_annotation_service(session: DbSession) -> AnnotationService:
    return AnnotationService(session)


def get_dashboard_service(session: DbSession) -> DashboardService:
    return DashboardService(session)


def get_insights_service(
    session: DbSession,
    llm: Annotated[LLMGateway, Depends(get_llm_gateway)],
) -> InsightsService:
    return InsightsService(session=session, llm=llm)


# Session


@auth_router.post("/login", response_model=SuccessResponse)
async def login(
    payload: LoginRequest,
    authenticator: Annotated[AdminAuthenticator, Depends(get_authenticator)],
) -> JSONResponse:
    """Exchange the admin password for a session cookie."""
    if not authenticator.verify_credential(payload.password or ""):
        logger.warning("Admin login rejected")
        raise UnauthorizedError("Invalid password")

    response = JSONResponse(content={"success": True})
    set_session_cookie(response, authenticator.issue_session())
    logger.info("Admin logged in")
    return response


@auth_router.post("/logout", response_model=SuccessResponse)
async def logout() -> JSONResponse:
    response = JSONResponse(content={"success": True})
    clear_session_cookie(response)
    return response


# Dashboard


@router.get("/stats", response_model=DashboardStats)
async def get_stats(
    service: Annotated[DashboardService, Depends(get_dashboard_service)],
    type: Annotated[Literal["parent", "school_admin", "all"], Query()] = "parent",
) -> DashboardStats:
    """Aggregate dashboard statistics for one survey type."""
    with failure_message("Failed to compute stats"):
        return await service.get_stats(type)


# Responses


@router.get("/responses", response_model=ResponseListPage)
async def list_responses(
    service: Annotated[ResponseAdminService, Depends(get_response_service)],
    page: int = 1,
    pageSize: int = 20,
    status: str = "all",
    search: str = "",
    painCheck: str = "",
    hasVoice: str = "",
    dateFrom: date | None = None,
    dateTo: date | None = None,
    tags: str = "",
) -> ResponseListPage:
    """Paginated, filtered listing of sessions, newest first."""
    page = max(1, page)
    page_size = min(100, max(1, pageSize))
    filters = ResponseFilters(
        status=status if status in ("completed", "ongoing") else "all",
        search=search,
        pain_check=painCheck,
        has_voice=hasVoice if hasVoice in ("yes", "no") else "",
        date_from=dateFrom,
        date_to=dateTo,
        tag_ids=[parse_uuid(tag, "Invalid tag id") for tag in tags.split(",") if tag],
    )
    with failure_message("Failed to fetch responses"):
        return await service.list_responses(filters, page=page, page_size=page_size)


@router.get("/responses/{session_id}", response_model=ResponseDetail)
async def get_response(
    session_id: str,
    service: Annotated[ResponseAdminService, Depends(get_response_service)],
) -> ResponseDetail:
    """One session with its recordings, tags, notes and typed answers."""
    with failure_message("Failed to fetch response"):
        return await service.get_detail(session_id)


@router.post("/bulk", response_model=BulkResult, response_model_exclude_none=True)
async def bulk_action(
    payload: BulkRequest,
    service: Annotated[ResponseAdminService, Depends(get_response_service)],
) -> BulkResult:
    """Delete, export or tag several sessions at once."""
    with failure_message("Bulk operation failed"):
        return await service.bulk(payload.action, payload.session_ids, payload.tag_id)


@router.post("/compare", response_model=CompareResponse, response_model_by_alias=True)
async def compare_responses(
    payload: CompareRequest,
    service: Annotated[ResponseAdminService, Depends(get_response_service)],
) -> CompareResponse:
    with failure_message("Failed to fetch comparison data"):
        return CompareResponse(data=await service.compare(payload.session_ids))


# Insights


@router.get("/insights", response_model=InsightsEnvelope)
async def get_insights(
    service: Annotated[InsightsService, Depends(get_insights_service)],
) -> InsightsEnvelope:
    """Cached aggregate insights; insights is null when nothing is cached."""
    try:
        return await service.get_cached()
    except Exception:
        logger.exception("Failed to read cached insights")
        return InsightsEnvelope(insights=None, response_count=0)


@router.post("/insights", response_model=InsightsEnvelope)
async def generate_insights(
    service: Annotated[InsightsService, Depends(get_insights_service)],
) -> InsightsEnvelope:
    """Generate fresh aggregate insights and cache them."""
    with failure_message("Failed to generate insights"):
        return await service.generate()


@router.post("/insights/response-summary", response_model=ResponseSummaryEnvelope)
async def response_summary(
    payload: ResponseSummaryRequest,
    service: Annotated[InsightsService, Depends(get_insights_service)],
) -> ResponseSummaryEnvelope:
    """Per-response summary, cached on the response row."""
    with failure_message("Failed to generate summary"):
        summary, cached = await service.response_summary(payload.session_id, payload.force_refresh)
    return ResponseSummaryEnvelope(summary=summary, cached=cached)


@router.post("/generate-profile", response_model=ProfileEnvelope)
async def generate_profile(
    payload: GenerateProfileRequest,
    service: Annotated[InsightsService, Depends(get_insights_service)],
) -> ProfileEnvelope:
    """Sales profile for one response."""
    with failure_message("Failed to generate profile"):
        profile = await service.generate_profile(payload.session_id)
    return ProfileEnvelope(profile=profile)


# Tags


@router.get("/tags", response_model=TagListResponse)
async def list_tags(
    service: Annotated[AnnotationService, Depends(get_annotation_service)],
) -> TagListResponse:
    with failure_message("Failed to fetch tags"):
        tags = await service.list_tags()
    return TagListResponse(tags=[TagRead.model_validate(tag) for tag in tags])


@router.post("/tags", response_model=TagResponse)
async def create_tag(
    payload: TagCreate,
    service: Annotated[AnnotationService, Depends(get_annotation_service)],
) -> TagResponse:
    with failure_message("Failed to create tag"):
        tag = await service.create_tag(payload.name, payload.color)
    return TagResponse(tag=TagRead.model_validate(tag))


@router.delete("/tags", response_model=SuccessResponse)
async def delete_tag(
    payload: TagDelete,
    service: Annotated[AnnotationService, Depends(get_annotation_service)],
) -> SuccessResponse:
    with failure_message("Failed to delete tag"):
        await service.delete_tag(payload.tag_id)
    return SuccessResponse()


@router.post("/tags/assign", response_model=SuccessResponse)
async def assign_tag(
    payload: TagAssignRequest,
    service: Annotated[AnnotationService, Depends(get_annotation_service)],
) -> SuccessResponse:
    with failure_message("Failed to assign tag"):
        await service.assign_tag(payload.response_id, payload.tag_id)
    return SuccessResponse()


@router.delete("/tags/assign", response_model=SuccessResponse)
async def unassign_tag(
    payload: TagAssignRequest,
    service: Annotated[AnnotationService, Depends(get_annotation_service)],
) -> SuccessResponse:
    with failure_message("Failed to unassign tag"):
        await service.unassign_tag(payload.response_id, payload.tag_id)
    return SuccessResponse()


# Notes


@router.get("/notes", response_model=NoteListResponse)
async def list_notes(
    service: Annotated[AnnotationService, Depends(get_annotation_service)],
    responseId: str | None = None,
) -> NoteListResponse:
    with failure_message("Failed to fetch notes"):
        notes = await service.list_notes(responseId)
    return NoteListResponse(notes=[NoteRead.model_validate(note) for note in notes])


@router.post("/notes", response_model=NoteResponse)
async def create_note(
    payload: NoteCreate,
    service: Annotated[AnnotationService, Depends(get_annotation_service)],
) -> NoteResponse:
    with failure_message("Failed to create note"):
        note = await service.create_note(payload.response_id, payload.content)
    return NoteResponse(note=NoteRead.model_validate(note))


@router.put("/notes", response_model=SuccessResponse)
async def update_note(
    payload: NoteUpdate,
    service: Annotated[AnnotationService, Depends(get_annotation_service)],
) -> SuccessResponse:
    with failure_message("Failed to update note"):
        await service.update_note(payload.note_id, payload.content)
    return SuccessResponse()


@router.delete("/notes", response_model=SuccessResponse)
async def delete_note(
    payload: NoteDelete,
    service: Annotated[AnnotationService, Depends(get_annotation_service)],
) -> SuccessResponse:
    with failure_message("Failed to delete note"):
        await service.delete_note(payload.note_id)
    return SuccessResponse()

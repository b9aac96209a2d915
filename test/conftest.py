"""
Pytest configuration and shared fixtures.

API tests run the real FastAPI app against an in-memory SQLite database,
a temporary local audio store and a scripted LLM gateway.
"""
from __future__ import annotations

import json
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from betterphone.admin import models as admin_models  # noqa: F401
from betterphone.admin.auth import ADMIN_COOKIE_NAME, SHARED_SESSION_VALUE
from betterphone.client.api import RecordedAudio, SurveyApiError, UploadResult
from betterphone.llm.factory import get_llm_gateway
from betterphone.llm.models import (
    ChatRequest,
    ChatResponse,
    LLMProvider,
    LLMProviderError,
    TranscriptionRequest,
    TranscriptionResult,
)
from betterphone.main import app
from betterphone.shared.database import Base, get_db_session
from betterphone.survey import models as survey_models  # noqa: F401
from betterphone.voice import models as voice_models  # noqa: F401
from betterphone.voice.storage import LocalAudioStorage, get_audio_storage

TEST_ADMIN_PASSWORD = "test-admin-password"


class FakeLLMGateway:
    """Scripted gateway: replies are JSON-encoded dicts, calls are recorded."""

    def __init__(self) -> None:
        self.chat_replies: list[dict[str, Any]] = []
        self.default_reply: dict[str, Any] = {"summary": "ok"}
        self.transcript = "My kid is on the phone all night"
        self.fail = False
        self.chat_requests: list[ChatRequest] = []
        self.transcription_requests: list[TranscriptionRequest] = []

    @property
    def provider(self) -> LLMProvider:
        return LLMProvider.OPENAI

    async def chat_completion(self, request: ChatRequest) -> ChatResponse:
        self.chat_requests.append(request)
        if self.fail:
            raise LLMProviderError("scripted failure", provider=self.provider)
        reply = self.chat_replies.pop(0) if self.chat_replies else self.default_reply
        return ChatResponse(
            content=json.dumps(reply),
            model=request.model or "fake-model",
            provider=self.provider,
            correlation_id=request.correlation_id,
            latency_ms=1.0,
        )

    async def transcribe(self, request: TranscriptionRequest) -> TranscriptionResult:
        self.transcription_requests.append(request)
        if self.fail:
            raise LLMProviderError("scripted failure", provider=self.provider)
        return TranscriptionResult(
            text=self.transcript,
            model=request.model or "whisper-1",
            provider=self.provider,
            latency_ms=1.0,
        )


@pytest.fixture(autouse=True)
def test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Deterministic settings for every test."""
    monkeypatch.setenv("APP_ENV", "dev")
    monkeypatch.setenv("ADMIN_PASSWORD", TEST_ADMIN_PASSWORD)
    monkeypatch.setenv("ADMIN_AUTH_SCHEME", "shared_password")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_llm() -> FakeLLMGateway:
    return FakeLLMGateway()


@pytest.fixture
def audio_storage(tmp_path: Path) -> LocalAudioStorage:
    return LocalAudioStorage(
        root=tmp_path / "storage",
        bucket_name="voice-recordings",
        public_base_url="http://test/storage",
    )


@pytest.fixture
def override_dependencies(
    session_factory: async_sessionmaker[AsyncSession],
    fake_llm: FakeLLMGateway,
    audio_storage: LocalAudioStorage,
):
    async def _get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = _get_db_session
    app.dependency_overrides[get_llm_gateway] = lambda: fake_llm
    app.dependency_overrides[get_audio_storage] = lambda: audio_storage
    yield
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def async_client(override_dependencies: None) -> AsyncGenerator[AsyncClient, None]:
    """Anonymous client (respondent endpoints)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def admin_client(override_dependencies: None) -> AsyncGenerator[AsyncClient, None]:
    """Client carrying a valid admin session cookie."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Cookie": f"{ADMIN_COOKIE_NAME}={SHARED_SESSION_VALUE}"},
    ) as client:
        yield client


async def save_session(client: AsyncClient, session_id: str, **fields: Any) -> dict[str, Any]:
    """POST /api/save and return the stored row."""
    response = await client.post("/api/save", json={"sessionId": session_id, **fields})
    assert response.status_code == 200, response.text
    return response.json()["data"]


@pytest.fixture
def saved():
    """Helper fixture: ``await saved(client, session_id, **fields)``."""
    return save_session


@pytest.fixture
def admin_password() -> str:
    return TEST_ADMIN_PASSWORD


class FakeSurveyApi:
    """In-memory stand-in for SurveyApiClient used by client-side tests."""

    def __init__(self) -> None:
        self.saves: list[dict[str, Any]] = []
        self.uploads: list[tuple[str, int, RecordedAudio]] = []
        self.transcribed: list[str] = []
        self.upload_failures = 0
        self.transcripts: list[str | None] = []
        self.fail_saves = False

    async def save(self, payload: dict[str, Any]) -> dict[str, Any]:
        if self.fail_saves:
            raise SurveyApiError("Internal server error", status_code=500)
        self.saves.append(payload)
        return {"success": True, "stale": False}

    async def upload_recording(self, session_id: str, step_number: int, audio: RecordedAudio) -> UploadResult:
        if self.upload_failures:
            self.upload_failures -= 1
            raise SurveyApiError("Upload failed", status_code=500)
        self.uploads.append((session_id, step_number, audio))
        return UploadResult(url=f"http://test/storage/{session_id}/step-{step_number}.webm", recording_id="rec-1")

    async def transcribe(self, recording_id: str) -> str:
        self.transcribed.append(recording_id)
        return "transcript"

    async def get_transcription(self, recording_id: str) -> str | None:
        return self.transcripts.pop(0) if self.transcripts else None


@pytest.fixture
def fake_api() -> FakeSurveyApi:
    return FakeSurveyApi()

"""
Tests for POST /api/save.
"""

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateTable

from betterphone.survey.models import SurveyResponse
from betterphone.survey.service import client_ip_from_headers


class TestSaveEndpoint:
    """Upsert semantics of the save endpoint."""

    @pytest.mark.asyncio
    async def test_missing_session_id(self, async_client: AsyncClient) -> None:
        response = await async_client.post("/api/save", json={"painCheck": "yes"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"error": "Missing sessionId"}

    @pytest.mark.asyncio
    async def test_first_save_creates_row(self, async_client: AsyncClient) -> None:
        response = await async_client.post(
            "/api/save",
            json={
                "sessionId": "sess_1_abc",
                "currentStep": "pain-check",
                "isCompleted": False,
                "surveyType": "parent",
                "painCheck": "yes",
            },
        )

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["success"] is True
        assert body["stale"] is False
        row = body["data"]
        assert row["session_id"] == "sess_1_abc"
        assert row["current_step"] == "pain-check"
        assert row["survey_type"] == "parent"
        assert row["is_completed"] is False
        assert row["form_data"]["painCheck"] == "yes"
        assert row["form_data"]["ipAddress"] == "127.0.0.1"
        assert "sessionId" not in row["form_data"]

    @pytest.mark.asyncio
    async def test_saves_merge_answers(self, async_client: AsyncClient, saved) -> None:
        await saved(async_client, "sess_merge", currentStep="pain-check", painCheck="crisis")
        row = await saved(async_client, "sess_merge", currentStep="2", step1Text="bedtime battles")

        assert row["current_step"] == "2"
        assert row["form_data"]["painCheck"] == "crisis"
        assert row["form_data"]["step1Text"] == "bedtime battles"

    @pytest.mark.asyncio
    async def test_merge_is_shallow(self, async_client: AsyncClient, saved) -> None:
        await saved(async_client, "sess_shallow", issues=["sleep", "focus"])
        row = await saved(async_client, "sess_shallow", issues=["gaming"])

        assert row["form_data"]["issues"] == ["gaming"]

    @pytest.mark.asyncio
    async def test_invalid_email_is_not_stored_on_the_row(self, async_client: AsyncClient, saved) -> None:
        row = await saved(async_client, "sess_email", email="not-an-email")
        assert row["email"] is None

        row = await saved(async_client, "sess_email", email="mom@example.com")
        assert row["email"] == "mom@example.com"

    @pytest.mark.asyncio
    async def test_completion_is_sticky(self, async_client: AsyncClient, saved) -> None:
        row = await saved(async_client, "sess_done", currentStep="thank-you", isCompleted=True)
        assert row["is_completed"] is True
        assert row["completed_at"] is not None

        row = await saved(async_client, "sess_done", currentStep="email", isCompleted=False)
        assert row["is_completed"] is True

    @pytest.mark.asyncio
    async def test_older_client_seq_is_ignored(self, async_client: AsyncClient) -> None:
        await async_client.post(
            "/api/save",
            json={"sessionId": "sess_seq", "currentStep": "3", "clientSeq": 20, "ranking": ["sleep"]},
        )
        response = await async_client.post(
            "/api/save",
            json={"sessionId": "sess_seq", "currentStep": "1", "clientSeq": 10, "ranking": []},
        )

        body = response.json()
        assert body["stale"] is True
        assert body["data"]["current_step"] == "3"
        assert body["data"]["form_data"]["ranking"] == ["sleep"]
        assert body["data"]["client_seq"] == 20

    @pytest.mark.asyncio
    async def test_epoch_millisecond_seq_is_stored(self, async_client: AsyncClient) -> None:
        seq = 1_792_429_638_127
        await async_client.post("/api/save", json={"sessionId": "sess_ms", "currentStep": "2", "clientSeq": seq})
        response = await async_client.post(
            "/api/save",
            json={"sessionId": "sess_ms", "currentStep": "1", "clientSeq": seq - 1},
        )

        body = response.json()
        assert response.status_code == status.HTTP_200_OK
        assert body["stale"] is True
        assert body["data"]["client_seq"] == seq

    def test_client_seq_column_is_64_bit_on_postgres(self) -> None:
        ddl = str(CreateTable(SurveyResponse.__table__).compile(dialect=postgresql.dialect()))
        assert "client_seq BIGINT" in ddl

    @pytest.mark.asyncio
    async def test_saves_without_seq_always_apply(self, async_client: AsyncClient, saved) -> None:
        await saved(async_client, "sess_noseq", currentStep="3", clientSeq=20)
        row = await saved(async_client, "sess_noseq", currentStep="4")

        assert row["current_step"] == "4"

    @pytest.mark.asyncio
    async def test_forwarded_client_ip(self, async_client: AsyncClient) -> None:
        response = await async_client.post(
            "/api/save",
            json={"sessionId": "sess_ip"},
            headers={"X-Forwarded-For": "203.0.113.5, 10.0.0.1"},
        )

        assert response.json()["data"]["form_data"]["ipAddress"] == "203.0.113.5"

    @pytest.mark.asyncio
    async def test_survey_type_is_kept_from_first_save(self, async_client: AsyncClient, saved) -> None:
        await saved(async_client, "sess_type", surveyType="school_admin")
        row = await saved(async_client, "sess_type", surveyType="parent")

        assert row["survey_type"] == "school_admin"


class TestClientIp:
    def test_header_precedence(self) -> None:
        assert client_ip_from_headers({"x-forwarded-for": "1.1.1.1, 2.2.2.2", "x-real-ip": "3.3.3.3"}) == "1.1.1.1"
        assert client_ip_from_headers({"x-real-ip": "3.3.3.3"}) == "3.3.3.3"
        assert client_ip_from_headers({}) == "127.0.0.1"

"""
Tests for structured logging and correlation id propagation.
"""

import json
import logging

import pytest
from fastapi import status
from httpx import AsyncClient

from betterphone.shared.logging import StructuredFormatter, correlation_id_var, log_with_context
from betterphone.shared.middleware import CORRELATION_ID_HEADER, get_correlation_id


def make_record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("betterphone.test", logging.INFO, __file__, 1, message, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_emits_json_with_extra_fields(self) -> None:
        output = json.loads(StructuredFormatter().format(make_record("Saved", session_id="sess_1")))

        assert output["level"] == "INFO"
        assert output["logger"] == "betterphone.test"
        assert output["message"] == "Saved"
        assert output["session_id"] == "sess_1"
        assert "timestamp" in output

    def test_includes_correlation_id(self) -> None:
        token = correlation_id_var.set("corr-123")
        try:
            output = json.loads(StructuredFormatter().format(make_record("hello")))
        finally:
            correlation_id_var.reset(token)

        assert output["correlation_id"] == "corr-123"

    def test_colliding_extra_keys_are_prefixed(self) -> None:
        output = json.loads(StructuredFormatter().format(make_record("hello", level="custom")))
        assert output["level"] == "INFO"
        assert output["extra_level"] == "custom"

    def test_log_with_context(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("betterphone.test.context")
        with caplog.at_level(logging.INFO, logger="betterphone.test.context"):
            log_with_context(logger, logging.INFO, "Recording stored", recording_id="rec-1")

        record = caplog.records[-1]
        output = json.loads(StructuredFormatter().format(record))
        assert output["recording_id"] == "rec-1"
        assert output["message"] == "Recording stored"


class TestCorrelationIdMiddleware:
    @pytest.mark.asyncio
    async def test_echoes_incoming_id(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health", headers={CORRELATION_ID_HEADER: "abc-123"})

        assert response.status_code == status.HTTP_200_OK
        assert response.headers[CORRELATION_ID_HEADER] == "abc-123"

    @pytest.mark.asyncio
    async def test_falls_back_to_request_id(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health", headers={"X-Request-ID": "req-9"})
        assert response.headers[CORRELATION_ID_HEADER] == "req-9"

    @pytest.mark.asyncio
    async def test_generates_id(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health")

        assert len(response.headers[CORRELATION_ID_HEADER]) == 36
        assert get_correlation_id() is None

"""
HTTP client for the respondent-facing endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from betterphone.shared.logging import get_logger

logger = get_logger(__name__)


class SurveyApiError(Exception):
    """Non-2xx reply from the survey API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass(frozen=True)
class RecordedAudio:
    """A finished recording as produced by an audio source."""

    data: bytes
    content_type: str = "audio/webm"
    duration: float = 0.0

    @property
    def filename(self) -> str:
        ext = "ogg" if "ogg" in self.content_type else "webm"
        return f"recording.{ext}"


@dataclass(frozen=True)
class UploadResult:
    url: str
    recording_id: str


class SurveyApiClient:
    """Thin async wrapper over /api/save and the voice endpoints.

    Pass ``client`` to reuse a configured httpx.AsyncClient (tests mount the
    ASGI app this way); otherwise one is created for ``base_url``.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout_seconds)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "SurveyApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        if response.is_success:
            return response.json()
        try:
            message = response.json().get("error") or response.reason_phrase
        except ValueError:
            message = response.text or response.reason_phrase
        raise SurveyApiError(str(message), status_code=response.status_code)

    async def save(self, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._client.post("/api/save", json=payload)
        return self._json(response)

    async def upload_recording(self, session_id: str, step_number: int, audio: RecordedAudio) -> UploadResult:
        response = await self._client.post(
            "/api/voice/upload",
            files={"file": (audio.filename, audio.data, audio.content_type)},
            data={"sessionId": session_id, "stepNumber": str(step_number)},
        )
        body = self._json(response)
        return UploadResult(url=body["url"], recording_id=str(body["recordingId"]))

    async def transcribe(self, recording_id: str) -> str:
        response = await self._client.post("/api/transcribe", json={"recordingId": recording_id})
        return self._json(response)["transcript"]

    async def get_transcription(self, recording_id: str) -> str | None:
        response = await self._client.get("/api/voice/transcription", params={"recordingId": recording_id})
        return self._json(response).get("transcription")

    async def extract(self, recording_id: str) -> dict[str, Any]:
        response = await self._client.post("/api/extract", json={"recordingId": recording_id})
        return self._json(response)["extractedData"]

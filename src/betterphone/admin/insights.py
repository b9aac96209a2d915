"""
LLM-generated insights for the admin dashboard.

Aggregate insights are cached in ai_insights_cache; per-response summaries
and sales profiles are stored on the survey_responses row itself.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from betterphone.admin.models import GLOBAL_INSIGHTS
from betterphone.admin.prompts import (
    INSIGHTS_SYSTEM_PROMPT,
    INSIGHTS_USER_TEMPLATE,
    PROFILE_SYSTEM_PROMPT,
    PROFILE_USER_TEMPLATE,
    SUMMARY_SYSTEM_PROMPT,
    SUMMARY_USER_TEMPLATE,
)
from betterphone.admin.repository import InsightsCacheRepository
from betterphone.admin.schemas import InsightsEnvelope
from betterphone.admin.stats import percent, round_half_up, urgency_level
from betterphone.config import Settings, get_settings
from betterphone.llm.gateway import LLMGateway
from betterphone.llm.models import ChatMessage, ChatRequest, LLMError
from betterphone.llm.parser import parse_json_object
from betterphone.shared.database import as_utc, utc_now
from betterphone.shared.exceptions import NotFoundError, UpstreamServiceError, ValidationError
from betterphone.shared.logging import get_logger
from betterphone.survey.models import SurveyResponse
from betterphone.survey.repository import SurveyResponseRepository
from betterphone.voice.models import VoiceRecording
from betterphone.voice.repository import VoiceRecordingRepository

logger = get_logger(__name__)

TEXT_FIELDS = ("step1Text", "step4Text", "step5Text", "step6Text", "step11Text", "step12Text")
MAX_TEXT_SAMPLES = 50
MAX_TRANSCRIPT_SAMPLES = 30


def iso_timestamp(value: datetime) -> str:
    """UTC timestamp with millisecond precision and a Z suffix."""
    return as_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _as_list(value: Any) -> list[Any]:
    return list(value) if isinstance(value, (list, tuple)) else []


def _tally(counter: dict[str, int], values: Iterable[Any]) -> None:
    for value in values:
        key = str(value)
        counter[key] = counter.get(key, 0) + 1


def _ranked(counter: Mapping[str, int]) -> list[tuple[str, int]]:
    return sorted(counter.items(), key=lambda item: item[1], reverse=True)


def _format_counts(pairs: Iterable[tuple[str, int]]) -> str:
    return ", ".join(f"{name}: {count}" for name, count in pairs)


@dataclass
class InsightAggregate:
    """Frequencies and samples fed to the aggregate insights prompt."""

    total: int = 0
    completed: int = 0
    pain_check: dict[str, int] = field(default_factory=dict)
    issues: dict[str, int] = field(default_factory=dict)
    benefits: dict[str, int] = field(default_factory=dict)
    prices: dict[str, int] = field(default_factory=dict)
    urgency_levels: list[float] = field(default_factory=list)
    text_samples: list[str] = field(default_factory=list)
    transcript_samples: list[str] = field(default_factory=list)
    recording_count: int = 0
    voice_seconds: float = 0.0

    @classmethod
    def build(
        cls,
        responses: Iterable[SurveyResponse],
        recordings: Iterable[VoiceRecording],
    ) -> "InsightAggregate":
        aggregate = cls()
        for response in responses:
            form = response.form_data or {}
            aggregate.total += 1
            if response.is_completed:
                aggregate.completed += 1
            if form.get("painCheck"):
                _tally(aggregate.pain_check, [form["painCheck"]])
            _tally(aggregate.issues, _as_list(form.get("issues")))
            _tally(aggregate.benefits, _as_list(form.get("benefits")))
            _tally(aggregate.prices, _as_list(form.get("priceWillingness")))

            texts = [str(form[name]) for name in TEXT_FIELDS if form.get(name)]
            if texts and len(aggregate.text_samples) < MAX_TEXT_SAMPLES:
                aggregate.text_samples.append(" | ".join(texts))

        for recording in recordings:
            aggregate.recording_count += 1
            aggregate.voice_seconds += recording.duration or 0
            level = urgency_level(recording.extracted_data)
            if level is not None:
                aggregate.urgency_levels.append(level)
            if recording.transcript and len(aggregate.transcript_samples) < MAX_TRANSCRIPT_SAMPLES:
                aggregate.transcript_samples.append(
                    f"[Step {recording.step_number}] {recording.transcript[:200]}"
                )
        return aggregate

    @property
    def voice_minutes(self) -> int:
        return round_half_up(self.voice_seconds / 60)

    @property
    def response_rate(self) -> int:
        return percent(self.completed, self.total)

    @property
    def average_urgency(self) -> str:
        if not self.urgency_levels:
            return "N/A"
        return f"{sum(self.urgency_levels) / len(self.urgency_levels):.1f}"

    def render(self) -> str:
        """Plain-text data block for the prompt."""
        texts = "\n".join(f"{i}. {text[:300]}" for i, text in enumerate(self.text_samples[:20], start=1))
        transcripts = "\n".join(self.transcript_samples[:15])
        return "\n".join(
            [
                f"AGGREGATE SURVEY DATA ({self.total} total responses, {self.completed} completed):",
                "",
                f"Pain Check Distribution: {json.dumps(self.pain_check, separators=(',', ':'))}",
                "",
                f"Top Issues (frequency): {_format_counts(_ranked(self.issues)[:15])}",
                "",
                f"Top Benefits Wanted (frequency): {_format_counts(_ranked(self.benefits)[:10])}",
                "",
                f"Price Willingness (frequency): {_format_counts(_ranked(self.prices))}",
                "",
                f"Average Urgency from Voice Data: {self.average_urgency} "
                f"(from {len(self.urgency_levels)} recordings)",
                "",
                f"Voice Recording Stats: {self.recording_count} recordings, ~{self.voice_minutes} minutes total",
                "",
                "Sample Text Responses (first 20):",
                texts,
                "",
                "Sample Voice Transcripts (first 15):",
                transcripts,
            ]
        ).strip()


def build_summary_context(form_data: Mapping[str, Any], recordings: Iterable[VoiceRecording]) -> str:
    transcripts = "\n\n".join(
        f"Step {recording.step_number}: {recording.transcript}"
        for recording in recordings
        if recording.transcript
    )
    lines = [
        f"Pain Check: {form_data.get('painCheck') or 'N/A'}",
        f"Issues: {', '.join(map(str, _as_list(form_data.get('issues')))) or 'N/A'}",
        f"Benefits Wanted: {', '.join(map(str, _as_list(form_data.get('benefits')))) or 'N/A'}",
        f"Price Willingness: {', '.join(map(str, _as_list(form_data.get('priceWillingness')))) or 'N/A'}",
        f"Email: {form_data.get('email') or 'N/A'}",
    ]
    if transcripts:
        lines.append(f"\nVoice Transcripts:\n{transcripts}")
    return "\n".join(lines)


class InsightsService:
    """Aggregate insights, per-response summaries and sales profiles."""

    def __init__(
        self,
        session: AsyncSession,
        llm: LLMGateway,
        settings: Settings | None = None,
    ) -> None:
        self._session = session
        self._llm = llm
        self._settings = settings or get_settings()
        self._responses = SurveyResponseRepository(session)
        self._recordings = VoiceRecordingRepository(session)
        self._cache = InsightsCacheRepository(session)

    async def _complete_json(self, system: str, user: str, model: str, correlation_id: str) -> dict[str, Any]:
        request = ChatRequest(
            messages=[ChatMessage.system(system), ChatMessage.user(user)],
            model=model,
            response_format="json_object",
            temperature=0.3,
            correlation_id=correlation_id,
        )
        response = await self._llm.chat_completion(request)
        return parse_json_object(response.content)

    async def get_cached(self) -> InsightsEnvelope:
        """Latest unexpired aggregate insights, flagged stale if responses changed since."""
        current_count = await self._responses.count()
        entry = await self._cache.get(GLOBAL_INSIGHTS)
        if entry is None or as_utc(entry.expires_at) <= utc_now():
            return InsightsEnvelope(insights=None, response_count=current_count)
        return InsightsEnvelope(
            insights=entry.data,
            generated_at=entry.generated_at,
            cached=True,
            stale=entry.response_count != current_count,
            response_count=current_count,
        )

    async def generate(self) -> InsightsEnvelope:
        responses = await self._responses.list_all()
        if not responses:
            raise ValidationError("No responses to analyze")
        recordings = await self._recordings.list_completed()
        aggregate = InsightAggregate.build(responses, recordings)

        prompt = INSIGHTS_USER_TEMPLATE.format(
            voice_minutes=aggregate.voice_minutes,
            response_rate=aggregate.response_rate,
            context=aggregate.render(),
        )
        try:
            insights = await self._complete_json(
                INSIGHTS_SYSTEM_PROMPT,
                prompt,
                model=self._settings.openai_chat_model,
                correlation_id=GLOBAL_INSIGHTS,
            )
        except LLMError as exc:
            logger.error("Insight generation failed", extra={"error": str(exc)})
            raise UpstreamServiceError("Failed to generate insights") from exc

        now = utc_now()
        insights["generatedAt"] = iso_timestamp(now)
        await self._cache.upsert(
            GLOBAL_INSIGHTS,
            data=insights,
            response_count=aggregate.total,
            expires_at=now + timedelta(minutes=self._settings.insights_cache_ttl_minutes),
        )
        await self._session.commit()

        logger.info(
            "Global insights generated",
            extra={"responses": aggregate.total, "recordings": aggregate.recording_count},
        )
        return InsightsEnvelope(
            insights=insights,
            generated_at=now,
            cached=False,
            response_count=aggregate.total,
        )

    async def _require_response(self, session_id: str | None, missing_message: str) -> SurveyResponse:
        if not session_id:
            raise ValidationError(missing_message)
        response = await self._responses.get_by_session_id(session_id)
        if response is None:
            raise NotFoundError("Response not found")
        return response

    async def response_summary(self, session_id: str | None, force_refresh: bool = False) -> tuple[dict[str, Any], bool]:
        """Summary for one response; returns (summary, served_from_cache)."""
        response = await self._require_response(session_id, "Missing sessionId")

        generated_at = as_utc(response.ai_summary_generated_at)
        ttl = timedelta(hours=self._settings.response_summary_ttl_hours)
        if not force_refresh and response.ai_summary and generated_at and utc_now() - generated_at < ttl:
            return response.ai_summary, True

        recordings = await self._recordings.list_for_session(response.session_id, completed_only=True)
        context = build_summary_context(response.form_data or {}, recordings)
        try:
            summary = await self._complete_json(
                SUMMARY_SYSTEM_PROMPT,
                SUMMARY_USER_TEMPLATE.format(context=context),
                model=self._settings.openai_chat_model,
                correlation_id=response.session_id,
            )
        except LLMError as exc:
            logger.error(
                "Response summary failed",
                extra={"session_id": response.session_id, "error": str(exc)},
            )
            raise UpstreamServiceError("Failed to generate summary") from exc

        now = utc_now()
        summary["generatedAt"] = iso_timestamp(now)
        response.ai_summary = summary
        response.ai_summary_generated_at = now
        await self._session.commit()

        logger.info("Response summary stored", extra={"session_id": response.session_id})
        return summary, False

    async def generate_profile(self, session_id: str | None) -> dict[str, Any]:
        """Sales profile for one response, stored as its ai_summary."""
        response = await self._require_response(session_id, "Session ID is required")

        recordings = await self._recordings.list_for_session(response.session_id)
        transcripts = "\n".join(
            f"Step {recording.step_number}: {recording.transcript or '(No transcript)'}"
            for recording in recordings
        )
        prompt = PROFILE_USER_TEMPLATE.format(
            form_data=json.dumps(response.form_data or {}, indent=2),
            transcripts=transcripts or "No voice recordings found.",
        )
        try:
            profile = await self._complete_json(
                PROFILE_SYSTEM_PROMPT,
                prompt,
                model=self._settings.openai_profile_model,
                correlation_id=response.session_id,
            )
        except LLMError as exc:
            logger.error(
                "Profile generation failed",
                extra={"session_id": response.session_id, "error": str(exc)},
            )
            raise UpstreamServiceError("Failed to generate profile") from exc

        response.ai_summary = profile
        response.ai_summary_generated_at = utc_now()
        await self._session.commit()

        logger.info("Sales profile stored", extra={"session_id": response.session_id})
        return profile

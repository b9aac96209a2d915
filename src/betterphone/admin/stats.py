"""
Admin aggregation layer.

Everything is recomputed from the fetched rows on each request; the pure
builders below take plain rows so they can be exercised without a database.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, timedelta, timezone
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from betterphone.admin.schemas import (
    DailyActivity,
    DailyCompletionRate,
    DashboardStats,
    FunnelStep,
    RecentResponse,
    StepDuration,
    TimeSeries,
    UrgencyDistribution,
)
from betterphone.shared.database import as_utc
from betterphone.shared.logging import get_logger
from betterphone.survey.repository import SurveyResponseRepository, SurveyTypeFilter
from betterphone.survey.steps import StepDefinition, StepType
from betterphone.survey.variants import PARENT, SCHOOL_ADMIN, SurveyVariant
from betterphone.voice.repository import VoiceRecordingRepository

logger = get_logger(__name__)

FUNNEL_COLORS = (
    "#3B82F6",
    "#6366F1",
    "#8B5CF6",
    "#A78BFA",
    "#C084FC",
    "#D946EF",
    "#EC4899",
    "#F43F5E",
    "#F59E0B",
    "#10B981",
    "#06B6D4",
    "#14B8A6",
)

TIME_SERIES_DAYS = 30
STEP_DURATION_LIMIT = 12
URGENCY_ORDER = ("low", "medium", "high", "critical")


class ProgressRow(Protocol):
    current_step: str | None
    is_completed: bool
    started_at: datetime
    completed_at: datetime | None


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percent(part: float, whole: float) -> int:
    """Whole-number percentage, halves rounded up; 0 when whole is 0."""
    if not whole:
        return 0
    return round_half_up(part / whole * 100)


def truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def funnel_steps(variant: SurveyVariant) -> list[StepDefinition]:
    """The variant's steps in order, without the thank-you page."""
    return [step for step in variant.registry if step.type is not StepType.THANK_YOU]


def count_reached(
    steps: Sequence[StepDefinition],
    rows: Iterable[ProgressRow],
    default_step_id: str,
) -> dict[str, int]:
    """Count each row in every step up to and including its current step.

    Completed rows count in every step. Other rows whose current step is
    not in ``steps`` are not counted anywhere.
    """
    ids = [step.id for step in steps]
    counts = dict.fromkeys(ids, 0)
    for row in rows:
        current = row.current_step or default_step_id
        if row.is_completed:
            reached = ids
        elif current in counts:
            reached = ids[: ids.index(current) + 1]
        else:
            continue
        for step_id in reached:
            counts[step_id] += 1
    return counts


def build_funnel(steps: Sequence[StepDefinition], counts: Mapping[str, int]) -> list[FunnelStep]:
    return [
        FunnelStep(
            step=truncate(step.title, 25),
            step_id=step.id,
            count=counts.get(step.id, 0),
            color=FUNNEL_COLORS[i % len(FUNNEL_COLORS)],
        )
        for i, step in enumerate(steps)
    ]


def urgency_level(extracted: Mapping[str, Any] | None) -> float | None:
    """The 1-10 score of an extraction, from urgency_level or emotional_intensity."""
    if not extracted:
        return None
    level = extracted.get("urgency_level") or extracted.get("emotional_intensity")
    if isinstance(level, bool) or not isinstance(level, (int, float)):
        return None
    return level


def urgency_bucket(level: float) -> str:
    if level >= 9:
        return "critical"
    if level >= 7:
        return "high"
    if level >= 4:
        return "medium"
    return "low"


def build_urgency_distribution(extractions: Iterable[Mapping[str, Any] | None]) -> UrgencyDistribution:
    buckets = dict.fromkeys(URGENCY_ORDER, 0)
    total = 0
    for extracted in extractions:
        level = urgency_level(extracted)
        if level is None:
            continue
        total += 1
        buckets[urgency_bucket(level)] += 1

    distribution = UrgencyDistribution(**buckets)
    if total:
        # max() keeps the first of equal counts, so ties resolve towards "low"
        dominant = max(URGENCY_ORDER, key=lambda name: buckets[name])
        distribution.dominant = dominant
        distribution.dominant_pct = percent(buckets[dominant], total)
    return distribution


def _day(value: datetime | None) -> date | None:
    value = as_utc(value)
    return value.date() if value is not None else None


def build_time_series(
    rows: Iterable[ProgressRow],
    today: date | None = None,
    days: int = TIME_SERIES_DAYS,
) -> TimeSeries:
    """Daily started/completed counts for the ``days`` days ending today (UTC)."""
    today = today or datetime.now(timezone.utc).date()
    started: dict[date, int] = {}
    completed: dict[date, int] = {}
    for row in rows:
        start_day = _day(row.started_at)
        if start_day is not None:
            started[start_day] = started.get(start_day, 0) + 1
        done_day = _day(row.completed_at)
        if done_day is not None:
            completed[done_day] = completed.get(done_day, 0) + 1

    series = TimeSeries()
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        label = day.strftime("%b %d")
        day_started = started.get(day, 0)
        day_completed = completed.get(day, 0)
        series.daily.append(DailyActivity(date=label, started=day_started, completed=day_completed))
        series.completion_rate.append(
            DailyCompletionRate(date=label, rate=percent(day_completed, day_started))
        )
    return series


def build_step_durations(
    steps: Sequence[StepDefinition],
    counts: Mapping[str, int],
    completed_total: int,
) -> list[StepDuration]:
    """Drop-off between consecutive funnel steps; durations are not tracked."""
    durations = []
    for i, step in enumerate(steps[:STEP_DURATION_LIMIT]):
        reached = counts.get(step.id, 0)
        following = counts.get(steps[i + 1].id, 0) if i + 1 < len(steps) else completed_total
        drop_off = percent(reached - following, reached) if reached > 0 else 0
        durations.append(
            StepDuration(
                step_id=step.id,
                step_name=truncate(step.title, 20),
                avg_duration_seconds=0,
                drop_off_pct=max(0, drop_off),
            )
        )
    return durations


class DashboardService:
    """Builds DashboardStats for one survey type."""

    def __init__(self, session: AsyncSession) -> None:
        self._responses = SurveyResponseRepository(session)
        self._recordings = VoiceRecordingRepository(session)

    async def get_stats(self, survey_type: SurveyTypeFilter = "parent", today: date | None = None) -> DashboardStats:
        variant = SCHOOL_ADMIN if survey_type == "school_admin" else PARENT

        total = await self._responses.count(survey_type)
        completed = await self._responses.count(survey_type, completed=True)
        # Recording count is across all survey types
        voice_count = await self._recordings.count()
        rows = await self._responses.list_all(survey_type)
        recent = await self._responses.list_recent(survey_type, limit=8)

        session_ids = {row.session_id for row in rows}
        recordings = [
            recording
            for recording in await self._recordings.list_completed()
            if recording.session_id in session_ids
        ]

        steps = funnel_steps(variant)
        counts = count_reached(steps, rows, default_step_id=variant.gate_step_id)

        logger.info(
            "Dashboard stats computed",
            extra={"survey_type": survey_type, "responses": len(rows), "recordings": len(recordings)},
        )

        return DashboardStats(
            total_responses=total,
            completed_responses=completed,
            voice_recordings=voice_count,
            completion_rate=percent(completed, total),
            funnel=build_funnel(steps, counts),
            urgency=build_urgency_distribution(r.extracted_data for r in recordings),
            time_series=build_time_series(rows, today=today),
            step_durations=build_step_durations(steps, counts, completed),
            recent_responses=[RecentResponse.model_validate(row) for row in recent],
        )

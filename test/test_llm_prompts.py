"""
Unit tests for prompt construction.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

from betterphone.admin.insights import InsightAggregate, build_summary_context, iso_timestamp
from betterphone.admin.prompts import INSIGHTS_USER_TEMPLATE
from betterphone.voice.prompts import OUTPUT_SCHEMA, STEP_PROMPTS, build_extraction_prompt


@dataclass
class Response:
    form_data: dict
    is_completed: bool = False


@dataclass
class Recording:
    step_number: int
    transcript: str | None = None
    extracted_data: dict | None = None
    duration: float = 0


class TestExtractionPrompt:
    def test_step_specific_prompt(self) -> None:
        prompt = build_extraction_prompt(4, "It happens every night")

        assert prompt.startswith(STEP_PROMPTS[4])
        assert "urgency_level" in prompt
        assert prompt.endswith('Transcript to analyze:\n"It happens every night"')

    def test_generic_schema_for_other_steps(self) -> None:
        prompt = build_extraction_prompt(11, "We'd switch tomorrow")

        for name in OUTPUT_SCHEMA:
            assert f"- {name}:" in prompt
        assert "We'd switch tomorrow" in prompt


class TestInsightAggregate:
    def test_frequencies_and_samples(self) -> None:
        responses = [
            Response({"painCheck": "crisis", "issues": ["sleep", "gaming"], "step1Text": "bedtime"}, is_completed=True),
            Response({"painCheck": "crisis", "issues": ["sleep"], "priceWillingness": ["$20"]}),
            Response({"issues": "not-a-list"}),
        ]
        recordings = [
            Recording(4, transcript="every night", extracted_data={"urgency_level": 8}, duration=90),
            Recording(1, transcript=None, extracted_data={"emotional_intensity": 4}, duration=30),
        ]

        aggregate = InsightAggregate.build(responses, recordings)

        assert aggregate.total == 3
        assert aggregate.completed == 1
        assert aggregate.pain_check == {"crisis": 2}
        assert aggregate.issues == {"sleep": 2, "gaming": 1}
        assert aggregate.prices == {"$20": 1}
        assert aggregate.text_samples == ["bedtime"]
        assert aggregate.transcript_samples == ["[Step 4] every night"]
        assert aggregate.average_urgency == "6.0"
        assert aggregate.voice_minutes == 2
        assert aggregate.response_rate == 33

        rendered = aggregate.render()
        assert "AGGREGATE SURVEY DATA (3 total responses, 1 completed):" in rendered
        assert 'Pain Check Distribution: {"crisis":2}' in rendered
        assert "Top Issues (frequency): sleep: 2, gaming: 1" in rendered
        assert "1. bedtime" in rendered

    def test_empty_aggregate(self) -> None:
        aggregate = InsightAggregate.build([], [])
        assert aggregate.average_urgency == "N/A"
        assert aggregate.response_rate == 0

    def test_template_accepts_aggregate(self) -> None:
        aggregate = InsightAggregate.build([Response({"painCheck": "yes"}, is_completed=True)], [])
        prompt = INSIGHTS_USER_TEMPLATE.format(
            voice_minutes=aggregate.voice_minutes,
            response_rate=aggregate.response_rate,
            context=aggregate.render(),
        )
        assert '"totalVoiceMinutes": 0' in prompt
        assert '"responseRate": 100' in prompt
        assert '"sentiment": {' in prompt


class TestSummaryContext:
    def test_includes_answers_and_transcripts(self) -> None:
        context = build_summary_context(
            {"painCheck": "yes", "issues": ["sleep", "focus"], "email": "mom@example.com"},
            [Recording(1, transcript="so tired"), Recording(4, transcript=None)],
        )

        assert "Pain Check: yes" in context
        assert "Issues: sleep, focus" in context
        assert "Benefits Wanted: N/A" in context
        assert "Email: mom@example.com" in context
        assert "Step 1: so tired" in context
        assert "Step 4" not in context

    def test_without_transcripts(self) -> None:
        assert "Voice Transcripts" not in build_summary_context({}, [])


def test_iso_timestamp() -> None:
    value = datetime(2024, 3, 10, 8, 5, 1, 123456, tzinfo=timezone.utc)
    assert iso_timestamp(value) == "2024-03-10T08:05:01.123Z"
    assert iso_timestamp(datetime(2024, 3, 10)) == "2024-03-10T00:00:00.000Z"

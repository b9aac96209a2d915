"""
Step navigation for a survey variant.

The navigator is pure: it decides where a respondent goes next from the
current step id and the accumulated answers, and never touches storage or
the network.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from betterphone.survey.steps import StepDefinition, StepType
from betterphone.survey.validation import validate_email_step
from betterphone.survey.variants import SurveyVariant


class DestinationKind(str, Enum):
    STEP = "step"
    NOT_A_FIT = "not_a_fit"
    NOT_FOUND = "not_found"
    END = "end"


@dataclass(frozen=True)
class Destination:
    """Result of a navigation decision."""

    kind: DestinationKind
    step: StepDefinition | None = None
    path: str | None = None

    @property
    def is_step(self) -> bool:
        return self.kind is DestinationKind.STEP


# Checkbox/ranking steps whose list answer must be non-empty before moving on
_REQUIRED_LISTS: dict[str, dict[str, str]] = {
    "parent": {
        "2": "issues",
        "3": "issues",
        "7": "benefits",
        "9": "adviceSources",
        "10": "priceWillingness",
    },
    "school_admin": {
        "3": "schoolIssues",
        "4": "issueRanking",
    },
}

# Parent step 8: either every family field, or a free-form answer
FAMILY_FIELDS = ("kidAges", "kidsWithPhones", "currentDevice", "deviceDuration")


def _filled(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) > 0
    return bool(value)


def has_free_text_answer(answers: Mapping[str, Any], step_number: int) -> bool:
    """True when stepNText is non-blank or stepNRecording is set."""
    return _filled(answers.get(f"step{step_number}Text")) or bool(
        answers.get(f"step{step_number}Recording")
    )


class StepNavigator:
    """Navigation over one variant's registry, including its gate rule."""

    def __init__(self, variant: SurveyVariant) -> None:
        self._variant = variant
        self._registry = variant.registry

    @property
    def variant(self) -> SurveyVariant:
        return self._variant

    def index(self, step_id: str) -> int:
        return self._registry.index(step_id)

    def next(self, step_id: str) -> StepDefinition | None:
        return self._registry.next(step_id)

    def previous(self, step_id: str) -> StepDefinition | None:
        return self._registry.previous(step_id)

    def progress(self, step_id: str) -> int:
        return self._registry.progress(step_id)

    def transition(self, step_id: str, answers: Mapping[str, Any]) -> Destination:
        """Decide the destination after leaving ``step_id``.

        Leaving the gate step with the disqualifying answer routes to the
        variant's not-a-fit page; everything else follows registry order.
        """
        current = self._registry.get(step_id)
        if current is None:
            return Destination(DestinationKind.NOT_FOUND)

        variant = self._variant
        if (
            current.id == variant.gate_step_id
            and answers.get(variant.gate_field) == variant.disqualifying_answer
        ):
            return Destination(DestinationKind.NOT_A_FIT, path=variant.not_a_fit_path)

        following = self._registry.next(step_id)
        if following is None:
            return Destination(DestinationKind.END)
        return Destination(DestinationKind.STEP, step=following, path=following.path)

    def back(self, step_id: str) -> Destination:
        current = self._registry.get(step_id)
        if current is None:
            return Destination(DestinationKind.NOT_FOUND)
        preceding = self._registry.previous(step_id)
        if preceding is None:
            return Destination(DestinationKind.END)
        return Destination(DestinationKind.STEP, step=preceding, path=preceding.path)

    def completes_session(self, step: StepDefinition | None) -> bool:
        """Arriving at the terminal thank-you step completes the session."""
        return step is not None and step.type is StepType.THANK_YOU

    def validation_error(self, step_id: str, answers: Mapping[str, Any]) -> str | None:
        """Inline validation message blocking forward navigation, if any."""
        step = self._registry.get(step_id)
        if step is None or step.type is not StepType.EMAIL:
            return None
        return validate_email_step(answers.get("email"), required=self._variant.email_required)

    def is_step_complete(self, step_id: str, answers: Mapping[str, Any]) -> bool:
        """Whether the step has the answers needed to enable "Continue".

        Steps without explicit requirements are soft-required and always
        count as complete; "Skip" exists for those.
        """
        step = self._registry.get(step_id)
        if step is None:
            return False

        if step.type is StepType.GATE:
            return _filled(answers.get(self._variant.gate_field))
        if step.type is StepType.EMAIL:
            return self.validation_error(step_id, answers) is None
        if step.type is StepType.THANK_YOU:
            return True

        number = step.step_number
        required_list = _REQUIRED_LISTS.get(self._variant.name, {}).get(step.id)
        if required_list is not None:
            return _filled(answers.get(required_list))

        if step.type in (StepType.VOICE, StepType.TEXT):
            return number is not None and has_free_text_answer(answers, number)

        if step.type is StepType.FORM and step.has_voice and number is not None:
            return all(_filled(answers.get(field)) for field in FAMILY_FIELDS) or has_free_text_answer(
                answers, number
            )

        return True

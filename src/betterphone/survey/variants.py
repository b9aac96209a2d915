"""
Survey variants: the parent flow and the school-administrator flow.

A variant gathers everything that differs between the two flows so the
navigator, session store and save path stay variant-agnostic.
"""

from __future__ import annotations

from dataclasses import dataclass

from betterphone.survey.steps import PARENT_STEPS, SCHOOL_ADMIN_STEPS, StepRegistry, StepType

SESSION_ID_STORAGE_KEY = "betterphone_session_id"


@dataclass(frozen=True)
class SurveyVariant:
    """Static description of one survey flow."""

    name: str
    survey_type: str
    registry: StepRegistry
    answers_storage_key: str
    gate_step_id: str
    gate_field: str
    disqualifying_answer: str
    not_a_fit_path: str
    email_required: bool
    landing_path: str

    @property
    def gate_step(self):
        return self.registry.get(self.gate_step_id)

    @property
    def thank_you_step_id(self) -> str:
        return self.registry.last.id

    @property
    def voice_step_numbers(self) -> tuple[int, ...]:
        """Numbered steps whose answer is free text that may come from a recording."""
        return tuple(
            step.step_number
            for step in self.registry
            if step.step_number is not None
            and (step.has_voice or step.type in (StepType.VOICE, StepType.TEXT))
        )


PARENT = SurveyVariant(
    name="parent",
    survey_type="parent",
    registry=PARENT_STEPS,
    answers_storage_key="betterphone_survey_data",
    gate_step_id="pain-check",
    gate_field="painCheck",
    disqualifying_answer="no",
    not_a_fit_path="/survey/not-a-fit",
    email_required=False,
    landing_path="/survey",
)

SCHOOL_ADMIN = SurveyVariant(
    name="school_admin",
    survey_type="school_admin",
    registry=SCHOOL_ADMIN_STEPS,
    answers_storage_key="betterphone_school_admin_data",
    gate_step_id="disruption-gate",
    gate_field="disruptionFrequency",
    disqualifying_answer="rarely",
    not_a_fit_path="/school-admin/not-a-fit",
    email_required=True,
    landing_path="/school-admin",
)

VARIANTS: dict[str, SurveyVariant] = {
    PARENT.name: PARENT,
    SCHOOL_ADMIN.name: SCHOOL_ADMIN,
}


def get_variant(name: str) -> SurveyVariant:
    """Look up a variant by name ("parent" or "school_admin")."""
    try:
        return VARIANTS[name]
    except KeyError:
        raise ValueError(f"Unknown survey variant: {name!r}") from None

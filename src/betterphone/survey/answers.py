"""
Typed step answers.

Answers travel over the wire and live in storage as one flat record with
step-derived keys (``step4Text``, ``issues``, ``painCheck`` ...). This
module gives them a typed shape: a map from step id to a tagged union of
answer kinds, with lossless conversion to and from the flat record for
the fields each step owns.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from betterphone.survey.steps import StepDefinition, StepType
from betterphone.survey.variants import PARENT, SCHOOL_ADMIN, SurveyVariant


class _Answer(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class GateAnswer(_Answer):
    kind: Literal["gate"] = "gate"
    value: str


class VoiceAnswer(_Answer):
    kind: Literal["voice"] = "voice"
    text: str | None = None
    has_recording: bool = False


class TextAnswer(_Answer):
    kind: Literal["text"] = "text"
    text: str | None = None
    has_recording: bool = False


class MultiChoiceAnswer(_Answer):
    kind: Literal["checkbox"] = "checkbox"
    values: list[str] = Field(default_factory=list)
    other: str | None = None


class RankingAnswer(_Answer):
    kind: Literal["ranking"] = "ranking"
    order: list[str] = Field(default_factory=list)


class ChoiceAnswer(_Answer):
    kind: Literal["choice"] = "choice"
    value: str


class FormAnswer(_Answer):
    kind: Literal["form"] = "form"
    fields: dict[str, Any] = Field(default_factory=dict)
    text: str | None = None
    has_recording: bool = False


class EmailAnswer(_Answer):
    kind: Literal["email"] = "email"
    email: str = ""
    opt_in: bool = False


StepAnswer = Annotated[
    Union[
        GateAnswer,
        VoiceAnswer,
        TextAnswer,
        MultiChoiceAnswer,
        RankingAnswer,
        ChoiceAnswer,
        FormAnswer,
        EmailAnswer,
    ],
    Field(discriminator="kind"),
]

step_answer_adapter: TypeAdapter[Any] = TypeAdapter(StepAnswer)

_KIND_FOR_TYPE: dict[StepType, str] = {
    StepType.GATE: "gate",
    StepType.VOICE: "voice",
    StepType.TEXT: "text",
    StepType.CHECKBOX: "checkbox",
    StepType.RANKING: "ranking",
    StepType.CHOICE: "choice",
    StepType.FORM: "form",
    StepType.EMAIL: "email",
}


@dataclass(frozen=True)
class AnswerBinding:
    """Flat-record keys owned by one step."""

    field: str | None = None
    other_field: str | None = None
    form_fields: tuple[str, ...] = ()


_BINDINGS: dict[str, dict[str, AnswerBinding]] = {
    PARENT.name: {
        "pain-check": AnswerBinding(field="painCheck"),
        "2": AnswerBinding(field="issues", other_field="issueOther"),
        "3": AnswerBinding(field="ranking"),
        "7": AnswerBinding(field="benefits"),
        "8": AnswerBinding(
            form_fields=(
                "kidAges",
                "kidsWithPhones",
                "currentDevice",
                "deviceDuration",
                "dailyUsage",
                "familyStructure",
                "householdIncome",
            )
        ),
        "9": AnswerBinding(field="adviceSources"),
        "10": AnswerBinding(field="priceWillingness"),
    },
    SCHOOL_ADMIN.name: {
        "disruption-gate": AnswerBinding(field="disruptionFrequency"),
        "3": AnswerBinding(field="schoolIssues"),
        "4": AnswerBinding(field="issueRanking"),
        "5": AnswerBinding(field="solutionsTried", other_field="solutionsTriedOther"),
        "6": AnswerBinding(form_fields=("solutionEffectiveness",)),
        "8": AnswerBinding(form_fields=("enforcementSource", "teacherConsistency", "teacherSupport")),
        "10": AnswerBinding(
            form_fields=(
                "schoolType",
                "gradeLevel",
                "enrollment",
                "smartphonePercent",
                "schoolLocation",
                "adminRole",
            )
        ),
        "11": AnswerBinding(form_fields=("currentPolicy", "currentPolicyOther", "compliancePercent")),
        "12": AnswerBinding(field="budgetRange"),
        "14": AnswerBinding(field="pilotInterest"),
        "15": AnswerBinding(
            form_fields=("callInterest", "contactPhone", "contactPreferredTime", "contactName")
        ),
    },
}


class AnswerKindMismatch(ValueError):
    """An answer of the wrong kind was given for a step."""


def binding_for(variant: SurveyVariant, step: StepDefinition) -> AnswerBinding:
    return _BINDINGS.get(variant.name, {}).get(step.id, AnswerBinding())


def _text_keys(step: StepDefinition) -> tuple[str, str] | None:
    number = step.step_number
    if number is None:
        return None
    return f"step{number}Text", f"step{number}Recording"


def to_form_fields(variant: SurveyVariant, step: StepDefinition, answer: Any) -> dict[str, Any]:
    """Flatten one step answer into the flat-record keys that step owns."""
    expected = _KIND_FOR_TYPE.get(step.type)
    if expected is None or answer.kind != expected:
        raise AnswerKindMismatch(
            f"Step {step.id!r} expects a {expected or 'no'} answer, got {answer.kind!r}"
        )

    binding = binding_for(variant, step)
    text_keys = _text_keys(step)

    if isinstance(answer, (GateAnswer, ChoiceAnswer)):
        return {binding.field or variant.gate_field: answer.value}
    if isinstance(answer, (VoiceAnswer, TextAnswer)):
        assert text_keys is not None
        return {text_keys[0]: answer.text, text_keys[1]: answer.has_recording}
    if isinstance(answer, MultiChoiceAnswer):
        fields: dict[str, Any] = {binding.field: list(answer.values)}
        if binding.other_field and answer.other is not None:
            fields[binding.other_field] = answer.other
        return fields
    if isinstance(answer, RankingAnswer):
        return {binding.field: list(answer.order)}
    if isinstance(answer, FormAnswer):
        fields = {key: answer.fields[key] for key in binding.form_fields if key in answer.fields}
        if step.has_voice and text_keys is not None:
            fields[text_keys[0]] = answer.text
            fields[text_keys[1]] = answer.has_recording
        return fields
    if isinstance(answer, EmailAnswer):
        return {"email": answer.email, "emailOptIn": answer.opt_in}
    raise AnswerKindMismatch(f"Unsupported answer kind {answer.kind!r}")


def from_form_fields(variant: SurveyVariant, step: StepDefinition, data: Mapping[str, Any]) -> Any | None:
    """Build the typed answer for one step from a flat record, or None if unanswered."""
    binding = binding_for(variant, step)
    text_keys = _text_keys(step)

    if step.type is StepType.GATE:
        value = data.get(binding.field or variant.gate_field)
        return GateAnswer(value=value) if isinstance(value, str) and value else None

    if step.type is StepType.CHOICE:
        value = data.get(binding.field) if binding.field else None
        return ChoiceAnswer(value=value) if isinstance(value, str) and value else None

    if step.type in (StepType.VOICE, StepType.TEXT) and text_keys is not None:
        text = data.get(text_keys[0])
        recorded = bool(data.get(text_keys[1]))
        if text is None and not recorded:
            return None
        cls = VoiceAnswer if step.type is StepType.VOICE else TextAnswer
        return cls(text=text, has_recording=recorded)

    if step.type is StepType.CHECKBOX and binding.field:
        values = data.get(binding.field)
        other = data.get(binding.other_field) if binding.other_field else None
        if not values and other is None:
            return None
        return MultiChoiceAnswer(values=list(values or []), other=other)

    if step.type is StepType.RANKING and binding.field:
        order = data.get(binding.field)
        return RankingAnswer(order=list(order)) if order else None

    if step.type is StepType.FORM:
        fields = {key: data[key] for key in binding.form_fields if key in data}
        text = recorded = None
        if step.has_voice and text_keys is not None:
            text = data.get(text_keys[0])
            recorded = bool(data.get(text_keys[1]))
        if not fields and text is None and not recorded:
            return None
        return FormAnswer(fields=fields, text=text, has_recording=bool(recorded))

    if step.type is StepType.EMAIL:
        if "email" not in data and "emailOptIn" not in data:
            return None
        return EmailAnswer(email=data.get("email") or "", opt_in=bool(data.get("emailOptIn")))

    return None


class StepAnswers:
    """Answers keyed by step id, each validated against its step's type."""

    def __init__(self, variant: SurveyVariant, answers: Mapping[str, Any] | None = None) -> None:
        self._variant = variant
        self._answers: dict[str, Any] = {}
        for step_id, answer in (answers or {}).items():
            self.set(step_id, answer)

    @classmethod
    def from_form_data(cls, variant: SurveyVariant, data: Mapping[str, Any]) -> "StepAnswers":
        answers = cls(variant)
        for step in variant.registry:
            answer = from_form_fields(variant, step, data)
            if answer is not None:
                answers._answers[step.id] = answer
        return answers

    def set(self, step_id: str, answer: Any) -> None:
        step = self._variant.registry.get(step_id)
        if step is None:
            raise KeyError(step_id)
        if isinstance(answer, Mapping):
            answer = step_answer_adapter.validate_python(answer)
        # Raises AnswerKindMismatch for the wrong kind
        to_form_fields(self._variant, step, answer)
        self._answers[step_id] = answer

    def get(self, step_id: str) -> Any | None:
        return self._answers.get(step_id)

    def __contains__(self, step_id: object) -> bool:
        return step_id in self._answers

    def __iter__(self) -> Iterator[str]:
        return iter(self._answers)

    def __len__(self) -> int:
        return len(self._answers)

    def to_form_data(self) -> dict[str, Any]:
        """Flatten every answer back into the wire record."""
        data: dict[str, Any] = {}
        for step in self._variant.registry:
            answer = self._answers.get(step.id)
            if answer is not None:
                data.update(to_form_fields(self._variant, step, answer))
        return data

    def model_dump(self) -> dict[str, dict[str, Any]]:
        return {step_id: answer.model_dump() for step_id, answer in self._answers.items()}

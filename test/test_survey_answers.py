"""
Tests for typed step answers and their flat-record form.
"""

import pytest
from pydantic import ValidationError

from betterphone.survey.answers import (
    AnswerKindMismatch,
    EmailAnswer,
    FormAnswer,
    GateAnswer,
    MultiChoiceAnswer,
    RankingAnswer,
    StepAnswers,
    VoiceAnswer,
    from_form_fields,
    to_form_fields,
)
from betterphone.survey.steps import PARENT_STEPS, SCHOOL_ADMIN_STEPS
from betterphone.survey.validation import is_valid_email, validate_email_step
from betterphone.survey.variants import PARENT, SCHOOL_ADMIN


class TestToFormFields:
    """Flattening typed answers into step-derived keys."""

    def test_voice_answer_uses_step_number_keys(self) -> None:
        fields = to_form_fields(PARENT, PARENT_STEPS.get("4"), VoiceAnswer(text="urgent", has_recording=True))
        assert fields == {"step4Text": "urgent", "step4Recording": True}

    def test_gate_answer(self) -> None:
        assert to_form_fields(PARENT, PARENT_STEPS.get("pain-check"), GateAnswer(value="yes")) == {
            "painCheck": "yes"
        }
        assert to_form_fields(
            SCHOOL_ADMIN, SCHOOL_ADMIN_STEPS.get("disruption-gate"), GateAnswer(value="rarely")
        ) == {"disruptionFrequency": "rarely"}

    def test_checkbox_with_other(self) -> None:
        answer = MultiChoiceAnswer(values=["sleep", "focus"], other="late-night texting")
        assert to_form_fields(PARENT, PARENT_STEPS.get("2"), answer) == {
            "issues": ["sleep", "focus"],
            "issueOther": "late-night texting",
        }

    def test_family_form_keeps_only_owned_fields(self) -> None:
        answer = FormAnswer(fields={"kidAges": "9", "unrelated": "x"}, text="two kids", has_recording=False)
        assert to_form_fields(PARENT, PARENT_STEPS.get("8"), answer) == {
            "kidAges": "9",
            "step8Text": "two kids",
            "step8Recording": False,
        }

    def test_email_answer(self) -> None:
        answer = EmailAnswer(email="mom@example.com", opt_in=True)
        assert to_form_fields(PARENT, PARENT_STEPS.get("email"), answer) == {
            "email": "mom@example.com",
            "emailOptIn": True,
        }

    def test_wrong_kind_is_rejected(self) -> None:
        with pytest.raises(AnswerKindMismatch):
            to_form_fields(PARENT, PARENT_STEPS.get("2"), GateAnswer(value="yes"))


class TestFromFormFields:
    """Reading typed answers back out of a stored record."""

    def test_unanswered_steps_are_none(self) -> None:
        assert from_form_fields(PARENT, PARENT_STEPS.get("1"), {}) is None
        assert from_form_fields(PARENT, PARENT_STEPS.get("3"), {"ranking": []}) is None

    def test_ranking(self) -> None:
        answer = from_form_fields(PARENT, PARENT_STEPS.get("3"), {"ranking": ["sleep", "focus"]})
        assert answer == RankingAnswer(order=["sleep", "focus"])

    def test_recording_without_text(self) -> None:
        answer = from_form_fields(PARENT, PARENT_STEPS.get("5"), {"step5Recording": True})
        assert answer == VoiceAnswer(text=None, has_recording=True)


class TestStepAnswers:
    """The step-id keyed answer map."""

    def test_from_form_data_to_form_data(self) -> None:
        record = {
            "painCheck": "crisis",
            "step1Text": "constant fights",
            "step1Recording": False,
            "issues": ["sleep"],
            "email": "mom@example.com",
            "emailOptIn": True,
            "ipAddress": "127.0.0.1",
        }
        answers = StepAnswers.from_form_data(PARENT, record)

        assert set(answers) == {"pain-check", "1", "2", "email"}
        assert answers.get("pain-check") == GateAnswer(value="crisis")
        flat = answers.to_form_data()
        assert "ipAddress" not in flat
        assert flat["step1Text"] == "constant fights"
        assert flat["issues"] == ["sleep"]

    def test_set_accepts_tagged_dicts(self) -> None:
        answers = StepAnswers(SCHOOL_ADMIN)
        answers.set("12", {"kind": "choice", "value": "100-200"})
        assert answers.to_form_data() == {"budgetRange": "100-200"}

    def test_set_rejects_wrong_kind_for_step(self) -> None:
        answers = StepAnswers(PARENT)
        with pytest.raises(AnswerKindMismatch):
            answers.set("1", {"kind": "checkbox", "values": ["a"]})

    def test_set_rejects_unknown_step(self) -> None:
        with pytest.raises(KeyError):
            StepAnswers(PARENT).set("99", GateAnswer(value="yes"))

    def test_malformed_stored_values_raise_validation_error(self) -> None:
        with pytest.raises(ValidationError):
            StepAnswers.from_form_data(PARENT, {"issues": [1, 2]})

    def test_model_dump_is_tagged(self) -> None:
        answers = StepAnswers(PARENT, {"pain-check": GateAnswer(value="yes")})
        assert answers.model_dump() == {"pain-check": {"kind": "gate", "value": "yes"}}


class TestEmailValidation:
    """Email syntax rules shared by the step and the save endpoint."""

    @pytest.mark.parametrize("value", ["a@b.co", "first.last@school.k12.us"])
    def test_valid(self, value: str) -> None:
        assert is_valid_email(value)

    @pytest.mark.parametrize("value", ["not-an-email", "a@b", "a b@c.de", "", None, 42])
    def test_invalid(self, value: object) -> None:
        assert not is_valid_email(value)

    def test_blank_is_only_an_error_when_required(self) -> None:
        assert validate_email_step("", required=False) is None
        assert validate_email_step(None, required=True) == "Work email is required"

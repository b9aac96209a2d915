"""
SurveyFlow: one respondent's pass through a survey variant.

The flow object replaces ambient UI state. It is created on entry, torn
down on exit, and passed explicitly to whatever drives the survey.
Navigation is always decided and applied before the matching save is
queued, so a slow network never holds the respondent back.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from betterphone.client.api import SurveyApiClient
from betterphone.client.save_channel import BackgroundSaveChannel
from betterphone.client.session_store import SessionStore
from betterphone.client.storage import JsonFileLocalStorage, LocalStorage
from betterphone.client.tasks import BackgroundTaskQueue
from betterphone.config import Settings, get_settings
from betterphone.shared.logging import get_logger
from betterphone.survey.answers import EmailAnswer, GateAnswer, StepAnswers, step_answer_adapter, to_form_fields
from betterphone.survey.navigator import Destination, DestinationKind, StepNavigator
from betterphone.survey.steps import StepDefinition, StepType
from betterphone.survey.variants import SurveyVariant

logger = get_logger(__name__)


class StepValidationError(ValueError):
    """Forward navigation blocked by an inline validation message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class SurveyFlow:
    def __init__(
        self,
        variant: SurveyVariant,
        api: SurveyApiClient,
        storage: LocalStorage,
        tasks: BackgroundTaskQueue | None = None,
        saves: BackgroundSaveChannel | None = None,
    ) -> None:
        self._variant = variant
        self._api = api
        self._tasks = tasks or BackgroundTaskQueue()
        self._saves = saves or BackgroundSaveChannel(api, self._tasks)
        self._store = SessionStore(variant, storage, self._saves)
        self._navigator = StepNavigator(variant)
        self._current: StepDefinition = variant.registry.first
        self._location = variant.landing_path
        self._owns_api = False
        self.error: str | None = None

    @classmethod
    def from_settings(cls, variant: SurveyVariant, settings: Settings | None = None) -> "SurveyFlow":
        """Flow talking to ``api_base_url`` with answers kept in ``client_storage_path``."""
        settings = settings or get_settings()
        flow = cls(
            variant,
            SurveyApiClient(base_url=settings.api_base_url),
            JsonFileLocalStorage(settings.client_storage_path),
        )
        flow._owns_api = True
        return flow

    async def __aenter__(self) -> "SurveyFlow":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def variant(self) -> SurveyVariant:
        return self._variant

    @property
    def tasks(self) -> BackgroundTaskQueue:
        return self._tasks

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def session_id(self) -> str:
        return self._store.session_id

    @property
    def answers(self) -> dict[str, Any]:
        return self._store.answers

    @property
    def current_step(self) -> StepDefinition:
        return self._current

    @property
    def location(self) -> str:
        """Path the respondent is looking at."""
        return self._location

    @property
    def progress(self) -> int:
        return self._navigator.progress(self._current.id)

    @property
    def can_continue(self) -> bool:
        return self._navigator.is_step_complete(self._current.id, self.answers)

    def start(self) -> None:
        """Load the session and show the first step."""
        self._store.load()
        self._go_to(self._variant.registry.first)

    async def close(self) -> None:
        """Let queued saves finish."""
        await self._tasks.drain()
        if self._owns_api:
            await self._api.aclose()

    def answer(self, partial: Mapping[str, Any]) -> dict[str, Any]:
        self.error = None
        return self._store.update(partial)

    def answer_step(self, answer: Any, step_id: str | None = None) -> dict[str, Any]:
        """Record a typed answer for one step (the current one by default).

        ``answer`` is a StepAnswer model or its dict form. It is checked
        against the step's type and flattened into the keys that step owns.

        Raises:
            KeyError: unknown step id.
            AnswerKindMismatch: the answer kind does not fit the step.
        """
        step = self._current if step_id is None else self._variant.registry.get(step_id)
        if step is None:
            raise KeyError(step_id)
        if isinstance(answer, Mapping):
            answer = step_answer_adapter.validate_python(answer)
        return self.answer(to_form_fields(self._variant, step, answer))

    @property
    def typed_answers(self) -> StepAnswers:
        return StepAnswers.from_form_data(self._variant, self.answers)

    def answer_gate(self, value: str) -> Destination:
        """Answer the qualification gate and move on."""
        if self._current.type is not StepType.GATE:
            raise ValueError(f"{self._current.id!r} is not the gate step")
        self.answer_step(GateAnswer(value=value))
        return self.advance()

    def advance(self) -> Destination:
        """Validate the current step, navigate, then queue the save.

        Raises:
            StepValidationError: the step has an inline validation error;
                the respondent stays where they are.
        """
        message = self._navigator.validation_error(self._current.id, self.answers)
        if message:
            self.error = message
            raise StepValidationError(message)
        return self._leave(self._current)

    def skip(self) -> Destination:
        """Move on without answering (email steps are cleared first)."""
        if self._current.type is StepType.EMAIL:
            self.answer_step(EmailAnswer())
        return self._leave(self._current)

    def back(self) -> Destination:
        destination = self._navigator.back(self._current.id)
        if destination.is_step:
            self._go_to(destination.step)
        return destination

    def submit_email(self, email: str, opt_in: bool | None = None) -> Destination:
        """Record the email answer, then advance like any other step."""
        if self._current.type is not StepType.EMAIL:
            raise ValueError(f"{self._current.id!r} is not the email step")
        email = email.strip()
        self.answer_step(EmailAnswer(email=email, opt_in=bool(email) if opt_in is None else opt_in))
        return self.advance()

    def _go_to(self, step: StepDefinition) -> None:
        self._current = step
        self._location = step.path
        self.error = None

    def _leave(self, step: StepDefinition) -> Destination:
        destination = self._navigator.transition(step.id, self.answers)

        if destination.kind is DestinationKind.STEP:
            self._go_to(destination.step)
            current_step = destination.step.id
        elif destination.kind is DestinationKind.NOT_A_FIT:
            self._location = destination.path
            current_step = step.id
        else:
            current_step = step.id

        completed = self._navigator.completes_session(destination.step)
        self._saves.save(
            self.session_id,
            self.answers,
            {
                "currentStep": current_step,
                "isCompleted": completed,
                "surveyType": self._variant.survey_type,
            },
        )
        logger.info(
            "Survey navigation",
            extra={
                "session_id": self.session_id,
                "from_step": step.id,
                "destination": destination.kind.value,
                "location": self._location,
            },
        )
        return destination

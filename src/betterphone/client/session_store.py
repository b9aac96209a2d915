"""
Respondent session state: a stable session id plus the accumulated answers.
"""

from __future__ import annotations

import json
import secrets
import string
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from betterphone.client.save_channel import BackgroundSaveChannel
from betterphone.client.storage import LocalStorage
from betterphone.shared.logging import get_logger
from betterphone.survey.variants import SESSION_ID_STORAGE_KEY, SurveyVariant

logger = get_logger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def generate_session_id(now: float | None = None) -> str:
    """``sess_{epoch_ms}_{7 random base36 chars}``."""
    millis = int((time.time() if now is None else now) * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(7))
    return f"sess_{millis}_{suffix}"


@dataclass
class SessionHandle:
    session_id: str = ""
    answers: dict[str, Any] = field(default_factory=dict)
    is_loading: bool = True


class SessionStore:
    """Loads, merges and persists one variant's answers for this browser profile.

    The session id is shared by both variants; answers live under the
    variant's own storage key.
    """

    def __init__(self, variant: SurveyVariant, storage: LocalStorage, saves: BackgroundSaveChannel) -> None:
        self._variant = variant
        self._storage = storage
        self._saves = saves
        self._handle = SessionHandle()
        self._create_sent = False

    @property
    def variant(self) -> SurveyVariant:
        return self._variant

    @property
    def storage(self) -> LocalStorage:
        return self._storage

    @property
    def handle(self) -> SessionHandle:
        return self._handle

    @property
    def session_id(self) -> str:
        return self._handle.session_id

    @property
    def answers(self) -> dict[str, Any]:
        return dict(self._handle.answers)

    def _load_answers(self) -> dict[str, Any]:
        raw = self._storage.get(self._variant.answers_storage_key)
        if not raw:
            return {}
        try:
            answers = json.loads(raw)
        except ValueError:
            logger.error("Failed to parse saved answers", extra={"key": self._variant.answers_storage_key})
            return {}
        return answers if isinstance(answers, dict) else {}

    def load(self) -> SessionHandle:
        """Restore (or start) the session; repeat calls return the same id."""
        session_id = self._storage.get(SESSION_ID_STORAGE_KEY)
        if not session_id:
            session_id = generate_session_id()
            self._storage.set(SESSION_ID_STORAGE_KEY, session_id)
            logger.info("Started survey session", extra={"session_id": session_id, "variant": self._variant.name})

        answers = self._load_answers()
        self._handle = SessionHandle(session_id=session_id, answers=answers, is_loading=False)

        if not answers:
            self._send_create()
        return self._handle

    def _send_create(self) -> None:
        if self._create_sent:
            return
        self._create_sent = True
        self._saves.save(
            self._handle.session_id,
            {},
            {
                "currentStep": self._variant.registry.first.id,
                "isCompleted": False,
                "surveyType": self._variant.survey_type,
            },
        )

    def update(self, partial: Mapping[str, Any]) -> dict[str, Any]:
        """Shallow-merge ``partial`` into the answers and persist them locally."""
        merged = {**self._handle.answers, **partial}
        self._handle.answers = merged
        if merged:
            # The in-memory answers stay authoritative when the local write fails
            try:
                self._storage.set(self._variant.answers_storage_key, json.dumps(merged))
            except (OSError, TypeError, ValueError) as exc:
                logger.error(
                    "Failed to persist answers locally",
                    extra={"key": self._variant.answers_storage_key, "error": str(exc)},
                )
        return dict(merged)


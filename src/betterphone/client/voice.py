"""
Respondent-side voice capture.

``VoiceStepRecorder`` is the lightweight per-step recorder: the step is
marked as answered as soon as recording stops and the upload happens in
the background. ``VoiceRecorder`` is the full recorder that uploads with
retries, triggers transcription and polls for the transcript.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

import httpx

from betterphone.client.api import RecordedAudio, SurveyApiClient, SurveyApiError, UploadResult
from betterphone.client.session_store import SessionStore
from betterphone.client.tasks import BackgroundTaskQueue
from betterphone.shared.logging import get_logger

logger = get_logger(__name__)

MICROPHONE_ERROR = "Could not access microphone. Please check permissions."
UPLOAD_ERROR = "Upload failed. Please try again."

UPLOAD_ATTEMPTS = 3
UPLOAD_BACKOFF_SECONDS = 1.0
POLL_INTERVAL_SECONDS = 2.0
POLL_TIMEOUT_SECONDS = 30.0

Sleep = Callable[[float], Awaitable[Any]]


class MicrophoneUnavailableError(RuntimeError):
    """The audio source could not be opened."""


class AudioSource(Protocol):
    async def start(self) -> None:
        ...

    async def stop(self) -> RecordedAudio:
        ...


class FileAudioSource:
    """Plays back a pre-recorded file as if it were captured live."""

    def __init__(self, path: str | Path, content_type: str | None = None, duration: float = 0.0) -> None:
        self._path = Path(path)
        self._content_type = content_type or ("audio/ogg" if self._path.suffix == ".ogg" else "audio/webm")
        self._duration = duration
        self._started = False

    async def start(self) -> None:
        if not self._path.is_file():
            raise MicrophoneUnavailableError(f"Audio file not found: {self._path}")
        self._started = True

    async def stop(self) -> RecordedAudio:
        if not self._started:
            raise MicrophoneUnavailableError("Recording was not started")
        self._started = False
        try:
            data = await asyncio.to_thread(self._path.read_bytes)
        except OSError as exc:
            raise MicrophoneUnavailableError(f"Could not read recording: {exc}") from exc
        return RecordedAudio(data=data, content_type=self._content_type, duration=self._duration)


def recording_flag(step_number: int) -> str:
    return f"step{step_number}Recording"


async def upload_with_retry(
    api: SurveyApiClient,
    session_id: str,
    step_number: int,
    audio: RecordedAudio,
    sleep: Sleep = asyncio.sleep,
    attempts: int = UPLOAD_ATTEMPTS,
) -> tuple[UploadResult | None, int]:
    """Upload with linear backoff (attempt x 1 s between tries).

    Returns:
        The upload result, or None when every attempt failed, and the
        number of attempts made.
    """
    for attempt in range(1, attempts + 1):
        try:
            return await api.upload_recording(session_id, step_number, audio), attempt
        except (SurveyApiError, httpx.HTTPError) as exc:
            logger.warning(
                "Voice upload attempt failed",
                extra={"step_number": step_number, "attempt": attempt, "error": str(exc)},
            )
            if attempt < attempts:
                await sleep(attempt * UPLOAD_BACKOFF_SECONDS)
    logger.error("Voice upload failed", extra={"step_number": step_number, "attempts": attempts})
    return None, attempts


class StepRecordingState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PROCESSING = "processing"
    SAVED = "saved"


class VoiceStepRecorder:
    """idle -> recording -> processing -> saved; reset() returns to idle.

    The step is marked answered as soon as recording stops. The upload runs
    in the background with retries; if every attempt fails the flag stays
    set and ``upload_failed`` becomes true.
    """

    def __init__(
        self,
        store: SessionStore,
        api: SurveyApiClient,
        tasks: BackgroundTaskQueue,
        step_number: int,
        source: AudioSource,
        sleep: Sleep = asyncio.sleep,
        upload_attempts: int = UPLOAD_ATTEMPTS,
    ) -> None:
        self._store = store
        self._api = api
        self._tasks = tasks
        self._step_number = step_number
        self._source = source
        self._sleep = sleep
        self._upload_attempts = upload_attempts
        saved = bool(store.answers.get(recording_flag(step_number)))
        self.state = StepRecordingState.SAVED if saved else StepRecordingState.IDLE
        self.error: str | None = None
        self.upload: UploadResult | None = None
        self.upload_failed = False

    async def start(self) -> None:
        self.error = None
        self.state = StepRecordingState.IDLE
        try:
            await self._source.start()
        except MicrophoneUnavailableError as exc:
            logger.warning("Failed to start recording", extra={"step_number": self._step_number, "error": str(exc)})
            self.error = MICROPHONE_ERROR
            return
        self.state = StepRecordingState.RECORDING

    async def stop(self) -> asyncio.Task[Any] | None:
        """Finish recording, mark the step answered and upload in the background."""
        if self.state is not StepRecordingState.RECORDING:
            return None
        self.state = StepRecordingState.PROCESSING
        try:
            audio = await self._source.stop()
        except MicrophoneUnavailableError as exc:
            logger.warning("Failed to stop recording", extra={"step_number": self._step_number, "error": str(exc)})
            self.error = MICROPHONE_ERROR
            self.state = StepRecordingState.IDLE
            return None
        self._store.update({recording_flag(self._step_number): True})
        self.state = StepRecordingState.SAVED
        return self._tasks.submit(self._upload(audio), name=f"upload:step{self._step_number}")

    def reset(self) -> None:
        self.state = StepRecordingState.IDLE
        self.error = None
        self.upload = None
        self.upload_failed = False
        self._store.update({recording_flag(self._step_number): False})

    async def _upload(self, audio: RecordedAudio) -> None:
        self.upload_failed = False
        result, _ = await upload_with_retry(
            self._api,
            self._store.session_id,
            self._step_number,
            audio,
            sleep=self._sleep,
            attempts=self._upload_attempts,
        )
        if result is None:
            self.upload_failed = True
            return
        self.upload = result
        # The transcript is picked up later from the admin side
        self._tasks.submit(self._api.transcribe(result.recording_id), name=f"transcribe:{result.recording_id}")


class RecorderState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    RECORDED = "recorded"
    UPLOADING = "uploading"
    TRANSCRIBING = "transcribing"
    ERROR = "error"


class VoiceRecorder:
    """idle -> recording -> recorded -> uploading -> transcribing -> recorded | error.

    Uploads are retried with linear backoff. When every attempt fails the
    state is ``error`` and ``retry_upload()`` is offered, while
    ``has_recording`` stays true.
    """

    def __init__(
        self,
        api: SurveyApiClient,
        tasks: BackgroundTaskQueue,
        session_id: str,
        step_number: int,
        source: AudioSource,
        store: SessionStore | None = None,
        sleep: Sleep = asyncio.sleep,
        upload_attempts: int = UPLOAD_ATTEMPTS,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        poll_timeout: float = POLL_TIMEOUT_SECONDS,
    ) -> None:
        self._api = api
        self._tasks = tasks
        self._session_id = session_id
        self._step_number = step_number
        self._source = source
        self._store = store
        self._sleep = sleep
        self._upload_attempts = upload_attempts
        self._poll_interval = poll_interval
        self._poll_timeout = poll_timeout

        self.state = RecorderState.IDLE
        self.error: str | None = None
        self.audio: RecordedAudio | None = None
        self.has_recording = False
        self.upload: UploadResult | None = None
        self.transcript: str | None = None
        self.attempts = 0

    async def start(self) -> None:
        self.error = None
        try:
            await self._source.start()
        except MicrophoneUnavailableError as exc:
            logger.warning("Failed to start recording", extra={"step_number": self._step_number, "error": str(exc)})
            self.error = MICROPHONE_ERROR
            self.state = RecorderState.IDLE
            return
        self.state = RecorderState.RECORDING

    async def stop(self) -> RecordedAudio | None:
        if self.state is not RecorderState.RECORDING:
            return None
        try:
            self.audio = await self._source.stop()
        except MicrophoneUnavailableError as exc:
            logger.warning("Failed to stop recording", extra={"step_number": self._step_number, "error": str(exc)})
            self.error = MICROPHONE_ERROR
            self.state = RecorderState.IDLE
            return None
        self.has_recording = True
        if self._store is not None:
            self._store.update({recording_flag(self._step_number): True})
        self.state = RecorderState.RECORDED
        return self.audio

    def reset(self) -> None:
        self.state = RecorderState.IDLE
        self.error = None
        self.audio = None
        self.upload = None
        self.transcript = None
        self.attempts = 0

    async def upload_recording(self) -> UploadResult | None:
        """Upload with retries, then trigger transcription and poll for it."""
        if self.audio is None:
            raise RuntimeError("Nothing recorded")

        self.state = RecorderState.UPLOADING
        self.error = None
        self.upload, self.attempts = await upload_with_retry(
            self._api,
            self._session_id,
            self._step_number,
            self.audio,
            sleep=self._sleep,
            attempts=self._upload_attempts,
        )
        if self.upload is None:
            self.state = RecorderState.ERROR
            self.error = UPLOAD_ERROR
            return None

        recording_id = self.upload.recording_id
        self._tasks.submit(self._api.transcribe(recording_id), name=f"transcribe:{recording_id}")
        self.state = RecorderState.TRANSCRIBING
        self.transcript = await self._poll_transcript(recording_id)
        self.state = RecorderState.RECORDED
        return self.upload

    async def retry_upload(self) -> UploadResult | None:
        return await self.upload_recording()

    async def _poll_transcript(self, recording_id: str) -> str | None:
        """Poll until a transcript arrives or the poll window closes.

        The window is wall-clock time, so a slow lookup is cut off too.
        """
        try:
            async with asyncio.timeout(self._poll_timeout):
                waited = 0.0
                # Also bounded by total sleep so an injected sleep still ends the loop
                while waited < self._poll_timeout:
                    try:
                        transcript = await self._api.get_transcription(recording_id)
                    except (SurveyApiError, httpx.HTTPError) as exc:
                        logger.warning(
                            "Transcription poll failed",
                            extra={"recording_id": recording_id, "error": str(exc)},
                        )
                        transcript = None
                    if transcript:
                        return transcript
                    await self._sleep(self._poll_interval)
                    waited += self._poll_interval
        except TimeoutError:
            pass
        logger.info("Transcript not ready; continuing without it", extra={"recording_id": recording_id})
        return None

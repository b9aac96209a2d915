"""
Respondent-side client: session state, background saves, navigation and
voice capture against the survey API.
"""

from betterphone.client.api import RecordedAudio, SurveyApiClient, SurveyApiError, UploadResult
from betterphone.client.flow import StepValidationError, SurveyFlow
from betterphone.client.save_channel import BackgroundSaveChannel
from betterphone.client.session_store import SessionHandle, SessionStore, generate_session_id
from betterphone.client.storage import JsonFileLocalStorage, LocalStorage, MemoryLocalStorage
from betterphone.client.tasks import BackgroundTaskQueue
from betterphone.client.voice import (
    AudioSource,
    FileAudioSource,
    MicrophoneUnavailableError,
    RecorderState,
    StepRecordingState,
    VoiceRecorder,
    VoiceStepRecorder,
)

__all__ = [
    "AudioSource",
    "BackgroundSaveChannel",
    "BackgroundTaskQueue",
    "FileAudioSource",
    "JsonFileLocalStorage",
    "LocalStorage",
    "MemoryLocalStorage",
    "MicrophoneUnavailableError",
    "RecordedAudio",
    "RecorderState",
    "SessionHandle",
    "SessionStore",
    "StepRecordingState",
    "StepValidationError",
    "SurveyApiClient",
    "SurveyApiError",
    "SurveyFlow",
    "UploadResult",
    "VoiceRecorder",
    "VoiceStepRecorder",
    "generate_session_id",
]

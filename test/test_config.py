"""
Tests for application settings.
"""

import pytest
from pydantic import ValidationError

from betterphone.config import Settings, get_settings


class TestSettings:
    def test_declared_defaults(self) -> None:
        # Environment variables may override runtime values, so check declared defaults.
        fields = Settings.model_fields
        assert fields["admin_password"].default == "betterphone2024"
        assert fields["openai_chat_model"].default == "gpt-4o-mini"
        assert fields["openai_profile_model"].default == "gpt-4-turbo-preview"
        assert fields["openai_transcription_model"].default == "whisper-1"
        assert fields["storage_bucket"].default == "voice-recordings"
        assert fields["admin_session_days"].default == 7

    def test_base_urls_are_normalized(self) -> None:
        settings = Settings(
            openai_base_url="https://api.example.com/v1/",
            public_storage_url="https://cdn.example.com/storage/",
            api_base_url="http://localhost:8000/",
        )

        assert settings.openai_base_url == "https://api.example.com/v1"
        assert settings.public_storage_url == "https://cdn.example.com/storage"
        assert settings.api_base_url == "http://localhost:8000"

    def test_cors_origins_list(self) -> None:
        settings = Settings(cors_origins="http://a.test, http://b.test,,")
        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]

    def test_is_production(self) -> None:
        assert Settings(app_env="prod").is_production
        assert not Settings(app_env="dev").is_production

    @pytest.mark.parametrize(
        "overrides",
        [
            {"app_env": "staging"},
            {"admin_auth_scheme": "oauth"},
            {"storage_backend": "ftp"},
            {"openai_max_retries": -1},
            {"admin_session_days": 0},
        ],
    )
    def test_invalid_values(self, overrides: dict) -> None:
        with pytest.raises(ValidationError):
            Settings(**overrides)

    def test_environment_is_read_per_test(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_CHAT_MODEL", "gpt-test")
        monkeypatch.setenv("STORAGE_BACKEND", "s3")

        settings = get_settings()

        assert settings.openai_chat_model == "gpt-test"
        assert settings.storage_backend == "s3"

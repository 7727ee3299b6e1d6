"""Tests for settings, runtime validation and telemetry helpers."""

import pytest
from pydantic_ai.models.instrumented import InstrumentationSettings

from bents_assistant.application.exceptions import ConfigurationError
from bents_assistant.config import Settings
from bents_assistant.domain.models import UserProfile
from bents_assistant.telemetry import (
    get_instrumentation_settings,
    is_observability_active,
    run_name,
    span_attributes,
)


def _settings(**overrides) -> Settings:
    values = {"openai_api_key": "sk-test", "postgres_url": "postgresql://u:p@db/bents"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestSettings:
    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.openai_chat_model == "gpt-4o-mini"
        assert s.openai_embedding_model == "text-embedding-ada-002"
        assert s.document_table == "bents"
        assert s.retrieval_top_k == 10
        assert s.history_window == 5

    @pytest.mark.parametrize(
        "url",
        ["postgresql://u:p@db/bents", "postgres://u:p@db/bents"],
    )
    def test_async_database_url(self, url):
        assert _settings(postgres_url=url).async_database_url == "postgresql+asyncpg://u:p@db/bents"

    def test_validate_runtime_ok(self):
        _settings().validate_runtime()

    def test_missing_openai_key(self):
        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            _settings(openai_api_key="").validate_runtime()

    def test_missing_postgres_url(self):
        with pytest.raises(ConfigurationError, match="POSTGRES_URL"):
            _settings(postgres_url="").validate_runtime()

    def test_table_must_be_allowed(self):
        with pytest.raises(ConfigurationError, match="DOCUMENT_TABLE"):
            _settings(document_table="users").validate_runtime()


class TestTelemetryHelpers:
    def test_run_name_with_profile(self):
        user = UserProfile(id="u", first_name="Ada", last_name="Lovelace")
        assert run_name(user, "chat-pipeline") == "Ada-Lovelace-chat-pipeline"

    def test_run_name_anonymous(self):
        assert run_name(None, "video-reference-pipeline") == "--video-reference-pipeline"

    def test_span_attributes_drop_missing_values(self):
        user = UserProfile(id="u", first_name="Ada", last_name=None)
        attrs = span_attributes("u", user, turns=3)
        assert attrs == {"user.id": "u", "user.first_name": "Ada", "turns": "3"}

    def test_observability_modes(self):
        assert not is_observability_active(_settings())
        assert is_observability_active(_settings(observability="OTEL"))

    def test_no_agent_instrumentation_when_off(self):
        assert get_instrumentation_settings(_settings()) is None

    @pytest.mark.parametrize("mode", ["otel", "logfire"])
    def test_agent_instrumentation_when_active(self, mode):
        assert isinstance(
            get_instrumentation_settings(_settings(observability=mode)), InstrumentationSettings
        )

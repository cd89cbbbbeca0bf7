"""Unit tests for configuration validation."""

from __future__ import annotations

from unittest.mock import patch

from src.config import (
    AnthropicSettings,
    AuthSettings,
    DatabaseSettings,
    LLMSettings,
    OpenAISettings,
    RedisSettings,
    ServerSettings,
    Settings,
)


def _make_settings(**overrides: object) -> Settings:
    """Create Settings with sensible defaults for testing."""
    defaults = {
        "anthropic": AnthropicSettings(api_key="sk-ant-test-key"),
        "database": DatabaseSettings(url="postgresql+asyncpg://u:p@localhost/db"),
        "redis": RedisSettings(url="redis://localhost:6379/0"),
        "auth": AuthSettings(jwt_secret="test-secret-not-default"),
    }
    defaults.update(overrides)
    return Settings(**defaults)  # type: ignore[arg-type]


class TestValidateRequired:
    """Test Settings.validate_required() semantic checks."""

    def test_all_valid_passes(self) -> None:
        settings = _make_settings()
        result = settings.validate_required()
        assert result.ok
        assert len(result.errors) == 0

    def test_empty_anthropic_key(self) -> None:
        settings = _make_settings(anthropic=AnthropicSettings(api_key=""))
        result = settings.validate_required()
        assert not result.ok
        errors = {e.field for e in result.errors}
        assert "ANTHROPIC_API_KEY" in errors

    def test_openai_provider_needs_openai_key(self) -> None:
        settings = _make_settings(
            llm=LLMSettings(provider="openai"),
            anthropic=AnthropicSettings(api_key=""),
            openai=OpenAISettings(api_key=""),
        )
        errors = {e.field for e in settings.validate_required().errors}
        assert errors == {"OPENAI_API_KEY"}

    def test_unknown_provider(self) -> None:
        settings = _make_settings(llm=LLMSettings(provider="gemini"))
        errors = {e.field for e in settings.validate_required().errors}
        assert "LLM_PROVIDER" in errors

    def test_invalid_database_url_scheme(self) -> None:
        settings = _make_settings(database=DatabaseSettings(url="mysql://localhost/db"))
        result = settings.validate_required()
        assert not result.ok
        errors = {e.field for e in result.errors}
        assert "DATABASE_URL" in errors

    def test_valid_database_url_with_asyncpg(self) -> None:
        settings = _make_settings(database=DatabaseSettings(url="postgresql+asyncpg://u:p@host/db"))
        result = settings.validate_required()
        db_errors = [e for e in result.errors if e.field == "DATABASE_URL"]
        assert len(db_errors) == 0

    def test_invalid_redis_url_scheme(self) -> None:
        settings = _make_settings(redis=RedisSettings(url="http://localhost:6379"))
        result = settings.validate_required()
        assert not result.ok
        errors = {e.field for e in result.errors}
        assert "REDIS_URL" in errors

    def test_rediss_scheme_accepted(self) -> None:
        settings = _make_settings(redis=RedisSettings(url="rediss://localhost:6379/0"))
        result = settings.validate_required()
        redis_errors = [e for e in result.errors if e.field == "REDIS_URL"]
        assert len(redis_errors) == 0

    def test_invalid_openai_base_url(self) -> None:
        settings = _make_settings(openai=OpenAISettings(base_url="not-a-url"))
        errors = {e.field for e in settings.validate_required().errors}
        assert "OPENAI_BASE_URL" in errors

    def test_default_jwt_secret_warns(self) -> None:
        settings = _make_settings(auth=AuthSettings(jwt_secret="change-me-in-production"))
        result = settings.validate_required()
        assert not result.ok
        errors = {e.field for e in result.errors}
        assert "AUTH_JWT_SECRET" in errors

    def test_multiple_errors_collected(self) -> None:
        settings = _make_settings(
            anthropic=AnthropicSettings(api_key=""),
            database=DatabaseSettings(url="mysql://x"),
            auth=AuthSettings(jwt_secret="change-me-in-production"),
        )
        result = settings.validate_required()
        assert not result.ok
        assert len(result.errors) >= 3

    def test_validation_error_has_hint(self) -> None:
        settings = _make_settings(anthropic=AnthropicSettings(api_key=""))
        result = settings.validate_required()
        err = next(e for e in result.errors if e.field == "ANTHROPIC_API_KEY")
        assert err.hint
        assert "export" in err.hint


class TestEnvironment:
    def test_auth_settings_from_env(self) -> None:
        env = {
            "AUTH_SESSION_TTL_DAYS": "7",
            "AUTH_LEGACY_PERMISSION_MIGRATION": "false",
        }
        with patch.dict("os.environ", env):
            auth = AuthSettings()
        assert auth.session_ttl_seconds == 7 * 24 * 3600
        assert auth.legacy_permission_migration is False

    def test_cors_origins_split(self) -> None:
        server = ServerSettings(cors_allowed_origins="https://a.example, ,https://b.example")
        assert server.cors_origin_list == ["https://a.example", "https://b.example"]

    def test_cors_origins_empty(self) -> None:
        assert ServerSettings(cors_allowed_origins="").cors_origin_list == []

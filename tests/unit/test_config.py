from pathlib import Path

from ponnect_alerts import config as config_module
from ponnect_alerts.config import AppConfig, load_config, parse_bool

ENV_NAMES = [
    "GOV_FEEDS_CSV",
    "CITIES_CSV",
    "DATABASE_URL",
    "JWT_SECRET",
    "AUTH_COOKIE_NAME",
    "WEATHER_API_BASE_URL",
    "USER_AGENT",
    "FETCH_TIMEOUT_SECONDS",
    "FETCH_MAX_WORKERS",
    "GOV_CACHE_TTL_SECONDS",
    "WEATHER_CACHE_TTL_SECONDS",
    "FORECAST_DAYS",
    "GUIDANCE_AI_ENABLED",
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "GUIDANCE_MIN_DELAY_SECONDS",
    "MESSAGE_MAX_LENGTH",
    "LOG_LEVEL",
    "API_HOST",
    "API_PORT",
]


def _clean_env(monkeypatch) -> None:
    monkeypatch.setattr(config_module, "find_dotenv", lambda usecwd=True: "")
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_environment(monkeypatch) -> None:
    _clean_env(monkeypatch)

    config = load_config()

    assert config == AppConfig()
    assert config.gov_cache_ttl_seconds == 1800
    assert config.weather_cache_ttl_seconds == 3600
    assert config.auth_cookie_name == "auth_token"
    assert config.message_max_length == 300


def test_environment_overrides(monkeypatch) -> None:
    _clean_env(monkeypatch)
    monkeypatch.setenv("GOV_FEEDS_CSV", "/tmp/feeds.csv")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.setenv("GOV_CACHE_TTL_SECONDS", "60")
    monkeypatch.setenv("FETCH_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("GUIDANCE_AI_ENABLED", "off")
    monkeypatch.setenv("GEMINI_API_KEY", "key-123")

    config = load_config()

    assert config.gov_feeds_csv == Path("/tmp/feeds.csv")
    assert config.database_url == "sqlite:///:memory:"
    assert config.gov_cache_ttl_seconds == 60
    assert config.fetch_timeout_seconds == 2.5
    assert config.guidance_ai_enabled is False
    assert config.gemini_api_key == "key-123"


def test_invalid_values_fall_back_to_defaults(monkeypatch, caplog) -> None:
    _clean_env(monkeypatch)
    monkeypatch.setenv("API_PORT", "not-a-port")
    monkeypatch.setenv("GUIDANCE_AI_ENABLED", "sometimes")

    with caplog.at_level("WARNING"):
        config = load_config()

    assert config.api_port == 5000
    assert config.guidance_ai_enabled is True
    assert "API_PORT" in caplog.text
    assert "GUIDANCE_AI_ENABLED" in caplog.text


def test_parse_bool() -> None:
    assert parse_bool("true", False) is True
    assert parse_bool("0", True) is False
    assert parse_bool(None, True) is True
    assert parse_bool("maybe", False) is False

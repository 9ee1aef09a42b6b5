import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class AppConfig:
    gov_feeds_csv: Path = Path("data/gov_feeds.csv")
    cities_csv: Path = Path("data/cities.csv")
    database_url: str = "sqlite:///data/ponnect.db"
    jwt_secret: str = "ponnect-secret-key-change-in-production"
    auth_cookie_name: str = "auth_token"
    weather_api_base_url: str = "https://api.open-meteo.com/v1/forecast"
    user_agent: str = "Ponnect/1.0 (Pet Safety Alerts)"
    fetch_timeout_seconds: float = 10.0
    fetch_max_workers: int = 8
    gov_cache_ttl_seconds: int = 1800
    weather_cache_ttl_seconds: int = 3600
    forecast_days: int = 4
    guidance_ai_enabled: bool = True
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    guidance_min_delay_seconds: float = 2.0
    message_max_length: int = 300
    log_level: str = "INFO"
    api_host: str = "127.0.0.1"
    api_port: int = 5000


def _env_path(name: str, default: Path) -> Path:
    value = os.getenv(name)
    if not value:
        return default
    return Path(value)


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Invalid integer value for %s: %s", name, value)
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning("Invalid number value for %s: %s", name, value)
        return default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default

    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False

    logger.warning("Invalid boolean value for %s: %s", name, value)
    return default


def parse_bool(value: str | None, default: bool) -> bool:
    if not value:
        return default

    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False

    return default


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )


def load_config() -> AppConfig:
    """Load configuration from defaults and optional .env overrides."""
    dotenv_path = find_dotenv(usecwd=True)
    if dotenv_path:
        load_dotenv(dotenv_path)

    defaults = AppConfig()

    return AppConfig(
        gov_feeds_csv=_env_path("GOV_FEEDS_CSV", defaults.gov_feeds_csv),
        cities_csv=_env_path("CITIES_CSV", defaults.cities_csv),
        database_url=_env_str("DATABASE_URL", defaults.database_url),
        jwt_secret=_env_str("JWT_SECRET", defaults.jwt_secret),
        auth_cookie_name=_env_str(
            "AUTH_COOKIE_NAME", defaults.auth_cookie_name
        ),
        weather_api_base_url=_env_str(
            "WEATHER_API_BASE_URL", defaults.weather_api_base_url
        ),
        user_agent=_env_str("USER_AGENT", defaults.user_agent),
        fetch_timeout_seconds=_env_float(
            "FETCH_TIMEOUT_SECONDS", defaults.fetch_timeout_seconds
        ),
        fetch_max_workers=_env_int(
            "FETCH_MAX_WORKERS", defaults.fetch_max_workers
        ),
        gov_cache_ttl_seconds=_env_int(
            "GOV_CACHE_TTL_SECONDS", defaults.gov_cache_ttl_seconds
        ),
        weather_cache_ttl_seconds=_env_int(
            "WEATHER_CACHE_TTL_SECONDS", defaults.weather_cache_ttl_seconds
        ),
        forecast_days=_env_int("FORECAST_DAYS", defaults.forecast_days),
        guidance_ai_enabled=_env_bool(
            "GUIDANCE_AI_ENABLED", defaults.guidance_ai_enabled
        ),
        gemini_api_key=_env_str("GEMINI_API_KEY", defaults.gemini_api_key),
        gemini_model=_env_str("GEMINI_MODEL", defaults.gemini_model),
        guidance_min_delay_seconds=_env_float(
            "GUIDANCE_MIN_DELAY_SECONDS", defaults.guidance_min_delay_seconds
        ),
        message_max_length=_env_int(
            "MESSAGE_MAX_LENGTH", defaults.message_max_length
        ),
        log_level=_env_str("LOG_LEVEL", defaults.log_level),
        api_host=_env_str("API_HOST", defaults.api_host),
        api_port=_env_int("API_PORT", defaults.api_port),
    )

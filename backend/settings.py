import os
from pathlib import Path

# Basic settings helper to read environment configuration.

BACKEND_DIR = Path(__file__).resolve().parent


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_int(val: str | None, default: int) -> int:
    if val is None or not val.strip():
        return default
    return int(val)


def _as_float(val: str | None, default: float) -> float:
    if val is None or not val.strip():
        return default
    return float(val)


def _as_list(val: str | None, default: list[str]) -> list[str]:
    if val is None or not val.strip():
        return default
    return [item.strip() for item in val.split(",") if item.strip()]


class Settings:
    def __init__(self) -> None:
        self.OPENWEATHER_API_KEY: str | None = os.getenv("OPENWEATHER_API_KEY") or None
        self.OPENWEATHER_BASE_URL: str = os.getenv(
            "OPENWEATHER_BASE_URL", "https://api.openweathermap.org"
        ).rstrip("/")

        self.NOMINATIM_BASE_URL: str = os.getenv(
            "NOMINATIM_BASE_URL", "https://nominatim.openstreetmap.org"
        ).rstrip("/")
        self.NOMINATIM_USER_AGENT: str | None = os.getenv("NOMINATIM_USER_AGENT")
        self.NOMINATIM_REFERER: str | None = os.getenv("NOMINATIM_REFERER")
        self.NOMINATIM_MIN_INTERVAL: float = _as_float(os.getenv("NOMINATIM_MIN_INTERVAL"), 1.1)

        self.NEWS_RSS_URL: str = os.getenv("NEWS_RSS_URL", "https://news.google.com/rss/search")

        self.HTTP_TIMEOUT_SECONDS: float = _as_float(os.getenv("HTTP_TIMEOUT_SECONDS"), 5.0)
        self.ENRICHMENT_WAIT_SECONDS: float = _as_float(os.getenv("ENRICHMENT_WAIT_SECONDS"), 8.0)
        self.AGGREGATOR_MAX_WORKERS: int = _as_int(os.getenv("AGGREGATOR_MAX_WORKERS"), 8)

        self.REGION_CACHE_MAX_ENTRIES: int = _as_int(os.getenv("REGION_CACHE_MAX_ENTRIES"), 2048)
        self.REGION_CACHE_TTL_SECONDS: int = _as_int(
            os.getenv("REGION_CACHE_TTL_SECONDS"), 24 * 3600
        )
        self.REGION_CACHE_FAILURE_TTL_SECONDS: int = _as_int(
            os.getenv("REGION_CACHE_FAILURE_TTL_SECONDS"), 15 * 60
        )

        self.DATABASE_URL: str = os.getenv(
            "DATABASE_URL", f"sqlite:///{BACKEND_DIR / 'app.db'}"
        )
        self.DATABASE_ECHO: bool = _as_bool(os.getenv("DATABASE_ECHO"), False)

        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.CORS_ORIGINS: list[str] = _as_list(os.getenv("CORS_ORIGINS"), ["*"])


settings = Settings()

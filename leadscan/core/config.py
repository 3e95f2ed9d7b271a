"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class ConfigError(RuntimeError):
    """Raised when configuration is missing or malformed."""


@dataclass(frozen=True)
class Settings:
    gemini_api_key: str
    search_model: str = "gemini-2.5-flash"
    analysis_model: str = "gemini-3-flash-preview"
    city: str = "Pittsburgh"
    state: str = "PA"
    latitude: float = 40.4406
    longitude: float = -79.9959
    target_total: int = 500
    retry_max_attempts: int = 5
    retry_base_delay_ms: int = 2000
    pacing_delay_ms: int = 800
    worker_port: int = 9000
    export_dir: str = "."


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    gemini_api_key = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY", "")
    if not gemini_api_key:
        logger.warning("GEMINI_API_KEY is not configured; Gemini requests will fail.")

    retry_max_attempts = _int_env("RETRY_MAX_ATTEMPTS", 5)
    if retry_max_attempts < 1:
        raise ConfigError("RETRY_MAX_ATTEMPTS must be at least 1")

    return Settings(
        gemini_api_key=gemini_api_key,
        search_model=os.getenv("GEMINI_SEARCH_MODEL", "gemini-2.5-flash"),
        analysis_model=os.getenv("GEMINI_ANALYSIS_MODEL", "gemini-3-flash-preview"),
        city=os.getenv("SCAN_CITY", "Pittsburgh"),
        state=os.getenv("SCAN_STATE", "PA"),
        latitude=_float_env("SCAN_LATITUDE", 40.4406),
        longitude=_float_env("SCAN_LONGITUDE", -79.9959),
        target_total=_int_env("SCAN_TARGET_TOTAL", 500),
        retry_max_attempts=retry_max_attempts,
        retry_base_delay_ms=_int_env("RETRY_BASE_DELAY_MS", 2000),
        pacing_delay_ms=_int_env("PACING_DELAY_MS", 800),
        worker_port=_int_env("WORKER_PORT", 9000),
        export_dir=os.getenv("EXPORT_DIR", "."),
    )

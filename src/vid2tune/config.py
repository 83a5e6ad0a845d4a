from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Settings:
    host: str
    port: int
    cloudconvert_api_key: str
    assemblyai_api_key: str
    cloudconvert_base_url: str = "https://api.cloudconvert.com/v2"
    assemblyai_base_url: str = "https://api.assemblyai.com/v2"
    poll_interval_seconds: float = 3.0
    poll_max_wait_seconds: float | None = None
    poll_max_errors: int = 0
    request_timeout_seconds: float = 600.0
    cors_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"


def _as_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _as_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _as_optional_float(name: str) -> float | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return float(raw)


def _as_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    items = tuple(item.strip() for item in raw.split(",") if item.strip())
    return items or default


def load_settings() -> Settings:
    load_dotenv()

    cloudconvert_api_key = os.getenv("CLOUDCONVERT_API_KEY", "").strip()
    assemblyai_api_key = os.getenv("ASSEMBLYAI_API_KEY", "").strip()
    if not cloudconvert_api_key or not assemblyai_api_key:
        logger.warning("Missing CLOUDCONVERT_API_KEY or ASSEMBLYAI_API_KEY. Update your .env file.")

    return Settings(
        host=os.getenv("HOST", "0.0.0.0"),
        port=_as_int("PORT", 4000),
        cloudconvert_api_key=cloudconvert_api_key,
        assemblyai_api_key=assemblyai_api_key,
        cloudconvert_base_url=os.getenv("CLOUDCONVERT_BASE_URL", "https://api.cloudconvert.com/v2").rstrip("/"),
        assemblyai_base_url=os.getenv("ASSEMBLYAI_BASE_URL", "https://api.assemblyai.com/v2").rstrip("/"),
        poll_interval_seconds=_as_float("POLL_INTERVAL_SECONDS", 3.0),
        poll_max_wait_seconds=_as_optional_float("POLL_MAX_WAIT_SECONDS"),
        poll_max_errors=_as_int("POLL_MAX_ERRORS", 0),
        request_timeout_seconds=_as_float("REQUEST_TIMEOUT_SECONDS", 600.0),
        cors_origins=_as_list("CORS_ORIGINS", ("*",)),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )

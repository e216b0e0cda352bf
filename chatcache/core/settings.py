from __future__ import annotations

import os
from dataclasses import dataclass
from dotenv import load_dotenv


DEFAULT_SESSION_TTL_SEC = 30 * 60
DEFAULT_MAX_SESSIONS = 1000
DEFAULT_CLEANUP_INTERVAL_SEC = 5 * 60
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
DEFAULT_RATE_LIMIT_MAX = 100
DEFAULT_RATE_LIMIT_WINDOW_SEC = 15 * 60

DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"
DEFAULT_OLLAMA_MODEL = "gpt-oss:20b"
DEFAULT_OLLAMA_TIMEOUT_SEC = 120
DEFAULT_OLLAMA_FALLBACK_MODEL = "llama3.1:8b"


@dataclass(frozen=True)
class Settings:
    session_ttl_sec: int = DEFAULT_SESSION_TTL_SEC
    max_sessions: int = DEFAULT_MAX_SESSIONS
    cleanup_interval_sec: int = DEFAULT_CLEANUP_INTERVAL_SEC
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    cors_origins: tuple[str, ...] = ("*",)
    rate_limit_max: int = DEFAULT_RATE_LIMIT_MAX
    rate_limit_window_sec: int = DEFAULT_RATE_LIMIT_WINDOW_SEC
    ollama_base_url: str = DEFAULT_OLLAMA_BASE_URL
    ollama_model: str | None = DEFAULT_OLLAMA_MODEL
    ollama_timeout_sec: int = DEFAULT_OLLAMA_TIMEOUT_SEC
    ollama_fallback_model: str = DEFAULT_OLLAMA_FALLBACK_MODEL


def _positive_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from e
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def get_settings() -> Settings:
    load_dotenv()
    model_env = os.getenv("OLLAMA_MODEL", DEFAULT_OLLAMA_MODEL)
    model_env = model_env.strip() if model_env else None
    origins = os.getenv("CORS_ORIGINS", "*")
    return Settings(
        session_ttl_sec=_positive_int("SESSION_TTL_SEC", DEFAULT_SESSION_TTL_SEC),
        max_sessions=_positive_int("MAX_SESSIONS", DEFAULT_MAX_SESSIONS),
        cleanup_interval_sec=_positive_int("CLEANUP_INTERVAL_SEC", DEFAULT_CLEANUP_INTERVAL_SEC),
        host=os.getenv("HOST", DEFAULT_HOST),
        port=_positive_int("PORT", DEFAULT_PORT),
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()) or ("*",),
        rate_limit_max=_positive_int("RATE_LIMIT_MAX", DEFAULT_RATE_LIMIT_MAX),
        rate_limit_window_sec=_positive_int("RATE_LIMIT_WINDOW_SEC", DEFAULT_RATE_LIMIT_WINDOW_SEC),
        ollama_base_url=os.getenv("OLLAMA_BASE_URL", DEFAULT_OLLAMA_BASE_URL),
        ollama_model=model_env or None,
        ollama_timeout_sec=_positive_int("OLLAMA_TIMEOUT_SEC", DEFAULT_OLLAMA_TIMEOUT_SEC),
        ollama_fallback_model=os.getenv("OLLAMA_FALLBACK_MODEL", DEFAULT_OLLAMA_FALLBACK_MODEL),
    )

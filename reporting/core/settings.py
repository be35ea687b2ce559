from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be numeric, got {raw!r}") from exc


def _env_flag(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass(slots=True)
class Settings:
    """Runtime configuration resolved from the environment."""

    supabase_url: str | None = None
    supabase_key: str | None = None
    debounce_seconds: float = 0.3
    page_size: int = 500
    http_timeout: float = 15.0
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"
    log_json: bool = False


def load_settings() -> Settings:
    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]

    return Settings(
        supabase_url=os.getenv("SUPABASE_URL") or None,
        supabase_key=os.getenv("SUPABASE_ANON_KEY") or None,
        debounce_seconds=_env_float("REPORT_DEBOUNCE_MS", 300.0) / 1000.0,
        page_size=int(_env_float("REPORT_PAGE_SIZE", 500)),
        http_timeout=_env_float("REPORT_HTTP_TIMEOUT", 15.0),
        cors_origins=origins or list(DEFAULT_CORS_ORIGINS),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        log_json=_env_flag("LOG_JSON"),
    )


__all__ = ["Settings", "load_settings"]

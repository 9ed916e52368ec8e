"""
Runtime configuration.

Values come from the environment, with a `.env` file in the project root
loaded first (python-dotenv). Nothing here talks to a database.

Environment variables:
- DEALER_STORE_BACKEND: "memory" (default) or "supabase"
- SUPABASE_URL / SUPABASE_KEY: required when the backend is "supabase"
- DEALER_TIMEZONE: IANA zone used for calendar day/month boundaries (default UTC)
- DEALER_TREND_MONTHS: default sales trend window (default 6)
- DEALER_LOG_LEVEL: log level for the API process (default INFO)
- DEALER_CORS_ORIGINS: comma-separated allowed origins for the API (default "*")
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

# Look for .env in the project root (one level above this package)
env_path = Path(__file__).parent.parent / ".env"

STORE_BACKENDS = ("memory", "supabase")


@dataclass(frozen=True, slots=True)
class Settings:
    store_backend: str = "memory"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    timezone_name: str = "UTC"
    trend_months: int = 6
    log_level: str = "INFO"
    cors_origins: Tuple[str, ...] = ("*",)

    @property
    def timezone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone_name)


def _origins(raw: str) -> Tuple[str, ...]:
    origins = tuple(origin.strip() for origin in raw.split(",") if origin.strip())
    return origins or ("*",)


def load_settings() -> Settings:
    """Read settings from the environment (after loading `.env`)."""

    load_dotenv(dotenv_path=env_path)

    backend = os.getenv("DEALER_STORE_BACKEND", "memory").strip().lower()
    if backend not in STORE_BACKENDS:
        raise RuntimeError(
            f"Invalid DEALER_STORE_BACKEND: {backend!r}. "
            f"Use one of: {', '.join(STORE_BACKENDS)}."
        )

    timezone_name = os.getenv("DEALER_TIMEZONE", "UTC").strip() or "UTC"
    try:
        ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise RuntimeError(
            f"Invalid DEALER_TIMEZONE: {timezone_name!r}. Use an IANA zone name such as 'Asia/Shanghai'."
        ) from None

    raw_months = os.getenv("DEALER_TREND_MONTHS", "6")
    try:
        trend_months = int(raw_months)
    except ValueError:
        raise RuntimeError(f"DEALER_TREND_MONTHS must be an integer, got {raw_months!r}") from None
    if trend_months < 1:
        raise RuntimeError("DEALER_TREND_MONTHS must be at least 1")

    return Settings(
        store_backend=backend,
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_key=os.getenv("SUPABASE_KEY"),
        timezone_name=timezone_name,
        trend_months=trend_months,
        log_level=os.getenv("DEALER_LOG_LEVEL", "INFO").upper(),
        cors_origins=_origins(os.getenv("DEALER_CORS_ORIGINS", "*")),
    )


__all__ = ["Settings", "load_settings", "STORE_BACKENDS"]

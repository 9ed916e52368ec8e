"""
Supabase client construction for the `supabase` store backend.

Only `repositories.factory` calls this, and only when DEALER_STORE_BACKEND is
"supabase", so tests and the in-memory backend never need credentials.
"""

from __future__ import annotations

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

from repositories.config import Settings

# (settings attribute, environment variable, what to put there)
_REQUIRED = (
    ("supabase_url", "SUPABASE_URL", "your Supabase project URL"),
    ("supabase_key", "SUPABASE_KEY", "a server-side Supabase API key"),
)


def create_supabase_client(settings: Settings) -> Client:
    missing = [(env, hint) for attr, env, hint in _REQUIRED if not getattr(settings, attr)]
    if missing:
        details = "; ".join(f"set {env} to {hint}" for env, hint in missing)
        raise RuntimeError(f"The supabase store backend is not configured: {details}.")

    return create_client(settings.supabase_url, settings.supabase_key)


__all__ = ["create_supabase_client"]

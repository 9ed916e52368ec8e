"""Store selection from settings."""

from __future__ import annotations

from repositories.config import Settings
from repositories.memory_store import InMemoryStore
from repositories.store import BaseStore


def create_store(settings: Settings) -> BaseStore:
    if settings.store_backend == "supabase":
        from repositories.client import create_supabase_client
        from repositories.supabase_store import SupabaseStore

        return SupabaseStore(create_supabase_client(settings))
    return InMemoryStore()


__all__ = ["create_store"]

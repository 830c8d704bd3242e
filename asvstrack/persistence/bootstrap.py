"""Bootstrap helpers for choosing the configured store backend."""

from __future__ import annotations

from config.settings import settings
from asvstrack.persistence.base import RequirementStore


async def create_store(backend: str | None = None) -> RequirementStore:
    """Create the store for the configured backend ("supabase" or "sql")."""
    # Lazy import to avoid circular dependency with asvstrack.db
    backend = (backend or settings.store_backend).lower()
    if backend == "supabase":
        from asvstrack.persistence.supabase_store import SupabaseRequirementStore
        from asvstrack.supabase_client import get_async_supabase_client

        return SupabaseRequirementStore(await get_async_supabase_client())
    if backend == "sql":
        from asvstrack.db import create_schema, get_sessionmaker
        from asvstrack.persistence.sql_store import SqlRequirementStore

        await create_schema()
        return SqlRequirementStore(get_sessionmaker())
    raise RuntimeError(f"Unknown STORE_BACKEND '{backend}'; expected 'supabase' or 'sql'")

"""Supabase client for asvstrack."""

from __future__ import annotations

import logging

from supabase import AuthError
from supabase._async.client import create_client as create_async_client, AsyncClient

from config.settings import settings

logger = logging.getLogger(__name__)

_async_client: AsyncClient | None = None


async def get_async_supabase_client() -> AsyncClient:
    """Return a singleton Supabase client (async)."""
    global _async_client
    if _async_client is None:
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise RuntimeError("SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is not set")
        _async_client = await create_async_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
        )
    return _async_client


async def resolve_user_id(access_token: str) -> str | None:
    """Return the id of the user owning a Supabase access token."""
    client = await get_async_supabase_client()
    try:
        response = await client.auth.get_user(access_token)
    except AuthError as e:
        logger.info("Rejected access token: %s", e)
        return None
    if response is None or response.user is None:
        return None
    return str(response.user.id)


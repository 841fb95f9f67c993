"""Remote persistence adapters."""

from __future__ import annotations

import aiohttp

from ..config import Settings
from ..exceptions import NotConfiguredError
from .base import AuthSession, BaseAdapter, UserProfile
from .supabase import SupabaseAdapter


def create_adapter(
    settings: Settings,
    session: aiohttp.ClientSession,
    *,
    access_token: str | None = None,
) -> BaseAdapter:
    """Build the configured adapter or raise NotConfiguredError."""
    if not settings.remote_enabled:
        raise NotConfiguredError("No remote backend is configured.")
    return SupabaseAdapter(
        session,
        base_url=settings.supabase_url,
        anon_key=settings.supabase_anon_key,
        access_token=access_token,
        timeout=aiohttp.ClientTimeout(total=settings.timeout),
        retry_count=settings.retry_count,
    )


__all__ = [
    "AuthSession",
    "BaseAdapter",
    "SupabaseAdapter",
    "UserProfile",
    "create_adapter",
]

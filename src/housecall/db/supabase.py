"""Supabase client for Python backend."""

import logging
from functools import lru_cache
from supabase import create_client, Client
from ..config import settings


class SupabaseNotConfiguredError(RuntimeError):
    """Raised when a data access call is made without Supabase credentials."""


@lru_cache()
def get_supabase_client() -> Client | None:
    """Get cached Supabase client instance.

    Returns:
        Supabase Client instance if configured, None otherwise.
        Note: This does not test the connection - actual queries may fail with network errors.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logging.warning("Supabase credentials not configured (missing URL or key)")
        return None

    return create_client(settings.supabase_url, settings.supabase_key)


def require_supabase_client() -> Client:
    """Return the Supabase client or raise if the backend is not configured."""
    client = get_supabase_client()
    if client is None:
        raise SupabaseNotConfiguredError(
            "Supabase not configured. Set HOUSECALL_SUPABASE_URL and HOUSECALL_SUPABASE_KEY."
        )
    return client

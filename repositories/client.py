"""
Supabase client initialization.

This module contains *only* the database/storage connection setup. The client
is built once per process from Settings and passed to every repository
function explicitly, so tests can substitute an in-memory double.
"""

from __future__ import annotations

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

from config.settings import Settings


def create_supabase_client(settings: Settings) -> Client:
    """Official Supabase Python client for the configured project."""

    return create_client(settings.supabase_url, settings.supabase_key)


__all__ = ["Client", "create_supabase_client"]

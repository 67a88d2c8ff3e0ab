from __future__ import annotations

import os

from supabase import Client, create_client

_SUPABASE: Client | None = None


def _credentials() -> tuple[str, str] | None:
    # the service key can call RPC functions regardless of row level security
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_ANON_KEY")
    if os.getenv("SUPABASE_DISABLED", "0") == "1" or not url or not key:
        return None
    return url, key


def get_supabase_client() -> Client | None:
    """Shared Supabase client for the session store, or None when not configured."""
    global _SUPABASE
    credentials = _credentials()
    if credentials is None:
        return None
    if _SUPABASE is None:
        _SUPABASE = create_client(*credentials)
    return _SUPABASE

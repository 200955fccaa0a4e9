# src/sittr/infrastructure/supabase_client.py
"""
Supabase Client

Shared Supabase client for the production entity store and storage adapter.

Usage:
    from .supabase_client import get_supabase_client

    client = get_supabase_client()
    result = client.table("tasks").select("*").execute()
"""

import logging
import os
import threading

logger = logging.getLogger(__name__)

# Singleton client
_supabase_client = None
_client_lock = threading.Lock()


def get_supabase_client():
    """
    Get the Supabase client singleton.

    Returns:
        Supabase client or None if not configured
    """
    global _supabase_client

    if _supabase_client is not None:
        return _supabase_client

    # Get credentials from environment
    supabase_url = os.environ.get("SUPABASE_URL")
    supabase_key = os.environ.get("SUPABASE_KEY")

    if not supabase_url or not supabase_key:
        logger.warning("⚠️ Supabase not configured (missing SUPABASE_URL or SUPABASE_KEY)")
        return None

    from supabase import create_client

    with _client_lock:
        if _supabase_client is None:
            _supabase_client = create_client(supabase_url, supabase_key)
            logger.info(f"✅ Connected to Supabase: {supabase_url}")
    return _supabase_client


def reset_supabase_client():
    """Forget the cached client (tests, credential rotation)."""
    global _supabase_client
    _supabase_client = None

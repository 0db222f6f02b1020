# storefront/core/supabase_client.py
from functools import lru_cache

from supabase import Client, ClientOptions, create_client

from storefront.core.config import get_settings


@lru_cache
def supabase_public() -> Client:
    """
    Create a shared Supabase client with the anon/public key.

    Use cases:
      - reading the public product catalog

    Note: This client still respects RLS and never signs in, so it is safe
    to share between all browsing sessions.
    """
    settings = get_settings()
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)


def supabase_for_session() -> Client:
    """
    Create a private Supabase client for one browsing session.

    Use cases:
      - admin sign-in / sign-up / sign-out
      - role lookup, product writes and image uploads, which must carry the
        signed-in admin's token so RLS applies to *that* account

    Auth state lives inside the client, so one client must never be shared
    between two browsers. Sessions are kept in memory only.
    """
    settings = get_settings()
    return create_client(
        settings.SUPABASE_URL,
        settings.SUPABASE_KEY,
        options=ClientOptions(
            persist_session=False,
            auto_refresh_token=False,
        ),
    )

# adahi/core/supabase_client.py
from supabase import create_client, Client

from adahi.core.config import get_settings
from adahi.core.errors import ConfigurationError


def supabase_session_client() -> Client:
    """
    Create a Supabase client with the anon/public key.

    A new client is built for every signed-in session: the auth client
    keeps the signed-in session in memory, so it must not be shared
    between users.

    Raises:
        ConfigurationError: if SUPABASE_URL or SUPABASE_KEY is not set.
    """
    settings = get_settings()
    if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
        raise ConfigurationError("Missing SUPABASE_URL / SUPABASE_KEY in .env")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)

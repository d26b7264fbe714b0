# adahi/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Supabase Postgres connection string, or sqlite:// locally)
      - SUPABASE_JWT_SECRET (JWT signing secret from Supabase project settings)

    Optional:
      - SUPABASE_URL / SUPABASE_KEY (anon key). Without them no identity
        gateway can be built and every login/register attempt reports the
        system as not configured.
    """

    PROJECT_NAME: str = "Adahi Tracker"

    DATABASE_URL: str

    # Supabase Auth
    SUPABASE_URL: str | None = None
    SUPABASE_KEY: str | None = None

    # JWT verification (backend-side)
    SUPABASE_JWT_SECRET: str
    SUPABASE_JWT_ALG: str = "HS256"

    # Cookie that carries the opaque session id between requests
    SESSION_COOKIE_NAME: str = "adahi_session"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()

# adahi/core/auth.py
from typing import Any

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from adahi.core.config import get_settings

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so the cookie (or guest mode) can be used instead.
bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """
    Decode and verify a Supabase access token (JWT).

    Verification:
      - signature (HS256 using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (Supabase 'aud' may vary)

    Returns:
        Decoded JWT claims, or None if the token is invalid/expired or has
        no 'sub' claim.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        return None
    if not payload.get("sub"):
        return None
    return payload


def get_session_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str | None:
    """
    Read the session id from the Authorization header, falling back to the
    session cookie.

    The id is opaque; whether it names a live session is up to the
    session manager.
    """
    if credentials is not None:
        return credentials.credentials or None
    return request.cookies.get(get_settings().SESSION_COOKIE_NAME) or None

# adahi/gateways/identity.py
"""
Identity/Session gateway over Supabase Auth.

Only this module talks to `client.auth`; everything else sees `Identity`
values and the errors from `adahi.core.errors`.
"""
import logging
from dataclasses import dataclass
from typing import Any, Callable

from supabase import AuthApiError
from supabase import AuthError as ProviderAuthError

from adahi.core.errors import AuthError, EmailInUseError, InvalidCredentialError
from adahi.core.supabase_client import supabase_session_client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Signed-in account as reported by the identity provider."""

    id: str
    email: str
    access_token: str | None = None


SessionCallback = Callable[[Identity | None], None]


def _is_duplicate_account(exc: AuthApiError) -> bool:
    code = getattr(exc, "code", None) or ""
    return code in {"user_already_exists", "email_exists"} or (
        "already" in str(exc).lower()
    )


class IdentityGateway:
    """
    Wraps a Supabase auth client (`create_client(...).auth`).

    Each gateway owns one auth client, and therefore at most one signed-in
    session.
    """

    def __init__(self, auth: Any):
        self._auth = auth

    @classmethod
    def from_settings(cls) -> "IdentityGateway":
        """
        Build a gateway on a fresh Supabase client.

        Raises:
            ConfigurationError: if Supabase is not configured.
        """
        return cls(supabase_session_client().auth)

    # ----- helpers -----

    @staticmethod
    def _identity_from(session: Any, user: Any = None) -> Identity | None:
        token = None
        if session is not None:
            user = session.user
            token = session.access_token
        if user is None:
            return None
        return Identity(id=str(user.id), email=user.email or "", access_token=token)

    # ----- operations -----

    def sign_in(self, email: str, password: str) -> Identity:
        """
        Raises:
            InvalidCredentialError: unknown email or wrong password.
            AuthError: provider unreachable or other provider failure.
        """
        try:
            response = self._auth.sign_in_with_password(
                {"email": email, "password": password}
            )
        except AuthApiError as exc:
            raise InvalidCredentialError(str(exc)) from exc
        except ProviderAuthError as exc:
            raise AuthError(str(exc)) from exc

        identity = self._identity_from(response.session, response.user)
        if identity is None:
            raise InvalidCredentialError("sign-in returned no session")
        return identity

    def sign_up(self, email: str, password: str) -> Identity:
        """
        Raises:
            EmailInUseError: an account with this email exists.
            AuthError: any other provider failure.
        """
        try:
            response = self._auth.sign_up({"email": email, "password": password})
        except AuthApiError as exc:
            if _is_duplicate_account(exc):
                raise EmailInUseError(str(exc)) from exc
            raise AuthError(str(exc)) from exc
        except ProviderAuthError as exc:
            raise AuthError(str(exc)) from exc

        user = response.user
        # With email confirmation enabled Supabase answers a duplicate
        # sign-up with an obfuscated user that has no identities.
        if user is not None and getattr(user, "identities", None) == []:
            raise EmailInUseError(email)

        identity = self._identity_from(response.session, user)
        if identity is None:
            raise AuthError("sign-up returned no user")
        return identity

    def sign_out(self) -> None:
        try:
            self._auth.sign_out()
        except ProviderAuthError as exc:
            raise AuthError(str(exc)) from exc

    def current(self) -> Identity | None:
        """Identity of the session held by this client, if any."""
        try:
            session = self._auth.get_session()
        except ProviderAuthError:
            logger.warning("Could not read the current auth session", exc_info=True)
            return None
        return self._identity_from(session)

    def on_session_change(self, callback: SessionCallback) -> Callable[[], None]:
        """
        Stream identity-or-None events to `callback`.

        The current identity is delivered immediately, then one event per
        provider auth-state change. Returns a disposer.
        """

        def _handler(event: str, session: Any) -> None:
            logger.debug("Auth state change: %s", event)
            callback(self._identity_from(session))

        subscription = self._auth.on_auth_state_change(_handler)
        callback(self.current())
        return subscription.unsubscribe

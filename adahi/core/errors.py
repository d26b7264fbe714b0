# adahi/core/errors.py
"""
Error taxonomy shared by the gateways and the session context.

Gateways translate library exceptions (Supabase auth errors, SQLAlchemy
errors) into these types. The session context catches all of them; none of
them is ever raised into a route handler.
"""


class AdahiError(Exception):
    """Base class for every domain error."""


class ConfigurationError(AdahiError):
    """Identity provider or store configuration is missing or invalid."""


class AuthError(AdahiError):
    """Sign-in or sign-up rejected by the identity provider."""


class InvalidCredentialError(AuthError):
    """Unknown account or wrong password."""


class EmailInUseError(AuthError):
    """An account with this email already exists."""


class PermissionDenied(AdahiError):
    """A non-admin invoked an admin-only operation."""


class NotFoundError(AdahiError):
    """An expected document does not exist."""


class TransientStoreError(AdahiError):
    """A store query, write or subscription failed."""

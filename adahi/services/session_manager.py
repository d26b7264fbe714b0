# adahi/services/session_manager.py
import logging
import secrets
import threading
from dataclasses import dataclass
from typing import Callable

from adahi.core.auth import decode_access_token
from adahi.core.email_client import send_email
from adahi.core.errors import ConfigurationError
from adahi.core.navigation import Navigator
from adahi.gateways.identity import IdentityGateway
from adahi.gateways.store import DocumentStore
from adahi.services.session_context import SessionContext
from adahi.services.slaughter_board import EmailSender, SlaughterBoard
from adahi.services.tables import AdminSubmissionsTable

logger = logging.getLogger(__name__)


@dataclass
class SessionEntry:
    """A signed-in client: its context plus the UI-local state around it."""

    context: SessionContext
    admin_table: AdminSubmissionsTable
    slaughter_board: SlaughterBoard


class SessionManager:
    """
    Registry of signed-in sessions, keyed by an opaque session id.

    The id outlives the access token: the provider refreshes the token in
    place on the context. A session is dropped once its context is signed
    out or holds a token that no longer verifies.

    Each session gets its own identity gateway (its own Supabase auth
    client) and shares the one document store.
    """

    def __init__(
        self,
        store: DocumentStore | None,
        identity_factory: Callable[[], IdentityGateway] = IdentityGateway.from_settings,
        email_sender: EmailSender = send_email,
    ):
        self.store = store
        self.identity_factory = identity_factory
        self.email_sender = email_sender
        self._entries: dict[str, SessionEntry] = {}
        self._lock = threading.Lock()

    def open(self, pathname: str = "/") -> SessionContext:
        """Build and init a context that is not registered yet."""
        try:
            identity = self.identity_factory()
        except ConfigurationError as exc:
            logger.error("Identity provider not configured: %s", exc)
            identity = None

        context = SessionContext(identity, self.store, navigator=Navigator(pathname))
        context.init()
        return context

    def attach(self, context: SessionContext) -> str | None:
        """Register a signed-in context; returns its new session id."""
        if not self._is_live(context):
            return None

        self.evict_expired()
        entry = SessionEntry(
            context=context,
            admin_table=AdminSubmissionsTable(context),
            slaughter_board=SlaughterBoard(context, sender=self.email_sender),
        )
        session_id = secrets.token_urlsafe(32)
        with self._lock:
            self._entries[session_id] = entry
        return session_id

    def get(self, session_id: str) -> SessionEntry | None:
        """The live session for `session_id`; an expired one is closed."""
        with self._lock:
            entry = self._entries.get(session_id)
        if entry is None:
            return None
        if not self._is_live(entry.context):
            logger.info("Closing expired session")
            self.close(session_id)
            return None
        return entry

    def close(self, session_id: str) -> None:
        with self._lock:
            entry = self._entries.pop(session_id, None)
        if entry is not None:
            entry.context.teardown()

    def evict_expired(self) -> int:
        """Close every session whose context is no longer live."""
        with self._lock:
            expired = [
                session_id
                for session_id, entry in self._entries.items()
                if not self._is_live(entry.context)
            ]
        for session_id in expired:
            self.close(session_id)
        return len(expired)

    @staticmethod
    def _is_live(context: SessionContext) -> bool:
        token = context.access_token
        return (
            context.user is not None
            and bool(token)
            and decode_access_token(token) is not None
        )

    def close_all(self) -> None:
        with self._lock:
            entries, self._entries = list(self._entries.values()), {}
        for entry in entries:
            entry.context.teardown()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

# adahi/core/guards.py
from dataclasses import dataclass
from typing import Callable, Literal

from fastapi import Depends, Request

from adahi.core.auth import get_session_id
from adahi.core.navigation import DASHBOARD_PATH, login_redirect
from adahi.core.notifications import Notification
from adahi.schemas.session import SessionState
from adahi.services.session_manager import SessionEntry, SessionManager

GuardAction = Literal["placeholder", "redirect", "render"]

RESTRICTED_NOTICE = Notification(
    title="وصول مقيد",
    description="هذه المنطقة مخصصة للمدير فقط. يتم توجيهك...",
    variant="destructive",
)


@dataclass(frozen=True)
class GuardDecision:
    action: GuardAction
    location: str | None = None
    notification: Notification | None = None


def evaluate_guard(
    state: SessionState | None,
    path: str,
    admin_only: bool = False,
) -> GuardDecision:
    """
    Decide what a protected area shows.

      - session still loading          -> placeholder
      - nobody signed in               -> login, with ?redirect=<path>
      - admin area, user is not admin  -> dashboard + "restricted" notice
      - otherwise                      -> render
    """
    if state is not None and state.loading:
        return GuardDecision("placeholder")
    if state is None or state.user is None:
        return GuardDecision("redirect", location=login_redirect(path))
    if admin_only and not state.user.is_admin:
        return GuardDecision(
            "redirect",
            location=DASHBOARD_PATH,
            notification=RESTRICTED_NOTICE,
        )
    return GuardDecision("render")


class GuardInterrupt(Exception):
    """Raised by guard dependencies; rendered by the handler in main.py."""

    def __init__(self, decision: GuardDecision, notifications: list[Notification]):
        super().__init__(decision.action)
        self.decision = decision
        self.notifications = notifications


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_session_entry(
    request: Request,
    session_id: str | None = Depends(get_session_id),
    manager: SessionManager = Depends(get_session_manager),
) -> SessionEntry | None:
    """The caller's session, or None for guests. Tracks the current path."""
    if session_id is None:
        return None
    entry = manager.get(session_id)
    if entry is not None:
        entry.context.navigator.pathname = request.url.path
    return entry


def require_session(admin_only: bool = False) -> Callable[..., SessionEntry]:
    """
    Dependency factory guarding a protected area.

    Usage:

        @router.get("/admin")
        def admin_page(entry: SessionEntry = Depends(require_session(admin_only=True))):
            ...
    """

    def dependency(
        request: Request,
        entry: SessionEntry | None = Depends(get_session_entry),
    ) -> SessionEntry:
        state = entry.context.snapshot() if entry else None
        decision = evaluate_guard(state, request.url.path, admin_only)
        if decision.action == "render":
            return entry

        notifications = entry.context.notifier.drain() if entry else []
        if decision.notification is not None:
            notifications.append(decision.notification)
        raise GuardInterrupt(decision, notifications)

    return dependency

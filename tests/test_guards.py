"""
Tests for protected-area decisions.
"""
from adahi.core.guards import RESTRICTED_NOTICE, evaluate_guard
from adahi.schemas.session import SessionState
from adahi.schemas.user import UserRead

USER = UserRead(id="u1", username="ahmad", email="ahmad@example.com")
ADMIN = UserRead(id="a1", username="admin", email="admin@example.com", is_admin=True)


def test_loading_shows_placeholder():
    decision = evaluate_guard(SessionState(loading=True), "/admin", admin_only=True)
    assert decision.action == "placeholder"


def test_guest_goes_to_login_with_return_path():
    decision = evaluate_guard(None, "/dashboard")
    assert decision.action == "redirect"
    assert decision.location == "/auth/login?redirect=/dashboard"

    signed_out = SessionState(user=None, loading=False)
    assert evaluate_guard(signed_out, "/admin", admin_only=True).location == (
        "/auth/login?redirect=/admin"
    )


def test_regular_user_kept_out_of_admin_area():
    decision = evaluate_guard(SessionState(user=USER, loading=False), "/admin", admin_only=True)
    assert decision.action == "redirect"
    assert decision.location == "/dashboard"
    assert decision.notification == RESTRICTED_NOTICE
    assert decision.notification.title == "وصول مقيد"


def test_render_when_allowed():
    assert evaluate_guard(SessionState(user=USER, loading=False), "/dashboard").action == "render"
    assert (
        evaluate_guard(SessionState(user=ADMIN, loading=False), "/admin", admin_only=True).action
        == "render"
    )

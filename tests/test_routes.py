"""
HTTP and WebSocket surface tests.
"""
import pytest
from starlette.websockets import WebSocketDisconnect

from adahi.core.config import get_settings


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_home_routes_by_role(client, login_as, regular_user, admin_user):
    assert client.get("/").headers["location"] == "/auth/login"

    login_as(regular_user.email)
    assert client.get("/").headers["location"] == "/dashboard"

    login_as(admin_user.email)
    assert client.get("/").headers["location"] == "/admin"


def test_guest_redirected_to_login(client):
    response = client.get("/dashboard")
    assert response.status_code == 303
    assert response.headers["location"] == "/auth/login?redirect=/dashboard"


def test_login_failure(client, regular_user):
    response = client.post(
        "/auth/login",
        json={"identifier": regular_user.email, "password": "wrong-password"},
    )
    assert response.status_code == 401
    assert response.json()["notifications"][0]["title"] == "فشل تسجيل الدخول"
    assert get_settings().SESSION_COOKIE_NAME not in response.cookies


def test_login_invalid_form(client):
    response = client.post("/auth/login", json={"identifier": "", "password": "1"})
    assert response.status_code == 422
    assert set(response.json()["errors"]) == {"identifier", "password"}


def test_login_redirect_targets(client, regular_user):
    response = client.post(
        "/auth/login?redirect=/dashboard",
        json={"identifier": "ahmad", "password": "secret123", "remember_me": True},
    )
    body = response.json()
    assert body["redirect"] == "/dashboard"
    assert body["user"]["username"] == "ahmad"
    assert "Max-Age" in response.headers["set-cookie"]


def test_register_never_admin(client, store):
    response = client.post(
        "/auth/register",
        json={
            "username": "newbie",
            "email": "newbie@example.com",
            "password": "secret123",
            "confirm_password": "secret123",
        },
    )
    assert response.status_code == 201
    body = response.json()
    assert body["user"]["is_admin"] is False
    assert body["redirect"] == "/dashboard"
    assert store.get_user(body["user"]["id"]).is_admin is False


def test_register_rejects_admin_field(client):
    response = client.post(
        "/auth/register",
        json={
            "username": "newbie",
            "email": "newbie@example.com",
            "password": "secret123",
            "confirm_password": "secret123",
            "is_admin": True,
        },
    )
    assert response.status_code == 422
    assert "is_admin" in response.json()["errors"]


def test_dashboard_create_and_list(client, login_as, regular_user, submission_payload):
    login_as(regular_user.email)

    created = client.post("/dashboard/submissions", json=submission_payload)
    assert created.status_code == 201
    assert created.json()["submission"]["user_id"] == regular_user.id

    listing = client.get("/dashboard").json()
    assert len(listing["submissions"]) == 1
    assert listing["submissions"][0]["distribution_label"] == "لاهل غزة"


def test_dashboard_create_invalid(client, login_as, regular_user, submission_payload):
    login_as(regular_user.email)

    response = client.post(
        "/dashboard/submissions",
        json={**submission_payload, "phone_number": "0761234567"},
    )
    assert response.status_code == 422
    assert list(response.json()["errors"]) == ["phone_number"]
    assert client.get("/dashboard").json()["submissions"] == []


def test_regular_user_kept_out_of_admin(client, login_as, regular_user):
    login_as(regular_user.email)

    response = client.get("/admin")
    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard"
    assert response.json()["notifications"][-1]["title"] == "وصول مقيد"

    assert client.delete("/admin/submissions/anything").status_code == 303


def test_admin_manages_submissions(client, login_as, regular_user, admin_user, signed_in, submission_data):
    owner = signed_in(regular_user.email)
    created = owner.add_submission(submission_data())
    login_as(admin_user.email)

    rows = client.get("/admin").json()["submissions"]
    assert [row["id"] for row in rows] == [created.id]

    toggled = client.post(f"/admin/submissions/{created.id}/toggle-status")
    assert toggled.status_code == 200
    assert owner.submissions[0].status == "entered"

    form = client.get(f"/admin/submissions/{created.id}/form").json()["form"]
    edited = client.patch(
        f"/admin/submissions/{created.id}",
        json={**form, "donor_name": "Edited"},
    )
    assert edited.status_code == 200
    assert edited.json()["closed"] is True
    assert owner.submissions[0].donor_name == "Edited"

    deleted = client.delete(f"/admin/submissions/{created.id}")
    assert deleted.status_code == 200
    assert owner.submissions == []


def test_admin_exports(client, login_as, regular_user, admin_user, signed_in, submission_data):
    owner = signed_in(regular_user.email)
    owner.add_submission(submission_data())
    login_as(admin_user.email)

    everything = client.get("/admin/export").json()["documents"]
    assert everything[0]["filename"] == "all_adahi_submissions.json"

    per_user = client.get("/admin/export/by-user").json()["documents"]
    assert [d["filename"] for d in per_user] == ["adahi_submissions_ahmad_example_com.json"]


def test_slaughter_flow(client, login_as, regular_user, admin_user, signed_in, submission_data, sent_emails):
    owner = signed_in(regular_user.email)
    created = owner.add_submission(submission_data(distribution_preference="fund"))
    login_as(admin_user.email)

    sections = client.get("/slaughter").json()["sections"]
    assert [s["key"] for s in sections] == ["ramtha_donor", "gaza", "fund"]

    assert client.post(f"/slaughter/{created.id}/advance").json()["pending"]["target"] == (
        "marked_slaughtered"
    )
    assert client.post("/slaughter/confirm").status_code == 200
    client.post(f"/slaughter/{created.id}/advance")
    client.post("/slaughter/confirm")
    assert sent_emails[-1][0] == regular_user.email

    assert client.post(f"/slaughter/{created.id}/undo").status_code == 200
    fund_rows = client.get("/slaughter").json()["sections"][2]["rows"]
    assert fund_rows[0]["slaughter_status"] == "pending"

    assert client.post("/slaughter/refresh").status_code == 200


def test_logout_clears_session(client, login_as, manager, regular_user):
    login_as(regular_user.email)
    assert len(manager) == 1

    response = client.post("/auth/logout")
    assert response.status_code == 200
    assert len(manager) == 0
    assert client.get("/dashboard").status_code == 303


def test_session_survives_token_refresh(client, login_as, manager, auth_backend, regular_user):
    session_id = login_as(regular_user.email)
    first_token = manager.get(session_id).context.access_token

    auth_backend.clients[-1].refresh_token()

    assert manager.get(session_id).context.access_token != first_token
    assert client.get("/dashboard").status_code == 200


def test_expired_session_is_closed(client, login_as, manager, store, expired_token, regular_user):
    session_id = login_as(regular_user.email)
    subscriptions = store.active_subscriptions()
    manager.get(session_id).context.access_token = expired_token(regular_user.id)

    assert client.get("/dashboard").status_code == 303
    assert manager.get(session_id) is None
    assert len(manager) == 0
    assert store.active_subscriptions() == subscriptions - 1


def test_login_evicts_expired_sessions(client, login_as, manager, expired_token, regular_user, admin_user):
    session_id = login_as(regular_user.email)
    manager.get(session_id).context.access_token = expired_token(regular_user.id)

    login_as(admin_user.email)

    assert len(manager) == 1


def test_websocket_sends_state(client, login_as, regular_user, signed_in, submission_data):
    session_id = login_as(regular_user.email)

    with client.websocket_connect(f"/ws?session={session_id}") as websocket:
        first = websocket.receive_json()
        assert first["type"] == "state"
        assert first["state"]["user"]["id"] == regular_user.id
        assert first["state"]["submissions"] == []

        websocket.send_text("ping")
        assert websocket.receive_text() == "pong"

        # Same account signed in elsewhere; the stream follows the store
        signed_in(regular_user.email).add_submission(submission_data())
        update = websocket.receive_json()
        assert len(update["state"]["submissions"]) == 1


def test_websocket_requires_session(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws?session=unknown") as websocket:
            websocket.receive_json()


def test_websocket_disconnect_releases_listener(client, login_as, manager, regular_user, signed_in, submission_data):
    session_id = login_as(regular_user.email)
    context = manager.get(session_id).context

    with client.websocket_connect(f"/ws?session={session_id}") as websocket:
        websocket.receive_json()
        assert len(context._listeners) == 1

    assert context._listeners == {}
    # Writes after the stream closed reach no socket
    assert signed_in(regular_user.email).add_submission(submission_data()) is not None
    assert len(context.submissions) == 1

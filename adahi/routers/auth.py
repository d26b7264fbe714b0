# adahi/routers/auth.py
from typing import Any

from fastapi import APIRouter, Body, Depends, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from adahi.core.auth import get_session_id
from adahi.core.config import get_settings
from adahi.core.guards import get_session_entry, get_session_manager
from adahi.core.navigation import DASHBOARD_PATH, LOGIN_PATH, REGISTER_PATH
from adahi.core.notifications import Notification
from adahi.forms.auth_forms import LoginForm, RegisterForm, post_login_redirect
from adahi.forms.validation import SUMMARY_MESSAGE, validate_form
from adahi.routers.responses import page
from adahi.services.session_manager import SessionEntry, SessionManager

router = APIRouter(prefix="/auth", tags=["Auth"])

REMEMBER_ME_MAX_AGE = 30 * 24 * 3600


def _invalid_form(errors: dict[str, str]) -> JSONResponse:
    notice = Notification(title="خطأ", description=SUMMARY_MESSAGE, variant="destructive")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=jsonable_encoder({"errors": errors, "notifications": [notice]}),
    )


def _set_session_cookie(response: JSONResponse, session_id: str, persistent: bool) -> None:
    response.set_cookie(
        get_settings().SESSION_COOKIE_NAME,
        session_id,
        max_age=REMEMBER_ME_MAX_AGE if persistent else None,
        httponly=True,
        samesite="lax",
    )


@router.post("/login")
def login(
    payload: dict[str, Any] = Body(...),
    redirect: str | None = None,
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Sign in with email (or username) and password.

    On success the session cookie is set and `redirect` tells the client
    where to go: the `redirect` query parameter if given, else the
    dashboard for the user's role.
    """
    form, errors = validate_form(LoginForm, payload)
    if form is None:
        return _invalid_form(errors)

    context = manager.open(pathname=LOGIN_PATH)
    user = context.login(form.identifier, form.password)
    session_id = manager.attach(context) if user else None
    if session_id is None:
        response = page(context, status.HTTP_401_UNAUTHORIZED)
        context.teardown()
        return response

    context.notifier.notify("تم تسجيل الدخول بنجاح")
    response = page(context, user=user, redirect=post_login_redirect(user, redirect))
    _set_session_cookie(response, session_id, form.remember_me)
    return response


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    payload: dict[str, Any] = Body(...),
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Create an account. New accounts are never administrators.

    When the provider signs the new account in right away the session
    cookie is set; otherwise the client is sent to the login page.
    """
    form, errors = validate_form(RegisterForm, payload)
    if form is None:
        return _invalid_form(errors)

    context = manager.open(pathname=REGISTER_PATH)
    profile = context.register(form.username, form.email, form.password)
    if profile is None:
        response = page(context, status.HTTP_400_BAD_REQUEST)
        context.teardown()
        return response

    context.notifier.notify("تم إنشاء الحساب بنجاح!")
    session_id = manager.attach(context)
    if session_id is None:
        response = page(context, status.HTTP_201_CREATED, user=profile, redirect=LOGIN_PATH)
        context.teardown()
        return response

    response = page(context, status.HTTP_201_CREATED, user=profile, redirect=DASHBOARD_PATH)
    _set_session_cookie(response, session_id, persistent=False)
    return response


@router.post("/logout")
def logout(
    session_id: str | None = Depends(get_session_id),
    entry: SessionEntry | None = Depends(get_session_entry),
    manager: SessionManager = Depends(get_session_manager),
):
    """Sign out, drop the session and clear the cookie."""
    if entry is None:
        response = JSONResponse(content={"redirect": LOGIN_PATH, "notifications": []})
    else:
        entry.context.logout()
        response = page(entry.context)
        manager.close(session_id)
    response.delete_cookie(get_settings().SESSION_COOKIE_NAME)
    return response

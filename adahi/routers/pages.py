# adahi/routers/pages.py
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from adahi.core.guards import get_session_entry
from adahi.core.navigation import ADMIN_PATH, DASHBOARD_PATH, LOGIN_PATH
from adahi.services.session_manager import SessionEntry

router = APIRouter(tags=["Pages"])


@router.get("/")
def home(entry: SessionEntry | None = Depends(get_session_entry)):
    """
    Entry point: sends the client where it belongs.

      - guest  -> login
      - admin  -> admin dashboard
      - user   -> dashboard
    """
    user = entry.context.user if entry else None
    if user is None:
        location = LOGIN_PATH
    elif user.is_admin:
        location = ADMIN_PATH
    else:
        location = DASHBOARD_PATH
    return JSONResponse(
        status_code=status.HTTP_303_SEE_OTHER,
        content={"redirect": location},
        headers={"Location": location},
    )


@router.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "adahi-backend"}

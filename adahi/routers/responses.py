# adahi/routers/responses.py
from typing import Any

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from adahi.services.session_context import SessionContext


def page(
    context: SessionContext,
    status_code: int = status.HTTP_200_OK,
    **content: Any,
) -> JSONResponse:
    """
    JSON response for a screen or an action.

    Pending notifications are drained into `notifications`; a navigation
    requested by the context becomes `redirect` unless one is given.
    """
    target = context.navigator.take()
    content.setdefault("redirect", target)
    content["notifications"] = context.notifier.drain()
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))

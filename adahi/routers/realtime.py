# adahi/routers/realtime.py
"""
WebSocket router for live session state.

Provides a WebSocket endpoint that:
1. Authenticates via the session cookie or a ?session= query parameter
2. Sends the current session state on connect
3. Pushes a fresh state every time the session's submissions change
"""
import asyncio
import contextlib
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder

from adahi.core.config import get_settings
from adahi.schemas.session import SessionState

router = APIRouter(tags=["WebSocket"])

logger = logging.getLogger(__name__)


def _state_message(state: SessionState) -> dict:
    return {"type": "state", "state": jsonable_encoder(state)}


@router.websocket("/ws")
async def session_stream(
    websocket: WebSocket,
    session: str | None = Query(None),
):
    """
    Live session state.

    Messages sent:
      - {"type": "state", "state": {...}}  on connect and on every change

    Messages accepted:
      - "ping"    -> "pong"
      - "refresh" -> re-read the active query once
    """
    session_id = session or websocket.cookies.get(get_settings().SESSION_COOKIE_NAME)
    if not session_id:
        await websocket.close(code=4001, reason="Authentication required")
        return

    entry = websocket.app.state.session_manager.get(session_id)
    if entry is None:
        await websocket.close(code=4001, reason="Session not found")
        return

    await websocket.accept()
    context = entry.context
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[SessionState] = asyncio.Queue()

    # Listeners fire on whichever thread wrote to the store
    dispose = context.subscribe(
        lambda state: loop.call_soon_threadsafe(queue.put_nowait, state)
    )

    async def forward() -> None:
        while True:
            state = await queue.get()
            await websocket.send_json(_state_message(state))

    await websocket.send_json(_state_message(context.snapshot()))
    sender = asyncio.create_task(forward())
    try:
        while True:
            try:
                data = await websocket.receive_text()
            except WebSocketDisconnect:
                break
            if data == "ping":
                await websocket.send_text("pong")
            elif data == "refresh":
                await run_in_threadpool(context.refresh)
    finally:
        dispose()
        sender.cancel()
        # send_json on a closed socket ends the task with its own error
        with contextlib.suppress(
            asyncio.CancelledError, WebSocketDisconnect, RuntimeError, OSError
        ):
            await sender
        logger.info("Session stream closed for %s", context.user.id if context.user else "guest")

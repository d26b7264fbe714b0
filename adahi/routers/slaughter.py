# adahi/routers/slaughter.py
from fastapi import APIRouter, Depends, status

from adahi.core.guards import require_session
from adahi.routers.responses import page
from adahi.services.session_manager import SessionEntry

router = APIRouter(prefix="/slaughter", tags=["Slaughter"])

admin_session = require_session(admin_only=True)


@router.get("")
def slaughter_board(entry: SessionEntry = Depends(admin_session)):
    """
    Slaughter board grouped by distribution:

      - ramtha + donor
      - gaza
      - fund

    Slaughter progress shown here is kept for this session only.
    """
    board = entry.slaughter_board
    return page(entry.context, sections=board.sections(), pending=board.pending)


@router.post("/refresh")
def refresh(entry: SessionEntry = Depends(admin_session)):
    ok = entry.context.refresh()
    if ok:
        entry.context.notifier.notify("تم تحديث البيانات")
    code = status.HTTP_200_OK if ok else status.HTTP_503_SERVICE_UNAVAILABLE
    return page(entry.context, code, sections=entry.slaughter_board.sections())


@router.post("/{submission_id}/advance")
def request_advance(submission_id: str, entry: SessionEntry = Depends(admin_session)):
    """Open the confirmation for the row's next slaughter step."""
    pending = entry.slaughter_board.request_advance(submission_id)
    code = status.HTTP_200_OK if pending else status.HTTP_409_CONFLICT
    return page(entry.context, code, pending=pending)


@router.post("/confirm")
def confirm(entry: SessionEntry = Depends(admin_session)):
    ok = entry.slaughter_board.confirm()
    code = status.HTTP_200_OK if ok else status.HTTP_409_CONFLICT
    return page(entry.context, code, success=ok, sections=entry.slaughter_board.sections())


@router.post("/cancel")
def cancel(entry: SessionEntry = Depends(admin_session)):
    entry.slaughter_board.cancel()
    return page(entry.context, pending=None)


@router.post("/{submission_id}/undo")
def undo(submission_id: str, entry: SessionEntry = Depends(admin_session)):
    """Put a row back to pending."""
    ok = entry.slaughter_board.undo(submission_id)
    code = status.HTTP_200_OK if ok else status.HTTP_404_NOT_FOUND
    return page(entry.context, code, success=ok, sections=entry.slaughter_board.sections())

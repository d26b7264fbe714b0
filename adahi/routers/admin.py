# adahi/routers/admin.py
from typing import Any

from fastapi import APIRouter, Body, Depends, status

from adahi.core.guards import require_session
from adahi.forms.submission_form import SubmissionFormHandler, form_values_from
from adahi.routers.responses import page
from adahi.services.export_service import export_all, export_by_user
from adahi.services.session_manager import SessionEntry

router = APIRouter(prefix="/admin", tags=["Admin"])

admin_session = require_session(admin_only=True)


@router.get("")
def admin_dashboard(entry: SessionEntry = Depends(admin_session)):
    """All submissions, newest first (admin only)."""
    return page(
        entry.context,
        user=entry.context.user,
        submissions=entry.admin_table.rows(),
        updating_id=entry.admin_table.updating_id,
    )


@router.get("/submissions/{submission_id}/form")
def edit_form(submission_id: str, entry: SessionEntry = Depends(admin_session)):
    """Prefilled values for the edit dialog."""
    for submission in entry.context.snapshot().all_submissions:
        if submission.id == submission_id:
            return page(entry.context, form=form_values_from(submission))
    entry.context.notifier.error("السجل غير موجود.")
    return page(entry.context, status.HTTP_404_NOT_FOUND)


@router.patch("/submissions/{submission_id}")
def edit_submission(
    submission_id: str,
    payload: dict[str, Any] = Body(...),
    entry: SessionEntry = Depends(admin_session),
):
    """
    Edit any field of a submission through the submission form.

    Owner fields cannot be changed. Last write wins.
    """
    outcome = SubmissionFormHandler(entry.context, editing_id=submission_id).submit(payload)
    if outcome.success:
        code = status.HTTP_200_OK
    elif outcome.errors:
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        code = status.HTTP_400_BAD_REQUEST
    return page(
        entry.context,
        code,
        submission=outcome.submission,
        errors=outcome.errors,
        closed=outcome.closed,
    )


@router.post("/submissions/{submission_id}/toggle-status")
def toggle_status(submission_id: str, entry: SessionEntry = Depends(admin_session)):
    """Flip the entry status between pending and entered."""
    ok = entry.admin_table.toggle_status(submission_id)
    code = status.HTTP_200_OK if ok else status.HTTP_400_BAD_REQUEST
    return page(entry.context, code, success=ok)


@router.delete("/submissions/{submission_id}")
def delete_submission(submission_id: str, entry: SessionEntry = Depends(admin_session)):
    """Permanently delete a submission. There is no undo."""
    ok = entry.admin_table.delete(submission_id)
    code = status.HTTP_200_OK if ok else status.HTTP_400_BAD_REQUEST
    return page(entry.context, code, success=ok)


@router.get("/export")
def export_everything(entry: SessionEntry = Depends(admin_session)):
    """Every submission as one JSON document."""
    document = export_all(entry.context.snapshot().all_submissions)
    entry.context.notifier.notify("تم تصدير جميع البيانات بنجاح.")
    return page(entry.context, documents=[document])


@router.get("/export/by-user")
def export_per_user(entry: SessionEntry = Depends(admin_session)):
    """One JSON document per submission owner."""
    submissions = entry.context.snapshot().all_submissions
    if not submissions:
        entry.context.notifier.notify("لا توجد بيانات لتصديرها.")
        return page(entry.context, documents=[])
    documents = export_by_user(submissions)
    entry.context.notifier.notify("تم تصدير البيانات حسب المستخدم بنجاح.")
    return page(entry.context, documents=documents)

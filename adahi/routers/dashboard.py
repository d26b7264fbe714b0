# adahi/routers/dashboard.py
from typing import Any

from fastapi import APIRouter, Body, Depends, status

from adahi.core.guards import require_session
from adahi.forms.submission_form import BLANK_FORM, SubmissionFormHandler
from adahi.routers.responses import page
from adahi.services.session_manager import SessionEntry
from adahi.services.tables import user_submission_rows

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("")
def dashboard(entry: SessionEntry = Depends(require_session())):
    """
    The signed-in user's own submissions (newest first) and a blank form.

    Auth:
      - Any signed-in user.
    """
    context = entry.context
    return page(
        context,
        user=context.user,
        submissions=user_submission_rows(context),
        form=BLANK_FORM,
    )


@router.post("/submissions")
def create_submission(
    payload: dict[str, Any] = Body(...),
    entry: SessionEntry = Depends(require_session()),
):
    """
    Validate the submission form and store it for the current user.

    422 with field errors when the form is invalid; the new record is
    only stored when every rule passes.
    """
    outcome = SubmissionFormHandler(entry.context).submit(payload)
    if outcome.success:
        code = status.HTTP_201_CREATED
    elif outcome.errors:
        code = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        code = status.HTTP_400_BAD_REQUEST
    return page(
        entry.context,
        code,
        submission=outcome.submission,
        errors=outcome.errors,
        form=outcome.values,
    )

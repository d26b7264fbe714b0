# adahi/services/tables.py
import logging
from datetime import datetime
from typing import Any

from adahi.schemas.submission import DISTRIBUTION_LABELS, SubmissionRead
from adahi.services.session_context import SessionContext

logger = logging.getLogger(__name__)

STATUS_LABELS = {"entered": "مدخلة", "pending": "غير مدخلة"}


def format_date(value: datetime | None) -> str:
    if value is None:
        return "N/A"
    return value.strftime("%d/%m/%Y")


def format_datetime(value: datetime | None) -> str:
    if value is None:
        return "N/A"
    return value.strftime("%d/%m/%Y %H:%M")


def yes_no(value: bool) -> str:
    return "نعم" if value else "لا"


def submission_row(submission: SubmissionRead) -> dict[str, Any]:
    """Table row: the raw record plus display labels."""
    row = submission.model_dump(mode="json")
    row.update(
        distribution_label=DISTRIBUTION_LABELS.get(
            submission.distribution_preference, submission.distribution_preference
        ),
        status_label=STATUS_LABELS.get(submission.status, submission.status),
        attend_label=yes_no(submission.wants_to_attend),
        payment_label=yes_no(submission.payment_confirmed),
        submission_date_display=format_datetime(submission.submission_date),
    )
    return row


def user_submission_rows(context: SessionContext) -> list[dict[str, Any]]:
    """Rows of the signed-in user's own submissions."""
    return [submission_row(s) for s in context.snapshot().submissions]


class AdminSubmissionsTable:
    """
    Admin table over every submission.

    `updating_id` marks the row whose status change or delete is in flight;
    a second action on any row is refused until it finishes.
    """

    def __init__(self, context: SessionContext):
        self.context = context
        self.updating_id: str | None = None

    def rows(self) -> list[dict[str, Any]]:
        return [submission_row(s) for s in self.context.snapshot().all_submissions]

    def _find(self, submission_id: str) -> SubmissionRead | None:
        for submission in self.context.snapshot().all_submissions:
            if submission.id == submission_id:
                return submission
        return None

    def _begin(self, submission_id: str) -> bool:
        if self.updating_id is not None:
            logger.info("Row %s busy, refusing action on %s", self.updating_id, submission_id)
            self.context.notifier.error("جاري تنفيذ عملية أخرى، الرجاء الانتظار.")
            return False
        self.updating_id = submission_id
        return True

    def toggle_status(self, submission_id: str) -> bool:
        """Flip entry status pending <-> entered."""
        submission = self._find(submission_id)
        if submission is None:
            self.context.notifier.error("السجل غير موجود.")
            return False
        if not self._begin(submission_id):
            return False

        new_status = "pending" if submission.status == "entered" else "entered"
        try:
            ok = self.context.update_submission_status(submission_id, new_status)
        finally:
            self.updating_id = None
        if ok:
            self.context.notifier.notify("تم تحديث الحالة بنجاح.")
        return ok

    def delete(self, submission_id: str) -> bool:
        if not self._begin(submission_id):
            return False
        try:
            ok = self.context.delete_submission(submission_id)
        finally:
            self.updating_id = None
        if ok:
            self.context.notifier.notify("تم حذف السجل بنجاح.")
        return ok

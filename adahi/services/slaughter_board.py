# adahi/services/slaughter_board.py
import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from adahi.core.email_client import send_email
from adahi.schemas.submission import SubmissionRead
from adahi.services.session_context import SessionContext
from adahi.services.tables import format_datetime, submission_row

logger = logging.getLogger(__name__)

# (key, title, distribution preferences shown in the section)
SECTIONS: list[tuple[str, str, frozenset[str]]] = [
    ("ramtha_donor", "أضاحي داخل الرمثا وللمتبرعين", frozenset({"ramtha", "donor"})),
    ("gaza", "أضاحي لأهل غزة", frozenset({"gaza"})),
    ("fund", "أضاحي لصندوق التكافل والتضامن", frozenset({"fund"})),
]

NEXT_STATUS = {
    "pending": "marked_slaughtered",
    "marked_slaughtered": "notified",
    "confirmed_slaughtered": "notified",
}

SLAUGHTER_LABELS = {
    "pending": "لم يتم الذبح",
    "marked_slaughtered": "تم الذبح",
    "confirmed_slaughtered": "تم تأكيد الذبح",
    "notified": "تم إشعار المتبرع",
}

CONFIRM_TEXT = {
    "marked_slaughtered": (
        "تأكيد عملية الذبح",
        "هل أنت متأكد من أنه تم ذبح أضحية {donor}؟",
    ),
    "notified": (
        "تأكيد إشعار المتبرع",
        "سيتم إرسال إشعار بالذبح إلى صاحب السجل لأضحية {donor}.",
    ),
}

EmailSender = Callable[[str, str, str], None]


@dataclass(frozen=True)
class PendingTransition:
    """An open confirmation dialog."""

    submission_id: str
    current: str
    target: str
    title: str
    description: str


class SlaughterBoard:
    """
    Slaughter workflow board for administrators.

    Slaughter status lives on the board only: transitions are not written
    to the store, so a new board (or a new session) starts again from the
    stored values.
    """

    def __init__(self, context: SessionContext, sender: EmailSender = send_email):
        self.context = context
        self.sender = sender
        self.pending: PendingTransition | None = None
        self._local: dict[str, tuple[str, datetime | None]] = {}

    def status_of(self, submission: SubmissionRead) -> tuple[str, datetime | None]:
        if submission.id in self._local:
            return self._local[submission.id]
        return submission.slaughter_status or "pending", submission.slaughter_date

    def _find(self, submission_id: str) -> SubmissionRead | None:
        for submission in self.context.snapshot().all_submissions:
            if submission.id == submission_id:
                return submission
        return None

    def row(self, submission: SubmissionRead) -> dict[str, Any]:
        status, slaughtered_at = self.status_of(submission)
        row = submission_row(submission)
        row.update(
            slaughter_status=status,
            slaughter_label=SLAUGHTER_LABELS[status],
            slaughter_date=slaughtered_at.isoformat() if slaughtered_at else None,
            slaughter_date_display=(
                format_datetime(slaughtered_at) if slaughtered_at else None
            ),
        )
        return row

    def sections(self) -> list[dict[str, Any]]:
        submissions = self.context.snapshot().all_submissions
        return [
            {
                "key": key,
                "title": title,
                "rows": [
                    self.row(s) for s in submissions
                    if s.distribution_preference in preferences
                ],
            }
            for key, title, preferences in SECTIONS
        ]

    # ----- transitions -----

    def request_advance(self, submission_id: str) -> PendingTransition | None:
        """Open the confirmation for the next step of a row."""
        submission = self._find(submission_id)
        if submission is None:
            self.context.notifier.error("السجل غير موجود.")
            return None

        current, _ = self.status_of(submission)
        target = NEXT_STATUS.get(current)
        if target is None:
            self.context.notifier.notify("تم إشعار المتبرع مسبقاً لهذه الأضحية.")
            return None

        title, description = CONFIRM_TEXT[target]
        self.pending = PendingTransition(
            submission_id=submission_id,
            current=current,
            target=target,
            title=title,
            description=description.format(donor=submission.donor_name),
        )
        return self.pending

    def cancel(self) -> None:
        self.pending = None

    def confirm(self) -> bool:
        """Apply the open transition."""
        pending, self.pending = self.pending, None
        if pending is None:
            return False

        submission = self._find(pending.submission_id)
        if submission is None:
            self.context.notifier.error("السجل غير موجود.")
            return False

        current, slaughtered_at = self.status_of(submission)
        if current != pending.current:
            # Row moved on (e.g. undone) while the dialog was open
            self.context.notifier.error("فشل تحديث حالة الذبح", title="خطأ")
            return False

        if pending.target == "marked_slaughtered":
            slaughtered_at = datetime.now(timezone.utc)
        self._local[submission.id] = (pending.target, slaughtered_at)

        if pending.target == "notified":
            self._notify_owner(submission)
        self.context.notifier.notify("تم تحديث حالة الذبح بنجاح")
        return True

    def undo(self, submission_id: str) -> bool:
        submission = self._find(submission_id)
        if submission is None:
            self.context.notifier.error("السجل غير موجود.")
            return False
        self._local[submission_id] = ("pending", None)
        if self.pending is not None and self.pending.submission_id == submission_id:
            self.pending = None
        self.context.notifier.notify("تم التراجع عن حالة الذبح")
        return True

    def _notify_owner(self, submission: SubmissionRead) -> None:
        if not submission.user_email:
            logger.warning("Submission %s has no owner email; notice not sent", submission.id)
            self.context.notifier.error("لا يوجد بريد إلكتروني لصاحب السجل.")
            return

        subject = "تم ذبح الأضحية"
        body = (
            f"السلام عليكم {submission.donor_name}،\n\n"
            f"نود إعلامكم بأنه تم ذبح الأضحية باسم {submission.sacrifice_for}.\n"
            "تقبل الله منا ومنكم."
        )
        try:
            self.sender(submission.user_email, subject, body)
        except (RuntimeError, smtplib.SMTPException, OSError) as exc:
            logger.error("Slaughter notice to %s failed: %s", submission.user_email, exc)
            self.context.notifier.error("تعذر إرسال الإشعار إلى المتبرع.")

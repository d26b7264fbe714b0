# adahi/services/export_service.py
import re
from typing import Any

from sqlmodel import SQLModel

from adahi.schemas.submission import SubmissionRead

ALL_EXPORT_NAME = "all_adahi_submissions"
USER_EXPORT_PREFIX = "adahi_submissions_"

_UNSAFE_KEY_CHARS = re.compile(r"[^a-zA-Z0-9]")


class ExportDocument(SQLModel):
    """One downloadable JSON export."""

    filename: str
    rows: list[dict[str, Any]]


def _rows(submissions: list[SubmissionRead]) -> list[dict[str, Any]]:
    return [s.model_dump(mode="json") for s in submissions]


def export_all(submissions: list[SubmissionRead]) -> ExportDocument:
    return ExportDocument(filename=f"{ALL_EXPORT_NAME}.json", rows=_rows(submissions))


def export_by_user(submissions: list[SubmissionRead]) -> list[ExportDocument]:
    """
    One export per owner, keyed by owner email (owner id when the email is
    missing). Non-alphanumeric characters in the key become underscores.
    """
    grouped: dict[str, list[SubmissionRead]] = {}
    for submission in submissions:
        key = submission.user_email or submission.user_id
        grouped.setdefault(key, []).append(submission)

    return [
        ExportDocument(
            filename=f"{USER_EXPORT_PREFIX}{_UNSAFE_KEY_CHARS.sub('_', key)}.json",
            rows=_rows(items),
        )
        for key, items in grouped.items()
    ]

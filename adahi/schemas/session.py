# adahi/schemas/session.py
from sqlmodel import SQLModel

from adahi.schemas.submission import SubmissionRead
from adahi.schemas.user import UserRead


class SessionState(SQLModel):
    """Snapshot of a session context, broadcast to every consumer."""

    user: UserRead | None = None
    loading: bool = True
    submissions: list[SubmissionRead] = []
    all_submissions: list[SubmissionRead] = []

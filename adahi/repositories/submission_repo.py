# adahi/repositories/submission_repo.py
from typing import Any

from sqlmodel import Session, select

from adahi.models.submission import Submission


class SubmissionRepository:
    """
    Data access layer for submissions.

    Every write commits immediately; there is no multi-step transaction
    and no version check (last write wins).
    """

    def list_for_user(self, session: Session, user_id: str) -> list[Submission]:
        stmt = (
            select(Submission)
            .where(Submission.user_id == user_id)
            .order_by(Submission.submission_date.desc())
        )
        return list(session.exec(stmt).all())

    def list_all(self, session: Session) -> list[Submission]:
        stmt = select(Submission).order_by(Submission.submission_date.desc())
        return list(session.exec(stmt).all())

    def get_by_id(self, session: Session, submission_id: str) -> Submission | None:
        return session.get(Submission, submission_id)

    def create(self, session: Session, submission: Submission) -> Submission:
        session.add(submission)
        session.commit()
        session.refresh(submission)
        return submission

    def update(
        self,
        session: Session,
        submission: Submission,
        changes: dict[str, Any],
    ) -> Submission:
        """Apply `changes` column by column and persist."""
        for key, value in changes.items():
            setattr(submission, key, value)
        session.add(submission)
        session.commit()
        session.refresh(submission)
        return submission

    def delete(self, session: Session, submission: Submission) -> None:
        session.delete(submission)
        session.commit()

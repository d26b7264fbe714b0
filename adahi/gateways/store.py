# adahi/gateways/store.py
"""
Document store gateway.

Keyed reads and writes for `users` and `submissions`, plus realtime query
subscriptions: every subscriber receives the full current result set when
it subscribes and again after every write.
"""
import itertools
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterator

from pydantic import ValidationError
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from adahi.core.errors import NotFoundError, TransientStoreError
from adahi.models.submission import Submission
from adahi.models.user import User
from adahi.repositories.submission_repo import SubmissionRepository
from adahi.repositories.user_repo import UserRepository
from adahi.schemas.submission import SubmissionRead
from adahi.schemas.user import UserRead

logger = logging.getLogger(__name__)


class _ServerTimestamp:
    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


# Placeholder resolved to the store's clock when a document is written
SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class SubmissionQuery:
    """
    Submissions ordered by submission_date, newest first.

    user_id=None selects every submission.
    """

    user_id: str | None = None


OnNext = Callable[[list[SubmissionRead]], None]
OnError = Callable[[Exception], None]


@dataclass
class _Subscription:
    query: SubmissionQuery
    on_next: OnNext
    on_error: OnError


class DocumentStore:
    """
    Store gateway backed by SQLModel.

    Writes are last-write-wins: no version check is made before an update
    or delete.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.users = UserRepository()
        self.submissions = SubmissionRepository()

        self._subscriptions: dict[int, _Subscription] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with Session(self.engine) as session:
                yield session
        except (SQLAlchemyError, ValidationError) as exc:
            # a stored row that no longer reads back is reported like a failed query
            raise TransientStoreError(str(exc)) from exc

    # ----- users -----

    def get_user(self, user_id: str) -> UserRead | None:
        with self._session() as session:
            user = self.users.get_by_id(session, user_id)
            return UserRead.model_validate(user) if user else None

    def get_user_by_username(self, username: str) -> UserRead | None:
        with self._session() as session:
            user = self.users.get_by_username(session, username)
            return UserRead.model_validate(user) if user else None

    def put_user(self, profile: UserRead) -> UserRead:
        with self._session() as session:
            user = self.users.create(session, User(**profile.model_dump()))
            return UserRead.model_validate(user)

    # ----- submissions -----

    def query_submissions(self, query: SubmissionQuery) -> list[SubmissionRead]:
        with self._session() as session:
            if query.user_id is None:
                rows = self.submissions.list_all(session)
            else:
                rows = self.submissions.list_for_user(session, query.user_id)
            return [SubmissionRead.model_validate(row) for row in rows]

    def get_submission(self, submission_id: str) -> SubmissionRead | None:
        with self._session() as session:
            row = self.submissions.get_by_id(session, submission_id)
            return SubmissionRead.model_validate(row) if row else None

    def add_submission(self, values: dict[str, Any]) -> SubmissionRead:
        """Insert a submission; SERVER_TIMESTAMP values get the store time."""
        values = {
            key: datetime.now(timezone.utc) if value is SERVER_TIMESTAMP else value
            for key, value in values.items()
        }
        with self._session() as session:
            row = self.submissions.create(session, Submission(**values))
            created = SubmissionRead.model_validate(row)
        self._fan_out()
        return created

    def update_submission(
        self,
        submission_id: str,
        changes: dict[str, Any],
    ) -> SubmissionRead:
        """
        Raises:
            NotFoundError: no submission with this id.
        """
        with self._session() as session:
            row = self.submissions.get_by_id(session, submission_id)
            if row is None:
                raise NotFoundError(f"submission {submission_id}")
            row = self.submissions.update(session, row, changes)
            updated = SubmissionRead.model_validate(row)
        self._fan_out()
        return updated

    def delete_submission(self, submission_id: str) -> None:
        """
        Raises:
            NotFoundError: no submission with this id.
        """
        with self._session() as session:
            row = self.submissions.get_by_id(session, submission_id)
            if row is None:
                raise NotFoundError(f"submission {submission_id}")
            self.submissions.delete(session, row)
        self._fan_out()

    # ----- realtime -----

    def subscribe(
        self,
        query: SubmissionQuery,
        on_next: OnNext,
        on_error: OnError,
    ) -> Callable[[], None]:
        """
        Deliver the result set of `query` now and after every write.

        Returns a disposer; calling it more than once is harmless.
        """
        sub_id = next(self._ids)
        subscription = _Subscription(query, on_next, on_error)
        with self._lock:
            self._subscriptions[sub_id] = subscription

        self._deliver(subscription)

        def dispose() -> None:
            with self._lock:
                self._subscriptions.pop(sub_id, None)

        return dispose

    def active_subscriptions(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def _fan_out(self) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions.values())
        for subscription in subscriptions:
            self._deliver(subscription)

    def _deliver(self, subscription: _Subscription) -> None:
        try:
            results = self.query_submissions(subscription.query)
        except TransientStoreError as exc:
            logger.error("Realtime query failed: %s", exc)
            subscription.on_error(exc)
            return

        try:
            subscription.on_next(results)
        except Exception:
            # A broken listener must not fail the write that triggered it
            logger.exception("Realtime listener raised")

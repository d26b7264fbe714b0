# adahi/services/session_context.py
import itertools
import logging
import threading
from contextlib import ExitStack
from datetime import datetime, timezone
from typing import Any, Callable

from pydantic import ValidationError

from adahi.core.errors import (
    AdahiError,
    ConfigurationError,
    EmailInUseError,
    InvalidCredentialError,
    NotFoundError,
    PermissionDenied,
)
from adahi.core.navigation import LOGIN_PATH, PUBLIC_ROUTES, Navigator
from adahi.core.notifications import (
    MSG_ADMIN_ONLY,
    MSG_FETCH_FAILED,
    MSG_LOGIN_REQUIRED,
    MSG_NOT_CONFIGURED,
    Notifier,
)
from adahi.gateways.identity import Identity, IdentityGateway
from adahi.gateways.store import SERVER_TIMESTAMP, DocumentStore, SubmissionQuery
from adahi.schemas.session import SessionState
from adahi.schemas.submission import (
    IMMUTABLE_FIELDS,
    SubmissionData,
    SubmissionRead,
    missing_conditional_fields,
)
from adahi.schemas.user import UserRead

logger = logging.getLogger(__name__)

StateListener = Callable[[SessionState], None]

ENTRY_STATUSES = ("pending", "entered")


class SessionContext:
    """
    Single source of truth for one client session: who is signed in and
    which submissions they can see.

    Lifecycle:
      - init():     attach to the identity provider's session stream
      - teardown(): detach every listener and store subscription

    While a user is signed in exactly one realtime query is open:
      - admin:   all submissions (own view derived by filtering)
      - regular: submissions where user_id == self

    Every public operation catches gateway errors, logs them, pushes an
    Arabic notification and returns None/False. Nothing is raised to the
    caller.
    """

    def __init__(
        self,
        identity: IdentityGateway | None,
        store: DocumentStore | None,
        notifier: Notifier | None = None,
        navigator: Navigator | None = None,
    ):
        self.identity = identity
        self.store = store
        self.notifier = notifier or Notifier()
        self.navigator = navigator or Navigator()

        self.user: UserRead | None = None
        self.loading = True
        self.submissions: list[SubmissionRead] = []
        self.all_submissions: list[SubmissionRead] = []
        self.access_token: str | None = None

        self._lock = threading.RLock()
        self._listeners: dict[int, StateListener] = {}
        self._listener_ids = itertools.count(1)
        self._session_disposer: Callable[[], None] | None = None
        self._user_scope = ExitStack()
        self._generation = 0
        self._registering = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def init(self) -> None:
        if self._session_disposer is not None:
            return

        if self.identity is None:
            logger.error("Identity gateway is not configured; session stays signed out")
            self._set_signed_out()
            return

        try:
            self._session_disposer = self.identity.on_session_change(
                self._on_session_change
            )
        except AdahiError as exc:
            logger.error("Could not attach to the auth session stream: %s", exc)
            self._set_signed_out()

    def teardown(self) -> None:
        with self._lock:
            if self._session_disposer is not None:
                self._session_disposer()
                self._session_disposer = None
            self._release_user_scope()
            self._listeners.clear()

    # ------------------------------------------------------------------
    # State broadcast
    # ------------------------------------------------------------------

    def snapshot(self) -> SessionState:
        with self._lock:
            return SessionState(
                user=self.user,
                loading=self.loading,
                submissions=list(self.submissions),
                all_submissions=list(self.all_submissions),
            )

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener; returns a disposer."""
        listener_id = next(self._listener_ids)
        with self._lock:
            self._listeners[listener_id] = listener

        def dispose() -> None:
            with self._lock:
                self._listeners.pop(listener_id, None)

        return dispose

    def _publish(self) -> None:
        state = self.snapshot()
        with self._lock:
            listeners = list(self._listeners.values())
        for listener in listeners:
            try:
                listener(state)
            except Exception:
                logger.exception("Session state listener raised")

    # ------------------------------------------------------------------
    # Session stream handling
    # ------------------------------------------------------------------

    def _set_signed_out(self) -> None:
        with self._lock:
            self._release_user_scope()
            self.user = None
            self.access_token = None
            self.submissions = []
            self.all_submissions = []
            self.loading = False
        self._publish()

    def _release_user_scope(self) -> None:
        # Bumping the generation silences late callbacks of the old query
        self._generation += 1
        self._user_scope.close()
        self._user_scope = ExitStack()

    def _force_sign_out(self) -> None:
        self._set_signed_out()
        if self.identity is None:
            return
        try:
            self.identity.sign_out()
        except AdahiError as exc:
            logger.error("Forced sign-out failed: %s", exc)

    def _on_session_change(self, identity: Identity | None) -> None:
        if self._registering:
            return

        with self._lock:
            if (
                identity is not None
                and self.user is not None
                and self.user.id == identity.id
            ):
                # Token refresh or repeated event for the same account
                self.access_token = identity.access_token
                return

        if identity is None:
            self._set_signed_out()
            return

        if self.store is None:
            logger.error("Document store is not configured")
            self.notifier.error(MSG_NOT_CONFIGURED)
            self._set_signed_out()
            return

        try:
            profile = self.store.get_user(identity.id)
        except AdahiError as exc:
            logger.error("Could not load profile for %s: %s", identity.id, exc)
            self.notifier.error(MSG_FETCH_FAILED)
            with self._lock:
                self.loading = False
            self._publish()
            return

        if profile is None:
            logger.warning("No profile document for %s; signing out", identity.id)
            self._force_sign_out()
            return

        with self._lock:
            self._release_user_scope()
            self.user = profile
            self.access_token = identity.access_token
            self.submissions = []
            self.all_submissions = []
            self._open_subscription(profile)
            self.loading = False
        self._publish()

    def _query_for(self, profile: UserRead) -> SubmissionQuery:
        if profile.is_admin:
            return SubmissionQuery()
        return SubmissionQuery(user_id=profile.id)

    def _apply_results(self, profile: UserRead, results: list[SubmissionRead]) -> None:
        if profile.is_admin:
            self.all_submissions = results
            self.submissions = [s for s in results if s.user_id == profile.id]
        else:
            self.submissions = results
            self.all_submissions = []

    def _open_subscription(self, profile: UserRead) -> None:
        generation = self._generation

        def on_next(results: list[SubmissionRead]) -> None:
            with self._lock:
                if generation != self._generation:
                    return
                self._apply_results(profile, results)
            self._publish()

        def on_error(exc: Exception) -> None:
            if generation != self._generation:
                return
            logger.error("Submissions subscription failed: %s", exc)
            self.notifier.error(MSG_FETCH_FAILED)

        try:
            disposer = self.store.subscribe(self._query_for(profile), on_next, on_error)
        except AdahiError as exc:
            logger.error("Could not subscribe to submissions: %s", exc)
            self.notifier.error(MSG_FETCH_FAILED)
            return
        self._user_scope.callback(disposer)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def login(self, identifier: str, password: str) -> UserRead | None:
        """
        Sign in with an email, or a username resolved to its email.

        The published session state is derived independently by the
        session stream; the return value is only the profile read here.
        """
        if self.identity is None or self.store is None:
            self.notifier.error(MSG_NOT_CONFIGURED)
            return None

        email = identifier.strip()
        try:
            if "@" not in email:
                by_username = self.store.get_user_by_username(email)
                if by_username is None:
                    raise InvalidCredentialError(f"unknown username {email!r}")
                email = by_username.email
            identity = self.identity.sign_in(email, password)
            profile = self.store.get_user(identity.id)
        except InvalidCredentialError as exc:
            logger.info("Login rejected: %s", exc)
            self.notifier.error(
                "البريد الإلكتروني أو كلمة المرور غير صحيحة.",
                title="فشل تسجيل الدخول",
            )
            return None
        except AdahiError as exc:
            logger.error("Login failed: %s", exc)
            self.notifier.error("حدث خطأ أثناء تسجيل الدخول. الرجاء المحاولة مرة أخرى.")
            return None

        if profile is None:
            logger.warning("Signed in as %s but no profile exists", identity.id)
            self._force_sign_out()
            self.notifier.error("لم يتم العثور على بيانات المستخدم.", title="فشل تسجيل الدخول")
            return None

        return profile

    def register(self, username: str, email: str, password: str) -> UserRead | None:
        """
        Create the account and its profile. The profile is never an admin.

        The new account stays signed in when the provider returns a session.
        """
        if self.identity is None or self.store is None:
            self.notifier.error(MSG_NOT_CONFIGURED)
            return None

        username = username.strip()
        self._registering = True
        try:
            if self.store.get_user_by_username(username) is not None:
                logger.info("Registration rejected, username in use: %s", username)
                self.notifier.error("اسم المستخدم مستخدم بالفعل.", title="فشل إنشاء الحساب")
                return None
            identity = self.identity.sign_up(email, password)
            profile = self.store.put_user(
                UserRead(
                    id=identity.id,
                    username=username,
                    email=email,
                    is_admin=False,
                )
            )
        except EmailInUseError:
            logger.info("Registration rejected, email in use: %s", email)
            self.notifier.error("البريد الإلكتروني مستخدم بالفعل.", title="فشل إنشاء الحساب")
            return None
        except AdahiError as exc:
            logger.error("Registration failed: %s", exc)
            self.notifier.error("فشل إنشاء الحساب. الرجاء المحاولة مرة أخرى.")
            return None
        finally:
            self._registering = False

        if identity.access_token:
            self._on_session_change(identity)
        return profile

    def logout(self) -> None:
        if self.identity is not None:
            try:
                self.identity.sign_out()
            except AdahiError as exc:
                logger.error("Logout error: %s", exc)

        self._set_signed_out()

        if self.navigator.pathname not in PUBLIC_ROUTES:
            self.navigator.push(LOGIN_PATH)

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    def _assert_admin(self) -> None:
        """
        Raises:
            ConfigurationError: no document store.
            PermissionDenied: nobody signed in, or not an administrator.
        """
        if self.store is None:
            raise ConfigurationError("document store is not configured")
        user = self.user
        if user is None or not user.is_admin:
            raise PermissionDenied(user.id if user else "anonymous")

    def _require_admin(self) -> bool:
        try:
            self._assert_admin()
        except ConfigurationError:
            self.notifier.error(MSG_NOT_CONFIGURED)
            return False
        except PermissionDenied as exc:
            logger.warning("Admin-only operation refused for %s", exc)
            self.notifier.error(MSG_ADMIN_ONLY, title="غير مصرح به")
            return False
        return True

    def add_submission(self, data: SubmissionData) -> SubmissionRead | None:
        """
        Store a new submission owned by the current user.

        Returns a local representation right away; its submission_date is
        the local clock until the realtime query delivers the stored value.
        """
        if self.store is None:
            self.notifier.error(MSG_NOT_CONFIGURED)
            return None
        user = self.user
        if user is None:
            self.notifier.error(MSG_LOGIN_REQUIRED, title="غير مصرح به")
            return None

        values = data.model_dump()
        owner = {"user_id": user.id, "user_email": user.email, "status": "pending"}
        try:
            created = self.store.add_submission(
                {**values, **owner, "submission_date": SERVER_TIMESTAMP}
            )
        except AdahiError as exc:
            logger.error("Error adding submission: %s", exc)
            self.notifier.error("فشل في إضافة البيانات.")
            return None

        return SubmissionRead(
            id=created.id,
            submission_date=datetime.now(timezone.utc),
            **values,
            **owner,
        )

    def update_submission_status(self, submission_id: str, status: str) -> bool:
        if not self._require_admin():
            return False
        if status not in ENTRY_STATUSES:
            logger.warning("Rejected entry status %r", status)
            return False

        try:
            self.store.update_submission(submission_id, {"status": status})
        except NotFoundError:
            self.notifier.error("السجل غير موجود.")
            return False
        except AdahiError as exc:
            logger.error("Error updating submission status: %s", exc)
            self.notifier.error("فشل في تحديث الحالة.")
            return False
        return True

    def update_submission(
        self,
        submission_id: str,
        patch: SubmissionData | dict[str, Any],
    ) -> SubmissionRead | None:
        """
        Admin edit of the form fields. Keys outside SubmissionData (owner,
        status and slaughter fields) are dropped from the patch.

        Last write wins: no check is made that the record is unchanged since
        it was read.
        """
        if not self._require_admin():
            return None

        if isinstance(patch, SubmissionData):
            patch = patch.model_dump()
        changes = {
            key: value
            for key, value in patch.items()
            if key in SubmissionData.model_fields and key not in IMMUTABLE_FIELDS
        }

        try:
            current = self.store.get_submission(submission_id)
            if current is None:
                raise NotFoundError(f"submission {submission_id}")

            merged = {
                key: getattr(current, key) for key in SubmissionData.model_fields
            }
            merged.update(changes)
            if missing_conditional_fields(merged):
                self.notifier.error("البيانات المدخلة غير مكتملة.")
                return None
            try:
                validated = SubmissionData.model_validate(merged)
            except ValidationError as exc:
                logger.warning("Rejected submission edit: %s", exc)
                self.notifier.error("البيانات المدخلة غير صالحة.")
                return None

            self.store.update_submission(submission_id, validated.model_dump())
            return self.store.get_submission(submission_id)
        except NotFoundError:
            self.notifier.error("السجل غير موجود.")
            return None
        except AdahiError as exc:
            logger.error("Error updating submission: %s", exc)
            self.notifier.error("فشل في تحديث البيانات.")
            return None

    def delete_submission(self, submission_id: str) -> bool:
        """Permanent delete; there is no undo."""
        if not self._require_admin():
            return False

        try:
            self.store.delete_submission(submission_id)
        except NotFoundError:
            self.notifier.error("السجل غير موجود.")
            return False
        except AdahiError as exc:
            logger.error("Error deleting submission: %s", exc)
            self.notifier.error("فشل في حذف البيانات.")
            return False
        return True

    def refresh(self) -> bool:
        """Re-read the active query once, outside the realtime stream."""
        profile = self.user
        if profile is None or self.store is None:
            return False

        try:
            results = self.store.query_submissions(self._query_for(profile))
        except AdahiError as exc:
            logger.error("Refresh failed: %s", exc)
            self.notifier.error(MSG_FETCH_FAILED)
            return False

        with self._lock:
            if self.user is None or self.user.id != profile.id:
                return False
            self._apply_results(profile, results)
        self._publish()
        return True

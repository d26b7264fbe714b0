# adahi/core/notifications.py
import threading
from typing import Literal

from pydantic import BaseModel

Variant = Literal["default", "destructive"]


class Notification(BaseModel):
    """A toast-style message shown to the end user (Arabic text)."""

    title: str
    description: str | None = None
    variant: Variant = "default"


class Notifier:
    """
    Per-session notification queue.

    The session context and the form handlers push messages here; the HTTP
    layer drains them into each response so the client can render them.
    """

    def __init__(self):
        self._items: list[Notification] = []
        self._lock = threading.Lock()

    def notify(
        self,
        title: str,
        description: str | None = None,
        variant: Variant = "default",
    ) -> Notification:
        item = Notification(title=title, description=description, variant=variant)
        with self._lock:
            self._items.append(item)
        return item

    def error(self, description: str, title: str = "خطأ") -> Notification:
        return self.notify(title, description, variant="destructive")

    def peek(self) -> list[Notification]:
        with self._lock:
            return list(self._items)

    def drain(self) -> list[Notification]:
        """Return and clear all pending notifications."""
        with self._lock:
            items, self._items = self._items, []
        return items


# Messages reused across the context, forms and routers
MSG_NOT_CONFIGURED = "لا يمكن إتمام العملية. النظام غير مهيأ بشكل صحيح."
MSG_FETCH_FAILED = "فشل في جلب البيانات."
MSG_ADMIN_ONLY = "هذه العملية مخصصة للمدير فقط."
MSG_LOGIN_REQUIRED = "يجب تسجيل الدخول أولاً."

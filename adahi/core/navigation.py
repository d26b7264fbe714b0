# adahi/core/navigation.py
from urllib.parse import quote

LOGIN_PATH = "/auth/login"
REGISTER_PATH = "/auth/register"
DASHBOARD_PATH = "/dashboard"
ADMIN_PATH = "/admin"

PUBLIC_ROUTES = frozenset({"/", LOGIN_PATH, REGISTER_PATH})


def login_redirect(path: str) -> str:
    """Login URL that sends the user back to `path` afterwards."""
    return f"{LOGIN_PATH}?redirect={quote(path, safe='/')}"


class Navigator:
    """
    Records where the client should go next.

    `pathname` is the route the client is currently on; `push` stores the
    target, which the HTTP layer returns as a redirect.
    """

    def __init__(self, pathname: str = "/"):
        self.pathname = pathname
        self.target: str | None = None

    def push(self, path: str) -> None:
        self.target = path

    def take(self) -> str | None:
        target, self.target = self.target, None
        return target

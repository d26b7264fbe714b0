# adahi/schemas/user.py
from sqlmodel import SQLModel


class UserRead(SQLModel):
    """Profile as exposed to the session context and to clients."""

    id: str
    username: str
    email: str
    is_admin: bool = False

# adahi/models/user.py
from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Persistent user profile.

    Identity:
      - id: MUST match the Supabase auth user id (JWT "sub")

    This table is *not* responsible for password hashes. Supabase Auth
    stores the password in its own schema. We only mirror identity,
    username and the administrator flag.
    """

    __tablename__ = "users"

    id: str = Field(
        primary_key=True,
        index=True,
        description="Matches the Supabase auth user id",
    )

    username: str = Field(
        unique=True,
        index=True,
        max_length=50,
        description="Display/login name chosen at registration",
    )

    email: str = Field(
        unique=True,
        index=True,
        description="Email from Supabase Auth",
    )

    # Never set by the application itself; admins are promoted in the database
    is_admin: bool = Field(
        default=False,
        description="Administrator flag",
    )

# adahi/database.py
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from adahi.core.config import get_settings

# ---------------------------------------------------------
# Supabase Postgres connection (via pooler)
#
# - sslmode=require   : enforce SSL when running in the cloud
# - pool_size=1       : keep only 1 connection to the Supabase pooler
# - max_overflow=0    : do not open extra connections beyond the pool
# - pool_pre_ping=True: validate connections before using them
#
# Supabase Session mode limits the number of clients. If each backend
# process opens many connections you can easily hit:
#   "MaxClientsInSessionMode: max clients reached"
#
# SQLite URLs (local runs, tests) get a single shared connection instead.
# ---------------------------------------------------------


def build_engine(db_url: str) -> Engine:
    """Create the SQLAlchemy engine for `db_url`."""
    if db_url.startswith("sqlite"):
        return create_engine(
            db_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    # Append sslmode=require if it is not already present
    if "sslmode=" not in db_url:
        if "?" in db_url:
            db_url = db_url + "&sslmode=require"
        else:
            db_url = db_url + "?sslmode=require"

    return create_engine(
        db_url,
        echo=False,  # set to True if you want to debug SQL queries
        pool_pre_ping=True,
        pool_size=1,
        max_overflow=0,
    )


engine = build_engine(get_settings().DATABASE_URL)


def create_db_and_tables(bind: Engine = engine) -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    # Import models so SQLModel metadata is populated before create_all()
    from adahi.models import submission as _submission_models  # noqa: F401
    from adahi.models import user as _user_models  # noqa: F401

    SQLModel.metadata.create_all(bind)

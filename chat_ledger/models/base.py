"""
Engine, session factory and declarative base for the ledger
tables.

Services receive a Session and only flush. Whoever opened the
session (a router, the webhook loop, init_database) commits or
rolls back.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from chat_ledger.config import get_settings
from chat_ledger.errors import surfaces_storage_errors

settings = get_settings()

# SQLite connections are shared across FastAPI's worker threads.
connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    connect_args["check_same_thread"] = False

# pool_pre_ping drops connections that died while idle, so a
# restarted database costs one reconnect, not a failed event.
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=connect_args,
)

# Nothing reaches the database until an explicit flush, and
# nothing is kept until the owner of the session commits.
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


@surfaces_storage_errors
def commit(db: Session) -> None:
    """Commit the unit of work; a lost connection surfaces as StorageError."""
    db.commit()


def get_db():
    """FastAPI dependency: one session per request, always closed."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from stockflow.core.config import settings


class Base(DeclarativeBase):
    pass


def build_engine(database_url: str, sslmode: str = "") -> Engine:
    is_sqlite = database_url.startswith("sqlite")

    if is_sqlite:
        connect_args = {"check_same_thread": False}
    elif sslmode:
        connect_args = {"sslmode": sslmode}
    else:
        connect_args = {}

    engine = create_engine(
        database_url,
        connect_args=connect_args,
        pool_pre_ping=not is_sqlite,
        pool_recycle=1800 if not is_sqlite else -1,
    )

    if is_sqlite:
        # SQLite leaves foreign keys unenforced unless asked per connection.
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


engine = build_engine(settings.database_url, settings.database_sslmode)

SessionLocal = build_session_factory(engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """Commit everything done inside the block, or roll all of it back."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def is_unique_violation(exc: IntegrityError) -> bool:
    # SQLite says "UNIQUE constraint failed", PostgreSQL reports SQLSTATE 23505.
    if getattr(exc.orig, "sqlstate", None) == "23505":
        return True
    return "unique" in str(exc.orig).lower()

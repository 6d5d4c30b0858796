"""Database engine and session management (PostgreSQL in production, SQLite for local runs)."""

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from showroom.core.config import settings


def make_engine(url: str, echo: bool = False, **kwargs: object) -> Engine:
    """
    Create an engine for url.

    SQLite connections get foreign keys switched on so session and token rows
    cascade with their user, as they do on PostgreSQL.
    """
    if url.startswith("sqlite"):
        engine = create_engine(url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, _record) -> None:  # type: ignore[no-untyped-def]
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine
    return create_engine(url, pool_pre_ping=True, echo=echo, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


engine = make_engine(settings.DATABASE_URL, echo=settings.DEBUG)

SessionLocal = make_session_factory(engine)

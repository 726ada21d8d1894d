# pos_api/database.py

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from pos_api.core.config import settings


Base = declarative_base()


def _configure_sqlite(engine: Engine) -> None:
    # SQLite has no row locks. Atomic scopes begin with BEGIN IMMEDIATE,
    # which takes the database write lock up front: the whole scope then
    # behaves like a SELECT ... FOR UPDATE on every row it reads.
    # WAL keeps plain readers from blocking that writer.

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        mode = conn.get_execution_options().get("sqlite_begin", "DEFERRED")
        conn.exec_driver_sql(f"BEGIN {mode}")


def build_engine(url: str, busy_timeout: float | None = None) -> Engine:
    if url.startswith("sqlite"):
        if busy_timeout is None:
            busy_timeout = settings.SQLITE_BUSY_TIMEOUT_SECONDS

        engine = create_engine(
            url,
            connect_args={
                "check_same_thread": False,
                "timeout": busy_timeout,
            },
        )
        _configure_sqlite(engine)
        return engine

    return create_engine(url, pool_pre_ping=True)


def build_session_factory(bind: Engine, locking: bool = False) -> sessionmaker:
    if locking:
        # Ignored by every dialect except SQLite (see _configure_sqlite)
        bind = bind.execution_options(sqlite_begin="IMMEDIATE")

    # Committed sales are handed back after their session closes
    return sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)


engine = build_engine(settings.DATABASE_URL)

SessionLocal = build_session_factory(engine)

# Sessions for atomic scopes that lock rows
LockingSessionLocal = build_session_factory(engine, locking=True)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = engine) -> None:
    # Import models so they register on Base.metadata
    from pos_api import models  # noqa: F401

    Base.metadata.create_all(bind=bind)

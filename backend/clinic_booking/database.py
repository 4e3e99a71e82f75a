from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .config import settings

# Seconds a connection waits for SQLite's write lock before "database is locked"
SQLITE_BUSY_TIMEOUT = 15


def make_engine(url: str) -> Engine:
    """
    Create an engine for ``url``.

    SQLite needs check_same_thread=False: the reminder scan runs in a worker
    thread while requests use the FastAPI threadpool. In-memory SQLite gets a
    StaticPool so every session sees the same database.

    On SQLite every transaction starts with BEGIN IMMEDIATE. pysqlite would
    otherwise defer BEGIN until the first write, so a read-then-insert (the
    booking overlap check) would run outside any lock.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    kwargs = {"connect_args": {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    engine = create_engine(url, **kwargs)

    @event.listens_for(engine, "connect")
    def setup_sqlite_connection(dbapi_connection, _):
        # Transactions are emitted by the "begin" listener below
        dbapi_connection.isolation_level = None
        # Foreign keys are off by default in SQLite
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=engine,
    )


engine = make_engine(settings.resolved_database_url)

# SessionLocal: the default way to talk to the DB
SessionLocal = make_session_factory(engine)

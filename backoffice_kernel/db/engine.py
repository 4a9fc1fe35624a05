"""
Module: backoffice_kernel.db.engine
Responsibility: Engine construction for the two supported backends, the
    process-wide engine and session factory, and the dialect-specific parts
    of the locking model (lock timeouts, contention detection).
Architecture position: Kernel > DB.  Imports db/base.py and the kernel
    exceptions only (models are imported lazily by create_tables/drop_tables
    to register the tables).

Locking model:
    - PostgreSQL (production): READ COMMITTED plus explicit row locks
      (SELECT ... FOR UPDATE) on products, purchase headers and sequence
      counters.  Waits are bounded per transaction by apply_lock_timeout().
    - SQLite (development, tests, single-till installs): write transactions
      open with BEGIN IMMEDIATE, so writers queue on the database lock for
      at most the driver busy timeout.  Read scopes (read_only()) open with
      a deferred BEGIN and never take the write lock.  Foreign keys are
      enforced per connection.

Failure modes:
    - RuntimeError from get_engine/get_session_factory before
      init_engine_from_url().
    - OperationalError on lock timeout or deadlock; is_lock_contention()
      recognises these so the coordinator can raise ContentionError.
    - ContentionError from read_only() when a read times out waiting on a
      lock.
"""

import atexit
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from backoffice_kernel.exceptions import ContentionError
from backoffice_kernel.logging_config import get_logger

logger = get_logger("db.engine")

DEFAULT_LOCK_TIMEOUT_MS = 5000

# lock_not_available, deadlock_detected, serialization_failure
_PG_CONTENTION_CODES = frozenset({"55P03", "40P01", "40001"})
_SQLITE_CONTENTION_MESSAGES = ("database is locked", "database table is locked")

# Connection execution option marking a read-only transaction.
_READ_ONLY = "backoffice_read_only"

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    lock_timeout_ms: int = DEFAULT_LOCK_TIMEOUT_MS,
) -> Engine:
    """
    Create an engine for ``database_url`` without registering it.

    ``lock_timeout_ms`` becomes the SQLite busy timeout.  On PostgreSQL the
    timeout is applied per transaction by ``apply_lock_timeout`` instead,
    so it can differ between callers.
    """
    pool = dict(
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=pool_timeout,
    )

    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=echo,
            connect_args={"timeout": lock_timeout_ms / 1000, "check_same_thread": False},
            **pool,
        )
        _serialize_sqlite_writers(engine)
        return engine

    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_recycle=pool_recycle,
        isolation_level="READ COMMITTED",
        **pool,
    )


def _serialize_sqlite_writers(engine: Engine) -> None:
    # pysqlite's deferred BEGIN lets two readers both try to upgrade to
    # writer and deadlock; writers take the write lock up front instead.
    # Read scopes never upgrade, so they keep the deferred BEGIN.

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        if conn.get_execution_options().get(_READ_ONLY):
            conn.exec_driver_sql("BEGIN")
        else:
            conn.exec_driver_sql("BEGIN IMMEDIATE")


def init_engine_from_url(database_url: str, **options) -> Engine:
    """
    Build the process-wide engine and session factory.

    Accepts the keyword options of ``build_engine``.  A second call
    disposes the previous engine.
    """
    global _engine, _session_factory

    reset_engine()
    _engine = build_engine(database_url, **options)
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, **{
            k: v for k, v in options.items() if k in ("pool_size", "max_overflow", "echo")
        }},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Session factory bound to the process-wide engine; one session per thread."""
    if _session_factory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _session_factory


def reset_engine() -> None:
    """Dispose the process-wide engine, if any."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


atexit.register(reset_engine)


def apply_lock_timeout(session: Session, lock_timeout_ms: int) -> None:
    """
    Bound row-lock waits for the rest of the session's current transaction.

    PostgreSQL only: a transaction-local ``lock_timeout``, so a blocked
    SELECT ... FOR UPDATE or UPDATE fails with SQLSTATE 55P03 and the
    setting vanishes at commit or rollback.  SQLite relies on the busy
    timeout set when the engine was built.
    """
    if session.get_bind().dialect.name == "postgresql":
        session.execute(
            select(func.set_config("lock_timeout", f"{int(lock_timeout_ms)}ms", True))
        )


@contextmanager
def read_only(session: Session, operation: str = "read") -> Iterator[Session]:
    """
    Scope a read on ``session``.

    If no transaction is open, one is started for reading and rolled back
    on exit so no locks outlive the read.  On SQLite that transaction opens
    with a deferred BEGIN, so it does not queue behind writers for the
    database write lock.  A read that still times out on a lock raises
    ContentionError.  Inside an open transaction the scope is transparent.
    """
    owned = not session.in_transaction()
    try:
        if owned:
            session.connection(execution_options={_READ_ONLY: True})
        yield session
    except DBAPIError as exc:
        if not is_lock_contention(exc):
            raise
        logger.warning(
            "read_contention",
            extra={"operation": operation, "error": str(exc.orig)},
        )
        raise ContentionError(operation, str(exc.orig)) from exc
    finally:
        if owned:
            session.rollback()


def is_lock_contention(exc: BaseException) -> bool:
    """True for lock timeouts, deadlock victims, serialization failures and SQLite busy."""
    if not isinstance(exc, DBAPIError):
        return False
    sqlstate = getattr(exc.orig, "pgcode", None) or getattr(exc.orig, "sqlstate", None)
    if sqlstate in _PG_CONTENTION_CODES:
        return True
    message = str(exc.orig).lower()
    return any(text in message for text in _SQLITE_CONTENTION_MESSAGES)


def create_tables(engine: Engine | None = None) -> None:
    from backoffice_kernel.db.base import Base
    import backoffice_kernel.models  # noqa: F401  (registers the tables)

    Base.metadata.create_all(engine or get_engine())
    logger.info("tables_created", extra={"tables": len(Base.metadata.tables)})


def drop_tables(engine: Engine | None = None) -> None:
    """Drop every table.  Tests only."""
    from backoffice_kernel.db.base import Base
    import backoffice_kernel.models  # noqa: F401

    Base.metadata.drop_all(engine or get_engine())

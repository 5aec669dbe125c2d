"""
Module: production_kernel.db.engine
Responsibility: One process-wide engine and session factory, plus the
    transactional ``session_scope()`` helper and schema create/drop.
Architecture position: Kernel > DB.  Imports db/base.py; create_tables()
    and drop_tables() import the models package so the metadata is complete.

Invariants enforced:
    - PostgreSQL runs at READ COMMITTED by default.  The completion path
      raises its own transaction to SERIALIZABLE and locks the plan row.
    - SQLite (tests, local runs) gets foreign keys switched on for every
      connection, so cascade and FK behaviour match PostgreSQL.
    - Server backends use a pre-pinged QueuePool.

Failure modes:
    - RuntimeError from get_engine / get_session / get_session_factory
      before init_engine_from_url().
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from production_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."


def _sqlite_on_connect(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the engine and session factory, replacing any previous ones.

    Pool arguments apply to server backends only; SQLite uses SQLAlchemy's
    default pool for the URL.

    Returns:
        The new Engine.
    """
    global _engine, _SessionFactory

    if database_url.startswith("sqlite"):
        engine = create_engine(database_url, echo=echo)
        event.listen(engine, "connect", _sqlite_on_connect)
        pool_info = None
    else:
        engine = create_engine(
            database_url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )
        pool_info = {"pool_size": pool_size, "max_overflow": max_overflow}

    _engine = engine
    _SessionFactory = sessionmaker(bind=engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": engine.dialect.name, "pool": pool_info, "echo": echo},
    )
    return engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """
    The shared session factory.

    CompletionCoordinator takes this so the archive transaction and the
    audit write each get their own session.
    """
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory


def get_session() -> Session:
    """A new Session from the shared factory."""
    return get_session_factory()()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Commit on success, roll back and re-raise on any exception.

    Usage:
        with session_scope() as session:
            StepDetailService(session).update_detail_status(step_id, "accept", actor_id)
    """
    session = get_session()
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def _metadata() -> MetaData:
    from production_kernel.db.base import Base
    import production_kernel.models  # noqa: F401  (registers all tables)

    return Base.metadata


def create_tables() -> None:
    """Create every production table that does not exist yet."""
    metadata = _metadata()
    metadata.create_all(get_engine())
    logger.info("tables_created", extra={"table_count": len(metadata.sorted_tables)})


def drop_tables() -> None:
    """Drop every production table.  Tests and local resets only."""
    _metadata().drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


def is_postgres() -> bool:
    return _engine is not None and _engine.dialect.name == "postgresql"


@atexit.register
def _dispose_on_exit() -> None:
    if _engine is not None:
        _engine.dispose()

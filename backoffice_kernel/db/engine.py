"""
Engine and session lifecycle.

Responsibility
--------------
Own the process-wide SQLAlchemy engine and session factory.  Services are
handed a ``Session`` and own their transaction; ``session_scope()`` is the
convenience wrapper for scripts.

Invariants enforced
-------------------
* PostgreSQL (production) runs pooled ``READ COMMITTED`` connections.  The
  services take ``SELECT ... FOR UPDATE`` row locks wherever a
  read-check-write must not interleave.
* SQLite URLs (tests, tools) share one static connection so an in-memory
  database outlives individual sessions.
* Sessions do not expire objects on commit; DTOs are built after commit.

Failure modes
-------------
* ``RuntimeError`` when the engine is used before ``init_engine_from_url()``.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from backoffice_kernel.db.base import Base
from backoffice_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."


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
    Create the engine for ``database_url`` and bind the session factory.

    Pool arguments apply to PostgreSQL only.  Calling this again replaces
    the previous engine without disposing it; call ``reset_engine()`` first.
    """
    global _engine, _SessionFactory

    if database_url.startswith("sqlite"):
        _engine = create_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        _engine = create_engine(
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

    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "echo": echo},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session() -> Session:
    """A new session from the bound factory."""
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Commit on normal exit, roll back and re-raise on any exception.

    Usage::

        with session_scope() as session:
            StockService(session).add_item("Mango", Decimal("120"), actor_id)
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """
    Create every table registered on ``Base.metadata``.

    Module ORM models register themselves on import; use
    ``backoffice_modules._orm_registry.create_all_tables()`` for the full
    schema.
    """
    if not Base.metadata.tables:
        raise RuntimeError(
            "No ORM models registered; call "
            "backoffice_modules._orm_registry.create_all_tables() instead"
        )
    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"table_count": len(Base.metadata.tables)})


def drop_tables() -> None:
    """Drop every registered table.  Tests and ``scripts/init_db.py --reset`` only."""
    Base.metadata.drop_all(get_engine())
    logger.info("tables_dropped", extra={"table_count": len(Base.metadata.tables)})


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


@atexit.register
def _dispose_on_exit() -> None:
    if _engine is not None:
        _engine.dispose()

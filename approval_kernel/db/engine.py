"""
Module: approval_kernel.db.engine
Responsibility: Engine and session factory for the approval store, plus the
    unit-of-work scope that callers wrap each decision in.
Architecture position: Kernel > DB.  May import from db/base.py and
    logging_config.py.  create_tables() imports models/ so the metadata is
    complete.

Invariants enforced:
    - PostgreSQL runs at READ COMMITTED with pre-pinged pooled connections.
      Racing decisions on one step are serialized by the workflow service's
      conditional UPDATE, not by the isolation level.
    - SQLite (file databases only) is accepted for local runs and the test
      suite.  Connections may cross threads and writers wait on the busy
      timeout instead of failing at once.

Failure modes:
    - RuntimeError when a session is requested before init_engine_from_url().
    - Any exception inside session_scope() rolls the unit back and re-raises.
"""

from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from approval_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def init_engine_from_url(
    database_url: str,
    *,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 10,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    sqlite_busy_timeout: float = 30.0,
) -> Engine:
    """
    Create the module engine and session factory, replacing any previous one.

    Args:
        database_url: ``postgresql+psycopg2://...`` in production, or
            ``sqlite:///path/approvals.db`` for local runs.
        sqlite_busy_timeout: Seconds a SQLite writer waits for the database
            lock.  Ignored on other backends.
    """
    global _engine, _session_factory

    reset_engine()
    url = make_url(database_url)
    dialect = url.get_backend_name()

    options: dict[str, Any] = {
        "echo": echo,
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_timeout": pool_timeout,
    }
    if dialect == "sqlite":
        options["connect_args"] = {
            "check_same_thread": False,
            "timeout": sqlite_busy_timeout,
        }
    else:
        options.update(
            pool_pre_ping=True,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )

    _engine = create_engine(url, **options)
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": dialect, "pool_size": pool_size, "max_overflow": max_overflow},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Factory for callers that open their own sessions, one per thread."""
    if _session_factory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _session_factory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    One unit of work: commit on clean exit, roll back and re-raise otherwise.

        with session_scope() as session:
            coordinator = build_coordinator(session)
            coordinator.approve(workflow_id, approver)
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


def create_tables() -> None:
    """Create approval_workflows, registration_requests and users."""
    from approval_kernel.db.base import Base
    import approval_kernel.models  # noqa: F401  (registers the tables)

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    from approval_kernel.db.base import Base
    import approval_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the pool and forget the factory."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None

"""
Module: ledger_kernel.db.engine
Responsibility: Engine construction, session factory and transactional scope.
    The Database handle is constructed explicitly from settings and passed to
    whoever needs it; there is no module-level engine.
Architecture position: Kernel > DB.  May import from db/base.py.  Imports
    models only inside create_tables/drop_tables so metadata is populated.

Invariants enforced:
    - session_scope() is the unit of work: commit on success, rollback and
      re-raise on any exception.  Nothing is partially committed.
    - PostgreSQL sessions run at the configured isolation level (SERIALIZABLE
      unless overridden) with a statement_timeout.
    - SQLite connections enforce foreign keys and let SQLAlchemy emit BEGIN,
      so nested SAVEPOINTs roll back correctly.

Failure modes:
    - OperationalError / IntegrityError propagate out of session_scope after
      rollback.  is_serialization_failure() identifies SQLSTATE 40001 so
      callers can retry once.
"""

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledger_kernel.logging_config import get_logger

if TYPE_CHECKING:
    from ledger_config.schema import DatabaseSettings

logger = get_logger("db.engine")

SERIALIZATION_FAILURE = "40001"


def is_serialization_failure(exc: BaseException) -> bool:
    """True when ``exc`` wraps a PostgreSQL serialization failure (40001)."""
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    return code == SERIALIZATION_FAILURE


def _on_sqlite_connect(dbapi_connection, connection_record) -> None:
    # Hand transaction control to SQLAlchemy so SAVEPOINT behaves.
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _on_sqlite_begin(conn) -> None:
    conn.exec_driver_sql("BEGIN")


class Database:
    """
    Explicit database handle: one engine, one session factory.

    Contract:
        Constructed once at process start from DatabaseSettings and disposed
        at shutdown by the caller.  Services never create engines; they
        receive Sessions.

    Usage:
        db = Database(settings.database)
        db.create_tables()
        with db.session_scope() as session:
            ...
        db.dispose()
    """

    def __init__(self, settings: "DatabaseSettings"):
        self.settings = settings
        self.engine: Engine = create_engine(settings.url, **self._engine_kwargs(settings))
        if self.dialect == "sqlite":
            event.listen(self.engine, "connect", _on_sqlite_connect)
            event.listen(self.engine, "begin", _on_sqlite_begin)
        self.session_factory: sessionmaker[Session] = sessionmaker(
            bind=self.engine, expire_on_commit=False
        )
        logger.info(
            "engine_initialized",
            extra={
                "dialect": self.dialect,
                "isolation_level": self._isolation_level(settings),
                "echo": settings.echo,
            },
        )

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    @staticmethod
    def _isolation_level(settings: "DatabaseSettings") -> str | None:
        if settings.isolation_level:
            return settings.isolation_level
        if make_url(settings.url).get_backend_name() == "postgresql":
            return "SERIALIZABLE"
        return None

    @classmethod
    def _engine_kwargs(cls, settings: "DatabaseSettings") -> dict[str, Any]:
        url = make_url(settings.url)
        kwargs: dict[str, Any] = {"echo": settings.echo}

        isolation_level = cls._isolation_level(settings)
        if isolation_level:
            kwargs["isolation_level"] = isolation_level

        if url.get_backend_name() == "sqlite":
            kwargs["connect_args"] = {"check_same_thread": False}
            if url.database in (None, "", ":memory:"):
                # One shared connection, otherwise each checkout sees an
                # empty database.
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_size"] = settings.pool_size
            kwargs["pool_pre_ping"] = True
            if url.get_backend_name() == "postgresql":
                kwargs["connect_args"] = {
                    "options": f"-c statement_timeout={settings.statement_timeout_ms}"
                }
        return kwargs

    def session(self) -> Session:
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope around a series of operations.

        Postconditions: On normal exit the session is committed and closed.
            On exception it is rolled back and closed, and the exception is
            re-raised unchanged.
        """
        session = self.session_factory()
        logger.debug("transaction_started")
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

    def create_tables(self) -> None:
        """Create all ledger tables (idempotent)."""
        from ledger_kernel import models  # noqa: F401  (populates metadata)
        from ledger_kernel.db.base import Base

        Base.metadata.create_all(self.engine)
        logger.info("tables_created", extra={"tables": len(Base.metadata.tables)})

    def drop_tables(self) -> None:
        """Drop all ledger tables. Use with caution - primarily for testing."""
        from ledger_kernel import models  # noqa: F401
        from ledger_kernel.db.base import Base

        Base.metadata.drop_all(self.engine)
        logger.info("tables_dropped")

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("engine_disposed")

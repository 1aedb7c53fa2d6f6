"""
Transit Store Backend - Storage Adapter
=========================================

What:  Async SQLAlchemy engine wrapper exposing execute / query_one / query_all.
How:   One StorageAdapter is created and connected in the application lifespan,
       stored on app.state and handed to the services through FastAPI
       dependencies. Every call runs in its own transaction on a pooled
       connection and commits on success.
Who:   RecordService and FolderService; the health route for ping().

Statements are SQLAlchemy Core constructs (or raw SQL wrapped in text()), so
parameters are always bound by the driver.

Constraint violations are translated into typed storage errors here, the only
place that looks at driver-specific error details:

    IntegrityError ──┬── SQLSTATE 23505 / SQLITE_CONSTRAINT_UNIQUE      → UniqueViolation
                     ├── SQLSTATE 23503 / SQLITE_CONSTRAINT_FOREIGNKEY  → ForeignKeyViolation
                     └── anything else                                  → re-raised unchanged
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Type, Union

from sqlalchemy import Table, and_, event, insert, select, text
from sqlalchemy.engine import Row
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.sql import Executable

from transit_store.exceptions import ConnectionNotReadyError

logger = logging.getLogger(__name__)

Statement = Union[Executable, str]


class Base(DeclarativeBase):
    """Declarative base shared by every table; its metadata drives schema creation."""
    pass


def utc_now_iso() -> str:
    """Current UTC time as `YYYY-MM-DDTHH:MM:SS.sssZ` (24 characters)."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ══════════════════════════════════════════════════════════════════════════
# Typed Constraint Violations
# ══════════════════════════════════════════════════════════════════════════

class ConstraintViolation(Exception):
    """A statement was rejected by a database constraint."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class UniqueViolation(ConstraintViolation):
    """A UNIQUE constraint rejected an insert or update."""


class ForeignKeyViolation(ConstraintViolation):
    """A FOREIGN KEY constraint rejected a statement."""


_SQLSTATE_KINDS: Dict[str, Type[ConstraintViolation]] = {
    "23505": UniqueViolation,
    "23503": ForeignKeyViolation,
}

_SQLITE_ERRORNAME_KINDS: Dict[str, Type[ConstraintViolation]] = {
    "SQLITE_CONSTRAINT_UNIQUE": UniqueViolation,
    "SQLITE_CONSTRAINT_FOREIGNKEY": ForeignKeyViolation,
}

# Only consulted when the driver exposes no structured code.
_MESSAGE_KINDS: Dict[str, Type[ConstraintViolation]] = {
    "UNIQUE constraint failed": UniqueViolation,
    "FOREIGN KEY constraint failed": ForeignKeyViolation,
}


def classify_integrity_error(exc: IntegrityError) -> Optional[Type[ConstraintViolation]]:
    """
    Map an IntegrityError to the violation kind it represents.

    Checks, in order: the PostgreSQL SQLSTATE (asyncpg adapts it as
    `sqlstate`, psycopg as `pgcode`), the SQLite extended error name, and
    finally the SQLite message text. Returns None for constraint kinds the
    application does not distinguish (NOT NULL, CHECK, ...).
    """
    orig = exc.orig
    candidates = [orig, getattr(orig, "__cause__", None)]

    for candidate in candidates:
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code in _SQLSTATE_KINDS:
            return _SQLSTATE_KINDS[code]
        errorname = getattr(candidate, "sqlite_errorname", None)
        if errorname in _SQLITE_ERRORNAME_KINDS:
            return _SQLITE_ERRORNAME_KINDS[errorname]

    message = str(orig)
    for fragment, kind in _MESSAGE_KINDS.items():
        if fragment in message:
            return kind
    return None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ships with foreign key enforcement off for every new connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# ══════════════════════════════════════════════════════════════════════════
# Storage Adapter
# ══════════════════════════════════════════════════════════════════════════

class StorageAdapter:
    """
    Process-wide handle to the database.

    Lifecycle:
        StorageAdapter(url) → await connect() → execute/query_* ... → await dispose()

    Any operation attempted before connect() raises ConnectionNotReadyError.
    connect() is idempotent; the engine is never replaced once created.
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self._echo = echo
        self._engine: Optional[AsyncEngine] = None

    @property
    def is_ready(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise ConnectionNotReadyError(context={"database_url": self._safe_url()})
        return self._engine

    @property
    def supports_returning(self) -> bool:
        """Whether the connected dialect can run INSERT ... RETURNING."""
        return bool(self.engine.dialect.insert_returning)

    def _safe_url(self) -> str:
        return self.database_url.split("@")[-1]

    async def connect(self) -> None:
        """
        Create the engine, enable FK enforcement on SQLite, create missing tables.

        Tables are registered on Base.metadata by importing the model modules.
        """
        if self._engine is not None:
            return

        # Registers every table on Base.metadata before create_all.
        from transit_store.models import folder, record  # noqa: F401

        engine = create_async_engine(
            self.database_url,
            echo=self._echo,
            pool_pre_ping=True,
        )
        if engine.dialect.name == "sqlite":
            event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self._engine = engine
        logger.info(
            "[ DATABASE ] connection verified - %s version %s (%s)",
            engine.dialect.name,
            self.server_version(),
            self._safe_url(),
        )

    def server_version(self) -> str:
        info = self.engine.dialect.server_version_info or ()
        return ".".join(str(part) for part in info) or "unknown"

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncConnection]:
        engine = self.engine
        try:
            async with engine.begin() as conn:
                yield conn
        except IntegrityError as exc:
            kind = classify_integrity_error(exc)
            if kind is None:
                raise
            raise kind(str(exc.orig)) from exc

    @staticmethod
    def _coerce(statement: Statement) -> Executable:
        if isinstance(statement, str):
            return text(statement)
        return statement

    async def execute(
        self, statement: Statement, params: Optional[Mapping[str, Any]] = None
    ) -> int:
        """Run a statement and return the number of affected rows."""
        async with self._transaction() as conn:
            result = await conn.execute(self._coerce(statement), params)
            return result.rowcount

    async def query_one(
        self, statement: Statement, params: Optional[Mapping[str, Any]] = None
    ) -> Optional[Row]:
        """Run a statement and return its first row, or None."""
        async with self._transaction() as conn:
            result = await conn.execute(self._coerce(statement), params)
            return result.first()

    async def query_all(
        self, statement: Statement, params: Optional[Mapping[str, Any]] = None
    ) -> List[Row]:
        """Run a statement and return every row."""
        async with self._transaction() as conn:
            result = await conn.execute(self._coerce(statement), params)
            return list(result.all())

    async def insert_returning(self, table: Table, values: Mapping[str, Any]) -> Row:
        """
        Insert one row and return it as stored, generated columns included.

        Uses INSERT ... RETURNING when the dialect supports it; otherwise the
        row is re-read by its inserted primary key inside the same transaction.
        """
        async with self._transaction() as conn:
            if conn.dialect.insert_returning:
                result = await conn.execute(
                    insert(table).values(**values).returning(*table.c)
                )
                return result.one()

            result = await conn.execute(insert(table).values(**values))
            key = result.inserted_primary_key
            condition = and_(
                *(column == value for column, value in zip(table.primary_key.columns, key))
            )
            reread = await conn.execute(select(table).where(condition))
            return reread.one()

    async def ping(self) -> bool:
        """SELECT 1 against the database; raises on failure."""
        row = await self.query_one("SELECT 1")
        return row is not None and row[0] == 1

    async def dispose(self) -> None:
        """Close all pooled connections. Called once at shutdown."""
        if self._engine is not None:
            await self._engine.dispose()
            logger.info("[ DATABASE ] connection pool disposed")

"""
Thin DB-API layer shared by the models and the store services.

SQL is written once with ``?`` placeholders and runs on SQLite (development,
tests) or PostgreSQL (production). ``connection()`` is one transaction:
commit on success, rollback on any error.
"""
import os
import sqlite3
from contextlib import contextmanager
from enum import StrEnum, auto
from pathlib import Path
from typing import Any, ClassVar, Dict, Generator, Literal, Tuple, Type

import psycopg2
import psycopg2.extras
from flask import Flask
from retry import retry

from famous_since.utils.logging import get_logger

from .defaults import default_list
from .migrations import setupDB

log = get_logger(__name__)

ErrorTypes = Tuple[Type[BaseException], ...]


class Backend(StrEnum):
    SQLITE = auto()
    POSTGRESQL = auto()


def _sqlite_path(uri: str) -> str:
    path = uri.split(":///", 1)[-1]
    if not path or path == ":memory:":
        return ":memory:"
    resolved = Path(path).expanduser().resolve()
    resolved.parent.mkdir(parents=True, exist_ok=True)
    return str(resolved)


class DBClient:
    OperationalError: ClassVar[ErrorTypes] = (sqlite3.OperationalError, psycopg2.OperationalError)
    ProgrammingError: ClassVar[ErrorTypes] = (sqlite3.ProgrammingError, psycopg2.ProgrammingError)
    IntegrityError: ClassVar[ErrorTypes] = (sqlite3.IntegrityError, psycopg2.IntegrityError)

    def __init__(self) -> None:
        self.uri: str | None = None
        self.backend: Backend | None = None
        self._columns: Dict[str, Dict[str, str]] = {}

    def init_app(self, app: Flask) -> None:
        uri = app.config.get("DATABASE_URI") or os.getenv("DATABASE_URL")
        if not uri:
            raise RuntimeError("DATABASE_URI is not configured")
        if uri.startswith("sqlite:///"):
            self.backend = Backend.SQLITE
        elif uri.startswith(("postgresql://", "postgres://")):
            self.backend = Backend.POSTGRESQL
        else:
            raise ValueError(f"Unsupported DATABASE_URI scheme: {uri.split(':', 1)[0]}")
        self.uri = uri
        self._columns.clear()
        app.extensions["db"] = self

    def checkDB(self, schema: list) -> None:
        setupDB(schema, self)
        self._columns.clear()

    def sql(self, query: str) -> str:
        """Queries are written with ``?`` placeholders; psycopg2 wants ``%s``."""
        if self.backend == Backend.POSTGRESQL:
            return query.replace("?", "%s")
        return query

    def _connect_sqlite(self) -> Tuple[Any, Any]:
        conn = sqlite3.connect(_sqlite_path(self.uri or ""), timeout=30, check_same_thread=False)
        conn.row_factory = lambda cursor, row: {col[0]: row[i] for i, col in enumerate(cursor.description)}
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        return conn, conn.cursor()

    def _connect_postgres(self) -> Tuple[Any, Any]:
        conn = psycopg2.connect(self.uri, connect_timeout=10)
        conn.set_session(autocommit=False)
        return conn, conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)

    @retry(exceptions=OperationalError, tries=3, delay=1, backoff=2)
    def _connect(self) -> Tuple[Any, Any]:
        if self.backend == Backend.SQLITE:
            return self._connect_sqlite()
        if self.backend == Backend.POSTGRESQL:
            return self._connect_postgres()
        raise RuntimeError("DBClient.init_app() has not been called")

    def _log_failure(self, exc: BaseException) -> None:
        if isinstance(exc, self.IntegrityError):
            log.info("Constraint violation, rolled back: %s", exc)
        elif isinstance(exc, self.OperationalError):
            log.warning("Database unavailable, rolled back: %s", exc)
        elif isinstance(exc, self.ProgrammingError):
            log.error("Bad SQL, rolled back: %s", exc)
        else:
            log.debug("Rolled back after %s", type(exc).__name__)

    @contextmanager
    def connection(self, autocommit: bool = True) -> Generator[Tuple[Any, Any], None, None]:
        """
        ``with db.connection() as (conn, cur):`` runs the block as one
        transaction. With ``autocommit=False`` the caller commits.
        """
        conn, cur = self._connect()
        try:
            yield conn, cur
            if autocommit:
                conn.commit()
        except BaseException as e:
            conn.rollback()
            self._log_failure(e)
            raise
        finally:
            cur.close()
            conn.close()

    def execute(
        self,
        query: str,
        params: tuple | dict | None = None,
        fetch: Literal["all", "one", "none"] = "all",
    ) -> Any:
        with self.connection() as (conn, cur):
            cur.execute(self.sql(query), params or ())
            if fetch == "none":
                return None
            if fetch == "one":
                row = cur.fetchone()
                return dict(row) if row is not None else None
            return [dict(row) for row in cur.fetchall()]

    def insert(self, cur: Any, table_name: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """INSERT one row on an open cursor and return the stored row."""
        columns = ", ".join(data)
        placeholders = ", ".join("?" for _ in data)
        query = f"INSERT INTO {table_name} ({columns}) VALUES ({placeholders})"
        if self.backend == Backend.POSTGRESQL:
            cur.execute(self.sql(f"{query} RETURNING *"), tuple(data.values()))
        else:
            cur.execute(query, tuple(data.values()))
            cur.execute(f"SELECT * FROM {table_name} WHERE id = ?", (cur.lastrowid,))
        return dict(cur.fetchone())

    def get_columns(self, table_name: str) -> Dict[str, str]:
        """Column name to declared type, cached until the next schema sync."""
        if table_name not in self._columns:
            if self.backend == Backend.SQLITE:
                rows = self.execute(f"PRAGMA table_info({table_name})")
                self._columns[table_name] = {row["name"].lower(): row["type"].lower() for row in rows}
            else:
                rows = self.execute(
                    "SELECT column_name, data_type FROM information_schema.columns "
                    "WHERE table_name = ? AND table_schema = current_schema() ORDER BY ordinal_position",
                    (table_name,),
                )
                self._columns[table_name] = {
                    row["column_name"].lower(): row["data_type"].lower() for row in rows
                }
        return self._columns[table_name]

    @staticmethod
    def is_duplicate(exc: BaseException, column: str | None = None) -> bool:
        """True for a unique-constraint violation, optionally on ``column``."""
        message = str(exc).lower()
        if "unique" not in message and "duplicate" not in message:
            return False
        return column is None or column.lower() in message


db = DBClient()

__all__ = ["Backend", "DBClient", "db", "default_list"]

from __future__ import annotations

import enum
import logging
import sqlite3
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator, Optional

from brunch_pos.config import BUSY_TIMEOUT_MS, DB_PATH, OPEN_POLL_INTERVAL, OPEN_WAIT_TIMEOUT
from brunch_pos.db.schema import SCHEMA_VERSION, create_schema, seed_permissions
from brunch_pos.errors import ConstraintViolationError, DatabaseOpenError

logger = logging.getLogger(__name__)

_CORRUPTION_ERROR_NAMES = {"SQLITE_CORRUPT", "SQLITE_NOTADB"}
_CORRUPTION_MARKERS = ("file is not a database", "malformed", "corrupt")


def is_corruption_error(exc: BaseException) -> bool:
    """True when an sqlite error means the file on disk is unusable."""
    if not isinstance(exc, sqlite3.DatabaseError):
        return False
    if getattr(exc, "sqlite_errorname", "") in _CORRUPTION_ERROR_NAMES:
        return True
    msg = str(exc).lower()
    return any(marker in msg for marker in _CORRUPTION_MARKERS)


class ConnectionState(enum.Enum):
    CLOSED = "closed"
    OPENING = "opening"
    READY = "ready"


class Database:
    """
    Owns the single shared SQLite connection of the process.

    State machine: CLOSED -> OPENING -> READY; READY -> CLOSED on reset();
    READY -> OPENING again when the liveness probe fails.
    - Concurrent callers that find the state OPENING poll until it settles
      instead of opening the same file a second time.
    - A corrupted file is deleted and recreated exactly once per open.
    """

    def __init__(
        self,
        db_path: Optional[Path] = None,
        busy_timeout_ms: int = BUSY_TIMEOUT_MS,
        open_wait_timeout: float = OPEN_WAIT_TIMEOUT,
        poll_interval: float = OPEN_POLL_INTERVAL,
    ):
        self.db_path = Path(db_path) if db_path else Path(DB_PATH)
        self.busy_timeout_ms = int(busy_timeout_ms)
        self.open_wait_timeout = float(open_wait_timeout)
        self.poll_interval = float(poll_interval)

        self.conn: Optional[sqlite3.Connection] = None
        self.state = ConnectionState.CLOSED
        self._initialized = False
        self._state_lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #
    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def get_connection(self) -> sqlite3.Connection:
        """Return the live shared connection, opening or reopening it as needed."""
        conn = self.conn
        if conn is not None and self.state is ConnectionState.READY:
            try:
                conn.execute("SELECT 1;").fetchone()
                return conn
            except sqlite3.Error as exc:
                logger.warning("Connection probe failed for %s, reopening: %s", self.db_path, exc)
                self._discard(conn)

        with self._state_lock:
            if self.state is ConnectionState.READY and self.conn is not None:
                return self.conn
            must_wait = self.state is ConnectionState.OPENING
            if not must_wait:
                self.state = ConnectionState.OPENING

        if must_wait:
            return self._wait_for_open()

        try:
            conn = self._open_with_recovery()
        except Exception:
            with self._state_lock:
                self.conn = None
                self.state = ConnectionState.CLOSED
                self._initialized = False
            raise

        with self._state_lock:
            self.conn = conn
            self.state = ConnectionState.READY
        return conn

    def initialize(self) -> bool:
        """
        Create schema, run migrations and seed the permission catalog.
        Runs once; later calls are no-ops until reset() or a recreate.
        Returns True when the work actually ran.
        """
        if self._initialized:
            return False
        conn = self.get_connection()
        create_schema(conn)
        self._migrate_if_needed()
        seed_permissions(conn)
        self._initialized = True
        logger.info("Database %s initialized (schema v%d)", self.db_path, SCHEMA_VERSION)
        return True

    def reset(self) -> None:
        """Close and forget the connection; the next call rebuilds everything."""
        with self._state_lock:
            conn = self.conn
            self.conn = None
            self.state = ConnectionState.CLOSED
            self._initialized = False
        if conn is not None:
            try:
                conn.close()
            except sqlite3.Error as exc:
                logger.warning("Error closing database during reset: %s", exc)
        logger.info("Database connection reset")

    # ------------------------------------------------------------------ #
    # Opening
    # ------------------------------------------------------------------ #
    def _discard(self, conn: sqlite3.Connection) -> None:
        with self._state_lock:
            if self.conn is conn:
                self.conn = None
                self.state = ConnectionState.CLOSED
                self._initialized = False
        try:
            conn.close()
        except sqlite3.Error:
            logger.debug("Ignoring close error on a dead connection", exc_info=True)

    def _wait_for_open(self) -> sqlite3.Connection:
        deadline = time.monotonic() + self.open_wait_timeout
        while self.state is ConnectionState.OPENING:
            if time.monotonic() >= deadline:
                raise DatabaseOpenError(
                    f"Timed out after {self.open_wait_timeout:.1f}s waiting for {self.db_path} to open"
                )
            time.sleep(self.poll_interval)
        if self.state is ConnectionState.READY and self.conn is not None:
            return self.conn
        # The other caller failed; try once ourselves so the error reaches this caller too.
        return self.get_connection()

    def _open_connection(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=self.busy_timeout_ms / 1000.0,
            check_same_thread=False,
        )
        try:
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON;")
            conn.execute("PRAGMA journal_mode = WAL;")
            conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms};")
            # Forces a read of the file header and schema page.
            conn.execute("SELECT COUNT(*) FROM sqlite_master;").fetchone()
        except Exception:
            conn.close()
            raise
        logger.info("Database connection established: %s", self.db_path)
        return conn

    def _open_with_recovery(self) -> sqlite3.Connection:
        try:
            return self._open_connection()
        except sqlite3.DatabaseError as exc:
            if not is_corruption_error(exc):
                raise
            logger.warning("Database %s is corrupted (%s); deleting and recreating", self.db_path, exc)

        self._delete_files()
        conn = self._open_connection()
        try:
            create_schema(conn)
        except Exception:
            conn.close()
            raise
        self._initialized = False
        logger.info("Database %s recreated", self.db_path)
        return conn

    def _delete_files(self) -> None:
        for suffix in ("", "-wal", "-shm", "-journal"):
            path = Path(str(self.db_path) + suffix)
            path.unlink(missing_ok=True)

    # ------------------------------------------------------------------ #
    # Statements
    # ------------------------------------------------------------------ #
    def execute(self, sql: str, params: Iterable[Any] = ()) -> int:
        """Execute SQL statement with parameters (with commit). Returns affected rows."""
        conn = self.get_connection()
        try:
            cur = conn.execute(sql, tuple(params))
            conn.commit()
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            raise ConstraintViolationError(str(exc)) from exc
        return int(cur.rowcount)

    def execute_id(self, sql: str, params: Iterable[Any] = ()) -> int:
        """Execute INSERT and return last row ID."""
        conn = self.get_connection()
        try:
            cur = conn.execute(sql, tuple(params))
            conn.commit()
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            raise ConstraintViolationError(str(exc)) from exc
        return int(cur.lastrowid)

    def fetchone(self, sql: str, params: Iterable[Any] = ()) -> Optional[dict[str, Any]]:
        """Fetch single row."""
        cur = self.get_connection().execute(sql, tuple(params))
        r = cur.fetchone()
        return dict(r) if r is not None else None

    def fetchall(self, sql: str, params: Iterable[Any] = ()) -> list[dict[str, Any]]:
        """Fetch all rows."""
        cur = self.get_connection().execute(sql, tuple(params))
        return [dict(r) for r in cur.fetchall()]

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Commit every statement in the block together, or none of them."""
        conn = self.get_connection()
        try:
            with conn:
                yield conn
        except sqlite3.IntegrityError as exc:
            raise ConstraintViolationError(str(exc)) from exc

    # ------------------------------------------------------------------ #
    # Migrations
    # ------------------------------------------------------------------ #
    def _table_columns(self, table: str) -> set[str]:
        """Get set of column names for a table using PRAGMA."""
        rows = self.fetchall(f"PRAGMA table_info({table});")
        return {r["name"] for r in rows}

    def _table_exists(self, table: str) -> bool:
        r = self.fetchone(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?;",
            (table,),
        )
        return r is not None

    def _add_column_if_missing(self, table: str, col: str, coldef: str) -> None:
        if col in self._table_columns(table):
            return
        try:
            self.execute(f"ALTER TABLE {table} ADD COLUMN {col} {coldef};")
            logger.info("Migrated %s: added column %s", table, col)
        except sqlite3.OperationalError as exc:
            # Another process may have added it between the check and the ALTER.
            logger.debug("ALTER TABLE %s ADD COLUMN %s skipped: %s", table, col, exc)

    def user_version(self) -> int:
        r = self.get_connection().execute("PRAGMA user_version;").fetchone()
        return int(r[0]) if r else 0

    def _migrate_if_needed(self) -> None:
        """
        Bring files written by earlier releases up to SCHEMA_VERSION.
        Only adds columns; idempotent.
        """
        version = self.user_version()
        if version >= SCHEMA_VERSION:
            return

        # v1 -> v2: sales gained business/user attribution, costing items a unit
        if self._table_exists("sales"):
            self._add_column_if_missing("sales", "business_name", "TEXT")
            self._add_column_if_missing("sales", "user_id", "INTEGER REFERENCES users(id)")
        if self._table_exists("costing_items"):
            self._add_column_if_missing("costing_items", "unit_of_measure", "TEXT")
        if self._table_exists("inventory_items"):
            self._add_column_if_missing("inventory_items", "min_stock", "REAL NOT NULL DEFAULT 0")

        self.execute(f"PRAGMA user_version = {SCHEMA_VERSION};")
        logger.info("Schema migrated from v%d to v%d", version, SCHEMA_VERSION)

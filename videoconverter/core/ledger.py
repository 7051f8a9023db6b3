"""
Processing ledger: which videos are done, plus an append-only error log.
Two backends share one set of queries:
- SqliteLedger: local runs and tests
- PostgresLedger: production (psycopg2)
"""

import sqlite3
import logging
from datetime import datetime, timezone
from pathlib import Path

import psycopg2
from psycopg2.extras import RealDictCursor

from videoconverter.core.constants import (
    DbBackend, MAX_ERROR_DETAILS_LEN, POSTGRES_CONNECT_TIMEOUT,
)
from videoconverter.core.error_codes import PersistenceError
from videoconverter.core.models import ErrorRecord

logger = logging.getLogger(__name__)

_SCHEMA_VERSION = 1

# OverflowError: ints outside the 64-bit INTEGER range fail at bind time
_SQLITE_ERRORS = (sqlite3.Error, OverflowError)

_SQLITE_TABLES = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS processed_videos (
    video_id INTEGER PRIMARY KEY,
    processed_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS process_errors (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    video_id INTEGER NOT NULL,
    message TEXT NOT NULL,
    details TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_process_errors_video_id ON process_errors(video_id);
"""

_POSTGRES_TABLES = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS processed_videos (
    video_id BIGINT PRIMARY KEY,
    processed_at TIMESTAMPTZ NOT NULL
);

CREATE TABLE IF NOT EXISTS process_errors (
    id SERIAL PRIMARY KEY,
    video_id BIGINT NOT NULL,
    message TEXT NOT NULL,
    details TEXT,
    created_at TIMESTAMPTZ NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_process_errors_video_id ON process_errors(video_id);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _as_iso(value) -> str | None:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class Ledger:
    """
    Queries shared by every backend.  Subclasses supply the connection,
    the placeholder style and _fetch_one/_fetch_all/_write.
    """

    placeholder = "?"

    def _fetch_one(self, sql: str, params: tuple):
        raise NotImplementedError

    def _fetch_all(self, sql: str, params: tuple) -> list[dict]:
        raise NotImplementedError

    def _write(self, sql: str, params: tuple):
        raise NotImplementedError

    def close(self):
        raise NotImplementedError

    def _sql(self, sql: str) -> str:
        return sql.replace("?", self.placeholder)

    # ── Processed records ─────────────────────────────────────────────

    def is_processed(self, video_id: int) -> bool:
        row = self._fetch_one(
            self._sql("SELECT 1 FROM processed_videos WHERE video_id = ?"),
            (video_id,),
        )
        return row is not None

    def mark_processed(self, video_id: int):
        # ON CONFLICT keeps the first processed_at
        self._write(
            self._sql(
                "INSERT INTO processed_videos (video_id, processed_at) VALUES (?, ?) "
                "ON CONFLICT (video_id) DO NOTHING"
            ),
            (video_id, _now()),
        )

    # ── Error log ─────────────────────────────────────────────────────

    def register_error(self, video_id: int, message: str, details: str = "",
                       timestamp: str | None = None) -> bool:
        """
        Append an error record.  Best effort: a failure here is logged and
        never raised.  Returns True if the record was stored.
        """
        try:
            self._write(
                self._sql(
                    "INSERT INTO process_errors (video_id, message, details, created_at) "
                    "VALUES (?, ?, ?, ?)"
                ),
                (video_id, message, (details or "")[:MAX_ERROR_DETAILS_LEN],
                 timestamp or _now()),
            )
        except PersistenceError as e:
            logger.error("Failed to persist error for video_id=%s: %s", video_id, e)
            return False
        return True

    def get_errors(self, video_id: int | None = None) -> list[ErrorRecord]:
        sql = "SELECT video_id, message, details, created_at FROM process_errors"
        params: tuple = ()
        if video_id is not None:
            sql += " WHERE video_id = ?"
            params = (video_id,)
        sql += " ORDER BY id"
        rows = self._fetch_all(self._sql(sql), params)
        return [
            ErrorRecord(
                video_id=r['video_id'],
                message=r['message'],
                details=r['details'] or "",
                time=_as_iso(r['created_at']),
            )
            for r in rows
        ]


class SqliteLedger(Ledger):
    """SQLite ledger, created on first open."""

    placeholder = "?"

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(str(self.db_path))
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA journal_mode=WAL")
            self._migrate()
        except (OSError, sqlite3.Error) as e:
            raise PersistenceError(f"Failed to open ledger {self.db_path}: {e}") from e
        logger.info("Opened sqlite ledger: %s", self.db_path)

    def _migrate(self):
        cur = self.conn.cursor()
        cur.executescript(_SQLITE_TABLES)
        cur.execute(
            "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
            (_SCHEMA_VERSION,),
        )
        self.conn.commit()

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None

    def _fetch_one(self, sql, params):
        try:
            return self.conn.execute(sql, params).fetchone()
        except _SQLITE_ERRORS as e:
            raise PersistenceError(f"Ledger read failed: {e}") from e

    def _fetch_all(self, sql, params):
        try:
            return [dict(r) for r in self.conn.execute(sql, params).fetchall()]
        except _SQLITE_ERRORS as e:
            raise PersistenceError(f"Ledger read failed: {e}") from e

    def _write(self, sql, params):
        try:
            self.conn.execute(sql, params)
            self.conn.commit()
        except _SQLITE_ERRORS as e:
            try:
                self.conn.rollback()
            except sqlite3.Error as rb:
                logger.warning("Rollback failed: %s", rb)
            raise PersistenceError(f"Ledger write failed: {e}") from e


class PostgresLedger(Ledger):
    """PostgreSQL ledger.  Connects and pings on construction."""

    placeholder = "%s"

    def __init__(self, **conn_params):
        self.conn_params = dict(conn_params)
        self.conn_params.setdefault('connect_timeout', POSTGRES_CONNECT_TIMEOUT)
        where = f"{self.conn_params.get('host')}/{self.conn_params.get('dbname')}"

        try:
            self.conn = psycopg2.connect(**self.conn_params)
        except psycopg2.Error as e:
            logger.error("Error connecting to postgres database %s", where)
            raise PersistenceError(f"Failed to connect to {where}: {e}") from e

        try:
            self._ping()
            self._migrate()
        except psycopg2.Error as e:
            logger.error("Could not ping the database %s", where)
            self.close()
            raise PersistenceError(f"Database {where} unavailable: {e}") from e

        logger.info("Connected successfully to database %s", where)

    def _ping(self):
        with self.conn.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        self.conn.rollback()

    def _migrate(self):
        with self.conn.cursor() as cursor:
            cursor.execute(_POSTGRES_TABLES)
            cursor.execute(
                "INSERT INTO schema_version (version) VALUES (%s) "
                "ON CONFLICT (version) DO NOTHING",
                (_SCHEMA_VERSION,),
            )
        self.conn.commit()

    def close(self):
        if self.conn:
            self.conn.close()
            self.conn = None

    def _rollback_quietly(self):
        try:
            self.conn.rollback()
        except psycopg2.Error as e:
            logger.warning("Rollback failed: %s", e)

    def _fetch_one(self, sql, params):
        try:
            with self.conn.cursor() as cursor:
                cursor.execute(sql, params)
                row = cursor.fetchone()
            self.conn.rollback()
            return row
        except psycopg2.Error as e:
            self._rollback_quietly()
            raise PersistenceError(f"Ledger read failed: {e}") from e

    def _fetch_all(self, sql, params):
        try:
            with self.conn.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(sql, params)
                rows = [dict(r) for r in cursor.fetchall()]
            self.conn.rollback()
            return rows
        except psycopg2.Error as e:
            self._rollback_quietly()
            raise PersistenceError(f"Ledger read failed: {e}") from e

    def _write(self, sql, params):
        try:
            with self.conn.cursor() as cursor:
                cursor.execute(sql, params)
            self.conn.commit()
        except psycopg2.Error as e:
            self._rollback_quietly()
            raise PersistenceError(f"Ledger write failed: {e}") from e


def open_ledger(config) -> Ledger:
    """Open the ledger backend selected by config.db_backend."""
    if config.db_backend == DbBackend.SQLITE:
        return SqliteLedger(config.sqlite_path)
    return PostgresLedger(**config.postgres_params())

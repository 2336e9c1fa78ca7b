"""SQLite-backed durable key-value store.

Persists the oracle cache map, the feedback audit log and the per-record
vote markers to a local SQLite database (``data/oracle.db`` by default).
Uses sync ``sqlite3`` on purpose: the request coordinator writes through
to the store inside its dedup window, which must not yield to the event
loop.  Each value is a tiny JSON blob, so blocking is negligible.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

import structlog

from sigil_oracle.interfaces.durable_store import IDurableStore
from sigil_oracle.utils.errors import PersistenceError
from sigil_oracle.utils.logging import get_logger

_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS {table} (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""

_UPSERT_SQL = """\
INSERT INTO {table} (key, value)
VALUES (?, ?)
ON CONFLICT(key)
DO UPDATE SET value      = excluded.value,
              updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now');
"""

_SELECT_SQL = "SELECT value FROM {table} WHERE key = ?;"

# ESCAPE lets prefixes contain literal "%" and "_".
_KEYS_SQL = "SELECT key FROM {table} WHERE key LIKE ? ESCAPE '\\' ORDER BY key;"


def _like_prefix(prefix: str) -> str:
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}%"


class SQLiteDurableStore(IDurableStore):
    """Key-value store in a single SQLite table.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.  Parent directories are created
        by :meth:`initialize`.
    table_name:
        Table to use, so several stores can share one database file.
    """

    def __init__(self, db_path: str | Path, table_name: str = "kv_store") -> None:
        self._db_path = Path(db_path)
        self._table = table_name
        self._initialized = False
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """Create the table if needed.  Safe to call more than once."""
        if self._initialized:
            return
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = self._connect()
            try:
                conn.execute(_CREATE_TABLE_SQL.format(table=self._table))
                conn.commit()
            finally:
                conn.close()
        except (OSError, sqlite3.Error) as exc:
            raise PersistenceError(
                message=f"Cannot open durable store at {self._db_path}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        self._initialized = True
        self._logger.info(
            "durable_store_initialized",
            db_path=str(self._db_path),
            table=self._table,
        )

    # ------------------------------------------------------------------
    # IDurableStore implementation
    # ------------------------------------------------------------------

    def get(self, key: str) -> str | None:
        row = self._execute(_SELECT_SQL, (key,), fetch="one")
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        self._execute(_UPSERT_SQL, (key, value), commit=True)

    def keys(self, prefix: str = "") -> list[str]:
        rows = self._execute(_KEYS_SQL, (_like_prefix(prefix),), fetch="all")
        return [row[0] for row in rows]

    def get_provider_name(self) -> str:
        return f"sqlite_durable_store:{self._table}"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _connect(self) -> sqlite3.Connection:
        """Open a new SQLite connection with WAL mode for concurrency."""
        conn = sqlite3.connect(str(self._db_path))
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _execute(
        self,
        sql: str,
        params: tuple[str, ...],
        *,
        commit: bool = False,
        fetch: str | None = None,
    ):  # noqa: ANN202
        self.initialize()
        try:
            conn = self._connect()
            try:
                cursor = conn.execute(sql.format(table=self._table), params)
                if commit:
                    conn.commit()
                if fetch == "one":
                    return cursor.fetchone()
                if fetch == "all":
                    return cursor.fetchall()
                return None
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise PersistenceError(
                message=f"SQLite error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

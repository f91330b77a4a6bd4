"""SQLite-backed alert store with schema migrations."""

from __future__ import annotations

import enum
import os
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from types import TracebackType

ZERO_TIME = datetime.min.replace(tzinfo=timezone.utc)


class AlertLevel(enum.StrEnum):
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    DEFER = "defer"


@dataclass
class Alert:
    id: int
    target: str
    reason: str
    level: str
    sticky: bool
    created_at: datetime


def parse_timestamp(s: str) -> datetime:
    """Parse a stored timestamp as UTC; unparseable input gives ZERO_TIME."""
    if len(s) < 19 or s[10] not in " T":
        return ZERO_TIME
    try:
        parsed = datetime.fromisoformat(s)
    except ValueError:
        return ZERO_TIME
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


_SEVERITY_SQL = (
    "(CASE {col} WHEN 'error' THEN 3 WHEN 'warn' THEN 2 WHEN 'info' THEN 1 ELSE 0 END)"
)

_UPSERT_SQL = f"""
    INSERT INTO alerts (target, reason, level, sticky, created_at)
    VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)
    ON CONFLICT(target) DO UPDATE SET
        reason     = excluded.reason,
        level      = excluded.level,
        sticky     = excluded.sticky,
        created_at = excluded.created_at
    WHERE {_SEVERITY_SQL.format(col="excluded.level")}
        >= {_SEVERITY_SQL.format(col="alerts.level")}
"""

_SELECT_SQL = "SELECT id, target, reason, level, sticky, created_at FROM alerts"


def _row_to_alert(row: tuple) -> Alert:
    alert_id, target, reason, level, sticky, created_at = row
    return Alert(
        id=alert_id,
        target=target,
        reason=reason,
        level=level,
        sticky=bool(sticky),
        created_at=parse_timestamp(str(created_at)),
    )


class Database:
    """Alert storage over an open SQLite connection."""

    def __init__(self, connection: sqlite3.Connection) -> None:
        connection.isolation_level = None
        self.connection = connection

    def __enter__(self) -> Database:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self.connection.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self.connection
        conn.execute("BEGIN")
        try:
            yield conn
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")

    def _user_version(self) -> int:
        return self.connection.execute("PRAGMA user_version").fetchone()[0]

    def migrate(self) -> None:
        """Bring the schema up to the current version."""
        version = self._user_version()

        if version < 1:
            with self._transaction() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS alerts (
                        id         INTEGER PRIMARY KEY AUTOINCREMENT,
                        target     TEXT NOT NULL UNIQUE,
                        reason     TEXT NOT NULL,
                        level      TEXT NOT NULL,
                        created_at DATETIME NOT NULL DEFAULT CURRENT_TIMESTAMP
                    )
                    """
                )
                conn.execute("PRAGMA user_version = 1")
            version = 1

        if version < 2:
            with self._transaction() as conn:
                columns = {row[1] for row in conn.execute("PRAGMA table_info(alerts)")}
                if "sticky" not in columns:
                    conn.execute(
                        "ALTER TABLE alerts ADD COLUMN sticky BOOLEAN NOT NULL DEFAULT 0"
                    )
                conn.execute("PRAGMA user_version = 2")

    def alert_set(self, target: str, reason: str, level: str, sticky: bool) -> None:
        """Create or replace an alert; a lower-severity level never replaces a higher one."""
        self.connection.execute(_UPSERT_SQL, (target, reason, str(level), int(sticky)))

    def alert_remove(self, target: str) -> None:
        self.connection.execute("DELETE FROM alerts WHERE target = ?", (target,))

    def alert_upgrade_to_sticky(self, target: str) -> None:
        """Mark an existing alert sticky; no-op when the target has none."""
        self.connection.execute("UPDATE alerts SET sticky = 1 WHERE target = ?", (target,))

    def alert_remove_if_not_sticky(self, target: str) -> None:
        """Remove the alert unless it is sticky; no-op when absent."""
        self.connection.execute(
            "DELETE FROM alerts WHERE target = ? AND sticky = 0", (target,)
        )

    def alert_list(self) -> list[Alert]:
        rows = self.connection.execute(f"{_SELECT_SQL} ORDER BY created_at ASC")
        return [_row_to_alert(row) for row in rows]

    def alert_by_target(self, target: str) -> Alert | None:
        row = self.connection.execute(f"{_SELECT_SQL} WHERE target = ?", (target,)).fetchone()
        return _row_to_alert(row) if row is not None else None


def open_db(path: str | os.PathLike[str]) -> Database:
    """Open (creating if needed) and migrate the database at path or ':memory:'."""
    location = os.fspath(path)
    if location == ":memory:":
        conn = sqlite3.connect(location, isolation_level=None)
    else:
        Path(location).parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        conn = sqlite3.connect(location, timeout=5.0, isolation_level=None)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=5000")
    database = Database(conn)
    try:
        database.migrate()
    except BaseException:
        conn.close()
        raise
    return database


def default_path() -> str:
    """Return ~/.local/share/demux/state.db."""
    return str(Path.home() / ".local" / "share" / "demux" / "state.db")
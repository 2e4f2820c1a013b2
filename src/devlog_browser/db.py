"""SQLite storage for events received by the local sink."""

from __future__ import annotations

import sqlite3
from collections import defaultdict
from contextlib import contextmanager
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Iterator

from .models import EVENT_TYPE, ActiveSpanEvent, parse_timestamp, span_duration_seconds
from .normalization import summary_label


class DuplicateEventError(ValueError):
    """An event with the same ``event_id`` is already stored."""


def open_database(path: Path, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(
    path: Path, *, check_same_thread: bool = True
) -> Iterator[sqlite3.Connection]:
    conn = open_database(path, check_same_thread=check_same_thread)
    try:
        yield conn
    finally:
        conn.close()


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS events (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            event_id TEXT NOT NULL UNIQUE,
            type TEXT NOT NULL,
            source TEXT NOT NULL,
            schema_version INTEGER NOT NULL,
            start_ts TEXT NOT NULL,
            end_ts TEXT NOT NULL,
            url TEXT,
            title TEXT,
            payload TEXT NOT NULL,
            received_at TEXT NOT NULL
        );

        CREATE INDEX IF NOT EXISTS idx_events_type_start
            ON events(type, start_ts);
        """
    )


def insert_event(conn: sqlite3.Connection, event: ActiveSpanEvent, payload: str) -> None:
    received_at = datetime.now(timezone.utc).isoformat()
    try:
        conn.execute(
            """
            INSERT INTO events (
                event_id, type, source, schema_version, start_ts, end_ts,
                url, title, payload, received_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.event_id,
                event.type,
                event.source,
                event.schema_version,
                event.start_ts,
                event.end_ts,
                event.url,
                event.title,
                payload,
                received_at,
            ),
        )
    except sqlite3.IntegrityError as exc:
        if "UNIQUE" in str(exc):
            raise DuplicateEventError("event_id already exists") from exc
        raise


def count_events(conn: sqlite3.Connection) -> int:
    row = conn.execute("SELECT COUNT(*) AS total FROM events").fetchone()
    return int(row["total"])


def browser_durations_by_title(conn: sqlite3.Connection, day: date) -> dict[str, int]:
    """Seconds per title (or URL) for browser spans starting on ``day`` in local time."""
    rows = conn.execute(
        """
        SELECT title, url, start_ts, end_ts
        FROM events
        WHERE type = ?
        ORDER BY start_ts
        """,
        (EVENT_TYPE,),
    )
    totals: defaultdict[str, int] = defaultdict(int)
    for row in rows:
        if parse_timestamp(row["start_ts"]).astimezone().date() != day:
            continue
        key = summary_label(row["title"] or "", row["url"] or "")
        totals[key] += span_duration_seconds(row["start_ts"], row["end_ts"])
    return dict(totals)

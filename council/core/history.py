"""Persistent spend history.

Appends end-of-run ledger summaries to a local SQLite database.
Provides query methods for the `council report` command.
"""

import json
import logging
import sqlite3
import time
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from .models import LedgerReport

logger = logging.getLogger(__name__)

_HISTORY_DIR = Path.home() / ".config" / "council"
_HISTORY_FILE = _HISTORY_DIR / "history.db"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS sessions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp REAL NOT NULL,
    date TEXT NOT NULL,
    session_id TEXT NOT NULL,
    label TEXT NOT NULL DEFAULT '',
    sandbox INTEGER NOT NULL DEFAULT 0,
    transaction_count INTEGER NOT NULL DEFAULT 0,
    total_tokens INTEGER NOT NULL DEFAULT 0,
    total_cost REAL NOT NULL DEFAULT 0,
    final_balance REAL NOT NULL DEFAULT 0,
    by_tier_json TEXT NOT NULL DEFAULT '{}'
);

CREATE INDEX IF NOT EXISTS idx_sessions_date ON sessions(date);
"""


class HistoryEntry(BaseModel):
    """A single recorded session."""

    timestamp: float
    date: str
    session_id: str
    label: str
    sandbox: bool
    transaction_count: int
    total_tokens: int
    total_cost: float
    final_balance: float
    by_tier: dict[str, Any]


def _get_connection() -> sqlite3.Connection:
    """Get a connection to the history database, creating it if needed."""
    _HISTORY_FILE.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(_HISTORY_FILE))
    conn.row_factory = sqlite3.Row
    conn.executescript(_SCHEMA)
    return conn


def record_report(report: LedgerReport, label: str = "", sandbox: bool = False) -> None:
    """Append a final report summary to the history.

    Sessions with no transactions are skipped. Never raises.
    """
    summary = report.summary
    if summary.transaction_count == 0:
        return

    try:
        conn = _get_connection()
        try:
            now = time.time()
            conn.execute(
                """
                INSERT INTO sessions
                    (timestamp, date, session_id, label, sandbox, transaction_count,
                     total_tokens, total_cost, final_balance, by_tier_json)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    now,
                    datetime.fromtimestamp(now).strftime("%Y-%m-%d"),
                    summary.session_id,
                    label,
                    int(sandbox),
                    summary.transaction_count,
                    summary.total_tokens,
                    summary.total_cost,
                    summary.final_balance,
                    json.dumps(
                        {tier: totals.model_dump() for tier, totals in report.by_tier.items()}
                    ),
                ),
            )
            conn.commit()
        finally:
            conn.close()
    except (sqlite3.Error, OSError) as e:
        logger.debug(f"Failed to record session to history: {e}")


def query_entries(days: int | None = 7, limit: int = 20) -> list[HistoryEntry]:
    """Recorded sessions, newest first.

    Args:
        days: Number of days to look back (None = all time)
        limit: Max entries to return
    """
    try:
        conn = _get_connection()
    except (sqlite3.Error, OSError):
        return []

    try:
        where = ""
        params: list[Any] = []
        if days is not None:
            where = "WHERE timestamp >= ?"
            params.append(time.time() - days * 86400)
        params.append(limit)

        rows = conn.execute(
            f"""
            SELECT * FROM sessions
            {where}
            ORDER BY timestamp DESC, id DESC
            LIMIT ?
            """,
            params,
        ).fetchall()

        entries = []
        for row in rows:
            try:
                by_tier = json.loads(row["by_tier_json"])
            except (json.JSONDecodeError, TypeError):
                by_tier = {}
            entries.append(
                HistoryEntry(
                    timestamp=row["timestamp"],
                    date=row["date"],
                    session_id=row["session_id"],
                    label=row["label"],
                    sandbox=bool(row["sandbox"]),
                    transaction_count=row["transaction_count"],
                    total_tokens=row["total_tokens"],
                    total_cost=row["total_cost"],
                    final_balance=row["final_balance"],
                    by_tier=by_tier,
                )
            )
        return entries
    finally:
        conn.close()


def query_totals(days: int | None = 7) -> dict[str, Any]:
    """Aggregated spend across recorded sessions."""
    try:
        conn = _get_connection()
    except (sqlite3.Error, OSError):
        return {"sessions": 0, "total_calls": 0, "total_tokens": 0, "total_cost": 0.0}

    try:
        where = ""
        params: list[Any] = []
        if days is not None:
            where = "WHERE timestamp >= ?"
            params.append(time.time() - days * 86400)

        row = conn.execute(
            f"""
            SELECT
                COUNT(*) as sessions,
                SUM(transaction_count) as calls,
                SUM(total_tokens) as tokens,
                SUM(total_cost) as cost
            FROM sessions
            {where}
            """,
            params,
        ).fetchone()

        return {
            "sessions": row["sessions"] or 0,
            "total_calls": row["calls"] or 0,
            "total_tokens": row["tokens"] or 0,
            "total_cost": round(row["cost"] or 0.0, 4),
        }
    finally:
        conn.close()

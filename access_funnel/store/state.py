"""SQLite-backed funnel progress persistence."""
from __future__ import annotations

import json
import sqlite3
import threading
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path

INIT_SQL = """
CREATE TABLE IF NOT EXISTS funnel_progress (
    session_key TEXT PRIMARY KEY,
    current_command_index INTEGER NOT NULL DEFAULT 0,
    completed_commands TEXT NOT NULL DEFAULT '[]',
    command_responses TEXT NOT NULL DEFAULT '{}',
    last_updated TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS funnel_completion (
    session_key TEXT PRIMARY KEY,
    completed_at TEXT NOT NULL DEFAULT (datetime('now')),
    completion_data TEXT NOT NULL DEFAULT '{}'
);

CREATE TABLE IF NOT EXISTS referral_codes (
    code TEXT PRIMARY KEY,
    owner_session_key TEXT NOT NULL UNIQUE,
    usage_count INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS referral_usage (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    referral_code TEXT NOT NULL,
    used_by_session_key TEXT NOT NULL UNIQUE,
    used_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS funnel_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_key TEXT NOT NULL,
    command TEXT NOT NULL,
    response TEXT,
    command_index INTEGER NOT NULL,
    timestamp TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


def _now() -> str:
    return datetime.now(tz=UTC).strftime("%Y-%m-%d %H:%M:%S")


class ProgressStore:
    """Progress Store collaborator. Safe to call from worker threads."""

    def __init__(self, db_path: str | Path):
        self.db = sqlite3.connect(str(db_path), check_same_thread=False)
        self._lock = threading.Lock()
        self.db.execute("PRAGMA journal_mode = WAL")
        self.db.executescript(INIT_SQL)

    def load_state(self, session_key: str) -> dict[str, Any]:
        """Return {progress?, completion?, referral_code?}; no keys means a fresh session."""
        result: dict[str, Any] = {}
        progress = self.get_progress(session_key)
        if progress:
            result["progress"] = progress
        completion = self.get_completion(session_key)
        if completion:
            result["completion"] = completion
        code = self.get_referral_code(session_key)
        if code:
            result["referral_code"] = code
        return result

    def get_progress(self, session_key: str) -> dict[str, Any] | None:
        with self._lock:
            row = self.db.execute(
                "SELECT current_command_index, completed_commands, command_responses, last_updated "
                "FROM funnel_progress WHERE session_key = ?",
                (session_key,),
            ).fetchone()
        if not row:
            return None
        return {
            "current_command_index": row[0],
            "completed_commands": json.loads(row[1]),
            "command_responses": json.loads(row[2]),
            "last_updated": row[3],
        }

    def save_progress(
        self,
        session_key: str,
        index: int,
        completed: list[str],
        responses: dict[str, str],
    ) -> None:
        """Upsert progress. A write behind the stored index is ignored, so late writes never move it back."""
        with self._lock:
            self.db.execute(
                """INSERT INTO funnel_progress
                   (session_key, current_command_index, completed_commands, command_responses, last_updated)
                   VALUES (?, ?, ?, ?, ?)
                   ON CONFLICT(session_key) DO UPDATE SET
                       current_command_index = excluded.current_command_index,
                       completed_commands = excluded.completed_commands,
                       command_responses = excluded.command_responses,
                       last_updated = excluded.last_updated
                   WHERE excluded.current_command_index >= funnel_progress.current_command_index""",
                (session_key, index, json.dumps(list(completed)), json.dumps(dict(responses)), _now()),
            )
            self.db.commit()

    def get_completion(self, session_key: str) -> dict[str, Any] | None:
        with self._lock:
            row = self.db.execute(
                "SELECT completed_at, completion_data FROM funnel_completion WHERE session_key = ?",
                (session_key,),
            ).fetchone()
        if not row:
            return None
        return {"completed_at": row[0], "completion_data": json.loads(row[1])}

    def mark_completion(self, session_key: str, completion_data: dict[str, Any]) -> bool:
        """Record completion once. Returns False when a record already existed."""
        with self._lock:
            cursor = self.db.execute(
                "INSERT OR IGNORE INTO funnel_completion (session_key, completed_at, completion_data) "
                "VALUES (?, ?, ?)",
                (session_key, _now(), json.dumps(completion_data, ensure_ascii=False)),
            )
            self.db.commit()
        return cursor.rowcount > 0

    def get_referral_code(self, session_key: str) -> str | None:
        with self._lock:
            row = self.db.execute(
                "SELECT code FROM referral_codes WHERE owner_session_key = ?", (session_key,)
            ).fetchone()
        return row[0] if row else None

    def save_referral_code(self, session_key: str, code: str) -> str:
        """Bind a code to its owner; an owner keeps the first code it was given."""
        with self._lock:
            self.db.execute(
                "INSERT OR IGNORE INTO referral_codes (code, owner_session_key, created_at) VALUES (?, ?, ?)",
                (code, session_key, _now()),
            )
            self.db.commit()
            row = self.db.execute(
                "SELECT code FROM referral_codes WHERE owner_session_key = ?", (session_key,)
            ).fetchone()
        if not row:
            raise sqlite3.IntegrityError(f"Referral code {code} already belongs to another session")
        return row[0]

    def track_referral_use(self, session_key: str, code: str) -> bool:
        """Count one use of an existing code by someone other than its owner."""
        with self._lock:
            row = self.db.execute(
                "SELECT owner_session_key FROM referral_codes WHERE code = ?", (code,)
            ).fetchone()
            if not row or row[0] == session_key:
                return False
            cursor = self.db.execute(
                "INSERT OR IGNORE INTO referral_usage (referral_code, used_by_session_key, used_at) "
                "VALUES (?, ?, ?)",
                (code, session_key, _now()),
            )
            if cursor.rowcount > 0:
                self.db.execute(
                    "UPDATE referral_codes SET usage_count = usage_count + 1 WHERE code = ?", (code,)
                )
            self.db.commit()
        return cursor.rowcount > 0

    def get_referral_stats(self, session_key: str) -> dict[str, Any]:
        with self._lock:
            row = self.db.execute(
                "SELECT code, usage_count FROM referral_codes WHERE owner_session_key = ?",
                (session_key,),
            ).fetchone()
            used = self.db.execute(
                "SELECT referral_code FROM referral_usage WHERE used_by_session_key = ?",
                (session_key,),
            ).fetchone()
        return {
            "code": row[0] if row else None,
            "usage_count": row[1] if row else 0,
            "referred_by": used[0] if used else None,
        }

    def add_history(self, session_key: str, command: str, response: str | None, index: int) -> None:
        with self._lock:
            self.db.execute(
                "INSERT INTO funnel_history (session_key, command, response, command_index, timestamp) "
                "VALUES (?, ?, ?, ?, ?)",
                (session_key, command, response, index, _now()),
            )
            self.db.commit()

    def get_history(self, session_key: str, limit: int = 20) -> list[dict]:
        with self._lock:
            rows = self.db.execute(
                "SELECT id, command, response, command_index, timestamp "
                "FROM funnel_history WHERE session_key = ? ORDER BY id DESC LIMIT ?",
                (session_key, limit),
            ).fetchall()
        return [
            {"id": r[0], "command": r[1], "response": r[2], "index": r[3], "timestamp": r[4]}
            for r in rows
        ]

    def get_funnel_stats(self) -> dict[str, int]:
        with self._lock:
            total = self.db.execute("SELECT COUNT(*) FROM funnel_progress").fetchone()[0]
            completed = self.db.execute("SELECT COUNT(*) FROM funnel_completion").fetchone()[0]
        return {"total_sessions": total, "completed_sessions": completed}

    def close(self) -> None:
        with self._lock:
            self.db.close()

"""SQLite-backed description cache."""

import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path

from toolrpc_server.cache.provider import ToolDescriptionCacheProvider
from toolrpc_server.cache.types import ToolDescription, utcnow

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS tool_descriptions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    provider_model TEXT NOT NULL,
    tool_name TEXT NOT NULL,
    description TEXT NOT NULL,
    parameters_info TEXT NOT NULL DEFAULT '',
    tool_properties TEXT NOT NULL DEFAULT '',
    generation_time_ms INTEGER NOT NULL DEFAULT 0,
    usage_count INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    last_used_at TEXT,
    UNIQUE (provider_model, tool_name)
);

CREATE INDEX IF NOT EXISTS idx_tool_descriptions_model
    ON tool_descriptions(provider_model);
"""

UPSERT_SQL = """
INSERT INTO tool_descriptions (
    provider_model, tool_name, description, parameters_info,
    tool_properties, generation_time_ms, usage_count, created_at
) VALUES (?, ?, ?, ?, ?, ?, 0, ?)
ON CONFLICT (provider_model, tool_name) DO UPDATE SET
    description = excluded.description,
    parameters_info = excluded.parameters_info,
    tool_properties = excluded.tool_properties,
    generation_time_ms = excluded.generation_time_ms
"""


def _parse_timestamp(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class SQLiteCacheProvider(ToolDescriptionCacheProvider):
    """Persistent provider storing one row per (provider model, tool name).

    The connection is shared between request handling and the usage worker
    thread, so every statement runs under a lock.

    Args:
        path: Database file, or ``":memory:"``.
    """

    backend = "sqlite"

    def __init__(self, path: str | Path = ":memory:") -> None:
        super().__init__()
        db_path = str(path)
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.path = db_path
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        if db_path != ":memory:":
            self.conn.execute("PRAGMA journal_mode=WAL")
            self.conn.execute("PRAGMA busy_timeout=5000")
        self._lock = threading.Lock()
        with self._lock:
            self.conn.executescript(SCHEMA_SQL)
            self.conn.commit()
        logger.info(f"Opened description cache: {db_path}")

    def _lookup(self, provider_model: str, tool_name: str) -> ToolDescription | None:
        with self._lock:
            row = self.conn.execute(
                "SELECT * FROM tool_descriptions WHERE provider_model = ? AND tool_name = ?",
                (provider_model, tool_name),
            ).fetchone()
        if row is None:
            return None
        return ToolDescription(
            provider_model=row["provider_model"],
            tool_name=row["tool_name"],
            description=row["description"],
            parameters_info=row["parameters_info"],
            tool_properties=row["tool_properties"],
            generation_time_ms=row["generation_time_ms"],
            usage_count=row["usage_count"],
            created_at=_parse_timestamp(row["created_at"]) or utcnow(),
            last_used_at=_parse_timestamp(row["last_used_at"]),
        )

    def _store(self, record: ToolDescription) -> None:
        with self._lock, self.conn:
            self.conn.execute(
                UPSERT_SQL,
                (
                    record.provider_model,
                    record.tool_name,
                    record.description,
                    record.parameters_info,
                    record.tool_properties,
                    record.generation_time_ms,
                    record.created_at.isoformat(),
                ),
            )

    def _increment_usage(self, provider_model: str, tool_name: str) -> None:
        with self._lock, self.conn:
            cursor = self.conn.execute(
                "UPDATE tool_descriptions SET usage_count = usage_count + 1, "
                "last_used_at = ? WHERE provider_model = ? AND tool_name = ?",
                (utcnow().isoformat(), provider_model, tool_name),
            )
        if cursor.rowcount == 0:
            logger.debug(f"No cached record to count usage for {provider_model}/{tool_name}")

    def _count(self) -> int:
        with self._lock:
            row = self.conn.execute("SELECT COUNT(*) FROM tool_descriptions").fetchone()
        return int(row[0])

    def _clear(self, provider_model: str) -> int:
        with self._lock, self.conn:
            cursor = self.conn.execute(
                "DELETE FROM tool_descriptions WHERE provider_model = ?",
                (provider_model,),
            )
        return cursor.rowcount

    def close(self) -> None:
        super().close()
        with self._lock:
            self.conn.close()
        logger.debug(f"Closed description cache: {self.path}")

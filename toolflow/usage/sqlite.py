"""SQLite implementation of the usage sink."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from ..contracts import ToolUsageRecord
from .sink import UsageSink


class SQLiteUsageSink(UsageSink):
    """Persist tool usage using SQLite."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = asyncio.Lock()
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS tool_usage (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                tool_name TEXT NOT NULL,
                workflow_id TEXT,
                execution_id TEXT,
                input TEXT,
                output TEXT,
                success INTEGER NOT NULL,
                error TEXT,
                duration_ms INTEGER NOT NULL,
                created_at TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    def _execute(self, query: str, *params: Any) -> None:
        cur = self._conn.cursor()
        cur.execute(query, params)
        self._conn.commit()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        cur = self._conn.cursor()
        cur.execute(query, params)
        return cur.fetchall()

    # ------------------------------------------------------------------
    # Sink API
    async def log_usage(self, record: ToolUsageRecord) -> None:
        async with self._lock:
            await asyncio.to_thread(
                self._execute,
                """
                INSERT INTO tool_usage
                (tool_name, workflow_id, execution_id, input, output, success, error, duration_ms, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                record.tool_name,
                record.workflow_id,
                record.execution_id,
                json.dumps(record.input, default=str),
                json.dumps(record.output, default=str) if record.output is not None else None,
                int(record.success),
                record.error,
                record.duration_ms,
                record.created_at.isoformat(),
            )

    async def list_usage(
        self, limit: int = 100, tool_name: Optional[str] = None
    ) -> list[ToolUsageRecord]:
        query = "SELECT * FROM tool_usage"
        params: list[Any] = []
        if tool_name is not None:
            query += " WHERE tool_name = ?"
            params.append(tool_name)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(limit)
        async with self._lock:
            rows = await asyncio.to_thread(self._fetchall, query, *params)
        return [
            ToolUsageRecord(
                tool_name=r["tool_name"],
                workflow_id=r["workflow_id"],
                execution_id=r["execution_id"],
                input=json.loads(r["input"]) if r["input"] else None,
                output=json.loads(r["output"]) if r["output"] else None,
                success=bool(r["success"]),
                error=r["error"],
                duration_ms=r["duration_ms"],
                created_at=datetime.fromisoformat(r["created_at"]),
            )
            for r in rows
        ]

    def close(self) -> None:
        self._conn.close()

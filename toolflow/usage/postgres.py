"""PostgreSQL implementation of the usage sink."""

from __future__ import annotations

import json
from typing import Optional

import asyncpg

from ..contracts import ToolUsageRecord
from .sink import UsageSink


class PostgresUsageSink(UsageSink):
    """Persist tool usage using PostgreSQL."""

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS tool_usage (
                id SERIAL PRIMARY KEY,
                tool_name TEXT NOT NULL,
                workflow_id TEXT,
                execution_id TEXT,
                input JSONB,
                output JSONB,
                success BOOLEAN NOT NULL,
                error TEXT,
                duration_ms INTEGER NOT NULL,
                created_at TIMESTAMPTZ NOT NULL
            )
            """
        )

    async def log_usage(self, record: ToolUsageRecord) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO tool_usage
                (tool_name, workflow_id, execution_id, input, output, success, error, duration_ms, created_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                """,
                record.tool_name,
                record.workflow_id,
                record.execution_id,
                json.dumps(record.input, default=str),
                json.dumps(record.output, default=str) if record.output is not None else None,
                record.success,
                record.error,
                record.duration_ms,
                record.created_at,
            )
        finally:
            await conn.close()

    async def list_usage(
        self, limit: int = 100, tool_name: Optional[str] = None
    ) -> list[ToolUsageRecord]:
        conn = await self._connect()
        try:
            if tool_name is None:
                rows = await conn.fetch(
                    "SELECT * FROM tool_usage ORDER BY id DESC LIMIT $1", limit
                )
            else:
                rows = await conn.fetch(
                    "SELECT * FROM tool_usage WHERE tool_name = $1 ORDER BY id DESC LIMIT $2",
                    tool_name,
                    limit,
                )
        finally:
            await conn.close()
        return [
            ToolUsageRecord(
                tool_name=r["tool_name"],
                workflow_id=r["workflow_id"],
                execution_id=r["execution_id"],
                input=json.loads(r["input"]) if r["input"] else None,
                output=json.loads(r["output"]) if r["output"] else None,
                success=r["success"],
                error=r["error"],
                duration_ms=r["duration_ms"],
                created_at=r["created_at"],
            )
            for r in rows
        ]

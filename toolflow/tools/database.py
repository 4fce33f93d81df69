"""Structured SQL tool backed by a pluggable executor."""

from __future__ import annotations

import asyncio
import re
import sqlite3
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, Tuple

from ..errors import ToolExecutionError
from ..registry import DATABASE, ToolRegistry
from .base import require_field

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SqlExecutor(Protocol):
    """Runs one parameterized statement and returns its rows."""

    async def execute(self, sql: str, params: Sequence[Any]) -> Tuple[List[Dict[str, Any]], int]:
        """Return ``(rows, row_count)``."""


class SqlQueryBuilder:
    """Builds parameterized CRUD statements from a structured request.

    Identifiers are validated and values are always bound, never inlined.
    ``placeholder`` renders the n-th (1-based) parameter marker, ``?`` by
    default; pass ``lambda n: f"${n}"`` for PostgreSQL.
    """

    def __init__(self, placeholder=lambda n: "?") -> None:
        self._placeholder = placeholder

    @staticmethod
    def _ident(name: str) -> str:
        if not isinstance(name, str) or not _IDENTIFIER.match(name):
            raise ToolExecutionError(f"Invalid SQL identifier: {name!r}", "database_query")
        return name

    def _where(self, filters: Optional[Mapping[str, Any]], params: List[Any]) -> str:
        if not filters:
            return ""
        conditions = []
        for key, value in filters.items():
            params.append(value)
            conditions.append(f"{self._ident(key)} = {self._placeholder(len(params))}")
        return " WHERE " + " AND ".join(conditions)

    def build(
        self,
        operation: str,
        table: str,
        filters: Optional[Mapping[str, Any]] = None,
        data: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[str, List[Any]]:
        table = self._ident(table)
        params: List[Any] = []

        if operation == "select":
            return f"SELECT * FROM {table}" + self._where(filters, params), params

        if operation == "insert":
            if not data:
                raise ToolExecutionError("insert requires 'data'", "database_query")
            columns = [self._ident(k) for k in data]
            params.extend(data.values())
            markers = ", ".join(self._placeholder(i) for i in range(1, len(columns) + 1))
            sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({markers}) RETURNING *"
            return sql, params

        if operation == "update":
            if not data:
                raise ToolExecutionError("update requires 'data'", "database_query")
            assignments = []
            for key, value in data.items():
                params.append(value)
                assignments.append(f"{self._ident(key)} = {self._placeholder(len(params))}")
            sql = f"UPDATE {table} SET {', '.join(assignments)}" + self._where(filters, params)
            return sql + " RETURNING *", params

        if operation == "delete":
            sql = f"DELETE FROM {table}" + self._where(filters, params)
            return sql + " RETURNING *", params

        raise ToolExecutionError(f"Unsupported database operation: {operation}", "database_query")


class SQLiteExecutor:
    """Execute statements against a SQLite file in a worker thread."""

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = asyncio.Lock()

    def _run(self, sql: str, params: Sequence[Any]) -> Tuple[List[Dict[str, Any]], int]:
        cur = self._conn.cursor()
        cur.execute(sql, tuple(params))
        rows = [dict(r) for r in cur.fetchall()] if cur.description else []
        self._conn.commit()
        count = len(rows) if cur.rowcount == -1 else max(cur.rowcount, len(rows))
        return rows, count

    async def execute(self, sql: str, params: Sequence[Any]) -> Tuple[List[Dict[str, Any]], int]:
        async with self._lock:
            return await asyncio.to_thread(self._run, sql, params)

    def close(self) -> None:
        self._conn.close()


class UnconfiguredExecutor:
    """Placeholder used when no database is configured."""

    async def execute(self, sql: str, params: Sequence[Any]) -> Tuple[List[Dict[str, Any]], int]:
        raise ToolExecutionError("No database configured for database_query", "database_query")


def register(
    registry: ToolRegistry,
    executor: SqlExecutor,
    builder: Optional[SqlQueryBuilder] = None,
) -> None:
    builder = builder or SqlQueryBuilder()

    @registry.tool(DATABASE, "database_query")
    async def database_query(tool_input: Dict[str, Any]) -> Dict[str, Any]:
        operation = require_field(tool_input, "operation", "database_query")
        table = require_field(tool_input, "table", "database_query")
        sql, params = builder.build(
            operation, table, tool_input.get("filter"), tool_input.get("data")
        )
        rows, count = await executor.execute(sql, params)
        return {"data": rows, "count": count}

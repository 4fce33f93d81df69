"""Sink abstraction for tool usage records."""

from __future__ import annotations

from typing import Optional, Protocol

from ..contracts import ToolUsageRecord


class UsageSink(Protocol):
    """Protocol for tool usage backends.

    Every call is an independent append, so one sink may be shared by
    concurrent runs.
    """

    async def log_usage(self, record: ToolUsageRecord) -> None:
        """Append one usage record."""

    async def list_usage(
        self, limit: int = 100, tool_name: Optional[str] = None
    ) -> list[ToolUsageRecord]:
        """Return the most recent records, newest first."""

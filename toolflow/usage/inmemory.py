"""In-memory implementation of the usage sink."""

from __future__ import annotations

from typing import List, Optional

from ..contracts import ToolUsageRecord
from .sink import UsageSink


class InMemoryUsageSink(UsageSink):
    """Keep usage records in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts.
    """

    def __init__(self) -> None:
        self.records: List[ToolUsageRecord] = []

    async def log_usage(self, record: ToolUsageRecord) -> None:
        self.records.append(record)

    async def list_usage(
        self, limit: int = 100, tool_name: Optional[str] = None
    ) -> list[ToolUsageRecord]:
        matching = [r for r in self.records if tool_name is None or r.tool_name == tool_name]
        return list(reversed(matching))[:limit]

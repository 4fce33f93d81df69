"""Tool usage sinks."""

from __future__ import annotations

import os
from typing import Optional

from ..config import ToolflowConfig, load_config
from .inmemory import InMemoryUsageSink
from .sink import UsageSink
from .sqlite import SQLiteUsageSink

try:  # pragma: no cover - optional dependency
    from .postgres import PostgresUsageSink
except ImportError:  # pragma: no cover - optional dependency
    PostgresUsageSink = None  # type: ignore


def get_usage_sink(
    database_url: Optional[str] = None, config: Optional[ToolflowConfig] = None
) -> UsageSink:
    """Factory function to obtain a usage sink.

    The backend is selected based on ``database_url`` which can be provided
    explicitly, via environment variable ``TOOLFLOW_DATABASE_URL`` or
    ``DATABASE_URL``, or from loaded configuration. When no database is
    configured, an in-memory sink is returned.
    """

    config = config or load_config()
    database_url = (
        database_url
        or os.getenv("TOOLFLOW_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or config.database_url
    )

    if not database_url:
        return InMemoryUsageSink()

    if database_url.startswith("sqlite://"):
        return SQLiteUsageSink(database_url.replace("sqlite://", "", 1))
    if database_url.startswith(("postgres://", "postgresql://")):
        if PostgresUsageSink is None:
            raise RuntimeError("Postgres support not available")
        return PostgresUsageSink(database_url)
    raise ValueError(f"Unsupported database backend: {database_url}")


__all__ = [
    "UsageSink",
    "InMemoryUsageSink",
    "SQLiteUsageSink",
    "PostgresUsageSink",
    "get_usage_sink",
]

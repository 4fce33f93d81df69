"""Built-in tool handlers and registry wiring."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional

import httpx

from ..config import ToolflowConfig
from ..registry import AI_SALES, CRM, LEAD_GENERATION, SOCIAL_LISTENING, ToolCatalog, ToolRegistry
from . import code, control, data, database, filesystem, network, platforms
from .catalog import builtin_tools, default_catalog
from .database import SQLiteExecutor, SqlExecutor, SqlQueryBuilder, UnconfiguredExecutor
from .platforms import AitableClient, MuraenaClient, PlatformClient


def build_registry(
    config: Optional[ToolflowConfig] = None,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
    sql_executor: Optional[SqlExecutor] = None,
    platform_clients: Optional[Mapping[str, PlatformClient]] = None,
) -> ToolRegistry:
    """Create a registry holding every built-in handler.

    Collaborators not passed explicitly are derived from ``config``: the
    workspace directory for file and code tools, ``tools.sql_database`` for
    ``database_query`` and platform API keys for the CRM and lead clients.
    """
    config = config or ToolflowConfig()
    workspace = Path(config.tools.workspace_dir)
    registry = ToolRegistry()

    if sql_executor is None:
        if config.tools.sql_database:
            sql_executor = SQLiteExecutor(config.tools.sql_database)
        else:
            sql_executor = UnconfiguredExecutor()

    clients: dict = {
        CRM: AitableClient(
            config.platforms.aitable_api_key, config.platforms.aitable_base_url, http_client
        ),
        LEAD_GENERATION: MuraenaClient(
            config.platforms.muraena_api_key, config.platforms.muraena_base_url, http_client
        ),
        SOCIAL_LISTENING: None,
        AI_SALES: None,
    }
    clients.update(platform_clients or {})

    filesystem.register(registry, workspace)
    code.register(registry, workspace, config.tools.allowed_languages)
    network.register(registry, http_client)
    database.register(registry, sql_executor)
    control.register(registry)
    data.register(registry)
    platforms.register(registry, clients)
    return registry


def build_catalog(config: Optional[ToolflowConfig] = None) -> ToolCatalog:
    """Return the built-in catalog, extended by ``tools.catalog_path`` if set."""
    catalog = default_catalog()
    if config is not None and config.tools.catalog_path:
        for tool in ToolCatalog.from_file(config.tools.catalog_path):
            catalog.register(tool)
    return catalog


__all__ = [
    "AitableClient",
    "MuraenaClient",
    "PlatformClient",
    "SQLiteExecutor",
    "SqlExecutor",
    "SqlQueryBuilder",
    "build_catalog",
    "build_registry",
    "builtin_tools",
    "default_catalog",
]

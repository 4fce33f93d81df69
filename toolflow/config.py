from __future__ import annotations

import os
from typing import List, Optional

import yaml
from pydantic import BaseModel

from .constants import DEFAULT_CACHE_TTL_SECONDS


class EngineConfig(BaseModel):
    """Execution behaviour switches."""

    strict_templates: bool = False
    retry_terminal_errors: bool = True


class ToolsConfig(BaseModel):
    """Settings for the built-in tool handlers."""

    catalog_path: Optional[str] = None
    workspace_dir: str = "."
    sql_database: Optional[str] = None
    allowed_languages: List[str] = ["python", "shell"]


class PlatformsConfig(BaseModel):
    """Credentials for platform integrations."""

    aitable_api_key: Optional[str] = None
    aitable_base_url: str = "https://aitable.ai/fusion/v1"
    muraena_api_key: Optional[str] = None
    muraena_base_url: str = "https://api.muraena.ai/v1"


class ToolflowConfig(BaseModel):
    """Top-level configuration model."""

    engine: EngineConfig = EngineConfig()
    tools: ToolsConfig = ToolsConfig()
    platforms: PlatformsConfig = PlatformsConfig()
    cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS
    database_url: Optional[str] = None


# (env variables, config section or None for top level, field); first set variable wins
_ENV_OVERRIDES = [
    (("TOOLFLOW_DATABASE_URL", "DATABASE_URL"), None, "database_url"),
    (("TOOLFLOW_WORKSPACE",), "tools", "workspace_dir"),
    (("AITABLE_API_KEY",), "platforms", "aitable_api_key"),
    (("MURAENA_API_KEY",), "platforms", "muraena_api_key"),
]


def _apply_env_overrides(config: ToolflowConfig) -> None:
    for names, section, field in _ENV_OVERRIDES:
        value = next((os.environ[name] for name in names if os.environ.get(name)), None)
        if value is not None:
            setattr(getattr(config, section) if section else config, field, value)


def load_config(path: Optional[str] = None) -> ToolflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to TOOLFLOW_CONFIG env
            variable or 'toolflow.yaml' in the current directory.

    Values from the environment (see ``_ENV_OVERRIDES``) take precedence over
    the file.
    """

    config_path = path or os.getenv("TOOLFLOW_CONFIG", "toolflow.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = ToolflowConfig(**data)
    else:
        config = ToolflowConfig()

    _apply_env_overrides(config)
    return config

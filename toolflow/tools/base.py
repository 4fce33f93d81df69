"""Input helpers shared by the built-in handlers."""

from __future__ import annotations

from typing import Any, Mapping

from ..errors import ToolExecutionError


def as_mapping(tool_input: Any, tool_name: str) -> Mapping[str, Any]:
    if not isinstance(tool_input, Mapping):
        raise ToolExecutionError(
            f"{tool_name} expects an object input, got {type(tool_input).__name__}", tool_name
        )
    return tool_input


def require_field(tool_input: Any, key: str, tool_name: str) -> Any:
    """Return ``tool_input[key]``, failing the tool when it is absent."""
    data = as_mapping(tool_input, tool_name)
    value = data.get(key)
    if value is None:
        raise ToolExecutionError(f"{tool_name} requires '{key}'", tool_name)
    return value

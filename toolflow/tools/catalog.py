"""Built-in tool definitions."""

from __future__ import annotations

from typing import List

from ..contracts import ToolDefinition
from ..registry import CODE, CONTROL, DATA, DATABASE, FILESYSTEM, NETWORK, ToolCatalog
from .platforms import PLATFORM_TOOLS

_BUILTIN = [
    (FILESYSTEM, "read_file", "Read a text file from the workspace"),
    (FILESYSTEM, "write_file", "Write or append text to a workspace file"),
    (FILESYSTEM, "list_directory", "List entries of a workspace directory"),
    (CODE, "execute_code", "Run a Python or shell snippet in a subprocess"),
    (NETWORK, "http_request", "Perform an HTTP request"),
    (DATABASE, "database_query", "Select, insert, update or delete table rows"),
    (CONTROL, "conditional_branch", "Evaluate a condition and report the branch taken"),
    (CONTROL, "wait_delay", "Pause for a number of milliseconds"),
    (CONTROL, "loop_iteration", "Report the items of a list to iterate over"),
    (DATA, "transform_data", "Apply extract, map and filter operations to data"),
]


def builtin_tools() -> List[ToolDefinition]:
    tools = [
        ToolDefinition(name=name, category=category, description=description)
        for category, name, description in _BUILTIN
    ]
    for category, names in PLATFORM_TOOLS.items():
        tools.extend(ToolDefinition(name=name, category=category) for name in names)
    return tools


def default_catalog() -> ToolCatalog:
    """Catalog containing every tool shipped with toolflow."""
    return ToolCatalog(builtin_tools())

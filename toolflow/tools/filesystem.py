"""File read/write tools confined to a workspace directory."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict

from ..errors import ToolExecutionError
from ..registry import FILESYSTEM, ToolRegistry
from .base import as_mapping, require_field


class PathTraversalError(ValueError):
    """Raised when a requested path would escape the workspace."""


def safe_join(base: Path, relative: str) -> Path:
    """Join ``relative`` onto ``base`` without leaving ``base``."""
    base_resolved = base.resolve()
    rel_path = Path(relative)
    if rel_path.is_absolute():
        raise PathTraversalError(f"absolute paths not allowed: {relative}")
    candidate = (base_resolved / rel_path).resolve()
    if candidate == base_resolved or base_resolved in candidate.parents:
        return candidate
    raise PathTraversalError(f"path escapes workspace: {relative}")


def register(registry: ToolRegistry, workspace: str | Path) -> None:
    root = Path(workspace)

    def _target(tool_name: str, relative: str) -> Path:
        try:
            return safe_join(root, relative)
        except PathTraversalError as exc:
            raise ToolExecutionError(str(exc), tool_name) from exc

    @registry.tool(FILESYSTEM, "read_file")
    async def read_file(tool_input: Dict[str, Any]) -> Dict[str, Any]:
        relative = require_field(tool_input, "path", "read_file")
        encoding = tool_input.get("encoding", "utf-8")
        path = _target("read_file", relative)
        content = await asyncio.to_thread(path.read_text, encoding=encoding)
        return {"path": relative, "content": content, "size": len(content)}

    @registry.tool(FILESYSTEM, "write_file")
    async def write_file(tool_input: Dict[str, Any]) -> Dict[str, Any]:
        relative = require_field(tool_input, "path", "write_file")
        content = tool_input.get("content", "")
        if not isinstance(content, str):
            content = str(content)
        path = _target("write_file", relative)

        def _write() -> int:
            path.parent.mkdir(parents=True, exist_ok=True)
            mode = "a" if tool_input.get("append") else "w"
            with open(path, mode, encoding="utf-8") as f:
                return f.write(content)

        written = await asyncio.to_thread(_write)
        return {"path": relative, "bytes_written": written}

    @registry.tool(FILESYSTEM, "list_directory")
    async def list_directory(tool_input: Dict[str, Any]) -> Dict[str, Any]:
        relative = as_mapping(tool_input, "list_directory").get("path") or "."
        path = _target("list_directory", relative)

        def _list() -> list[dict]:
            entries = []
            for child in sorted(path.iterdir()):
                is_dir = child.is_dir()
                entries.append(
                    {
                        "name": child.name,
                        "type": "directory" if is_dir else "file",
                        "size": None if is_dir else child.stat().st_size,
                    }
                )
            return entries

        return {"path": relative, "entries": await asyncio.to_thread(_list)}

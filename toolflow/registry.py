"""Tool catalog and category-keyed handler registry."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

import yaml

from .contracts import ToolDefinition
from .errors import ToolExecutionError, ToolflowError, ToolNotFound, ToolNotImplemented

logger = logging.getLogger(__name__)

FILESYSTEM = "filesystem"
CODE = "code"
NETWORK = "network"
DATABASE = "database"
CONTROL = "control"
DATA = "data"
CRM = "crm"
LEAD_GENERATION = "lead_generation"
SOCIAL_LISTENING = "social_listening"
AI_SALES = "ai_sales"

HandlerFn = Callable[[Dict[str, Any]], Awaitable[Any]]


@dataclass(frozen=True)
class ToolHandler:
    """Binds one ``(category, name)`` pair to the coroutine that performs it."""

    category: str
    name: str
    fn: HandlerFn

    async def invoke(self, tool_input: Dict[str, Any]) -> Any:
        return await self.fn(tool_input)


class ToolCatalog:
    """Name to :class:`ToolDefinition` index consulted once per step."""

    def __init__(self, tools: Iterable[ToolDefinition] = ()) -> None:
        self._tools: Dict[str, ToolDefinition] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: ToolDefinition) -> None:
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def require(self, name: str) -> ToolDefinition:
        """Return the definition for ``name`` or raise :class:`ToolNotFound`."""
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFound(name)
        return tool

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    @classmethod
    def from_file(cls, path: str | Path) -> "ToolCatalog":
        """Load a catalog from a YAML or JSON file.

        The file holds either a list of tool entries or a mapping with a
        ``tools`` list, each entry carrying ``name`` and ``category``.
        """
        path = Path(path)
        text = path.read_text()
        data = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
        if isinstance(data, dict):
            data = data.get("tools", [])
        return cls(ToolDefinition.model_validate(entry) for entry in data or [])


async def generic_tool(tool: ToolDefinition, tool_input: Dict[str, Any]) -> Dict[str, Any]:
    """Acknowledge tools whose category has no handlers yet."""
    logger.warning(f"Executing generic tool: {tool.name} (category {tool.category!r})")
    return {"success": True, "message": f"Tool {tool.name} executed (placeholder)"}


class ToolRegistry:
    """Routes a tool invocation to the handler registered for it.

    Handlers are keyed by ``(category, name)``.  A category becomes "known"
    as soon as one handler is registered under it; requests for an unknown
    name inside a known category fail with :class:`ToolNotImplemented`, while
    tools of an unknown category fall through to :func:`generic_tool`.
    """

    def __init__(self) -> None:
        self._handlers: Dict[Tuple[str, str], ToolHandler] = {}
        self._categories: Dict[str, List[str]] = {}

    def register(self, handler: ToolHandler) -> ToolHandler:
        key = (handler.category, handler.name)
        if key in self._handlers:
            logger.warning(f"Replacing handler for {handler.category}/{handler.name}")
        else:
            self._categories.setdefault(handler.category, []).append(handler.name)
        self._handlers[key] = handler
        return handler

    def tool(self, category: str, name: str) -> Callable[[HandlerFn], HandlerFn]:
        """Decorator registering ``fn`` as the handler for ``category``/``name``."""

        def decorator(fn: HandlerFn) -> HandlerFn:
            self.register(ToolHandler(category=category, name=name, fn=fn))
            return fn

        return decorator

    def categories(self) -> List[str]:
        return list(self._categories)

    def names(self, category: str) -> List[str]:
        return list(self._categories.get(category, []))

    def lookup(self, tool: ToolDefinition) -> Optional[ToolHandler]:
        """Return the handler for ``tool``, ``None`` for unknown categories."""
        if tool.category not in self._categories:
            return None
        handler = self._handlers.get((tool.category, tool.name))
        if handler is None:
            raise ToolNotImplemented(tool.category, tool.name)
        return handler

    async def dispatch(self, tool: ToolDefinition, tool_input: Any) -> Any:
        """Invoke the handler for ``tool`` with the already-resolved input.

        Raises:
            ToolNotImplemented: The category is known but the name is not.
            ToolExecutionError: The handler failed.
        """
        handler = self.lookup(tool)
        if handler is None:
            return await generic_tool(tool, tool_input)
        try:
            return await handler.invoke(tool_input)
        except ToolflowError:
            raise
        except Exception as exc:
            raise ToolExecutionError(str(exc) or type(exc).__name__, tool.name) from exc

"""Exception hierarchy for toolflow."""

from __future__ import annotations

from typing import Iterable


class ToolflowError(Exception):
    """Base class for all engine errors."""


class WorkflowValidationError(ToolflowError):
    """Raised when a workflow definition cannot be loaded or is malformed."""


class ToolNotFound(ToolflowError):
    """A step references a tool that is not in the catalog."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Tool not found: {tool_name}")
        self.tool_name = tool_name


class ToolNotImplemented(ToolflowError):
    """The tool's category is known but its handler does not exist."""

    def __init__(self, category: str, tool_name: str) -> None:
        super().__init__(f"{category} tool not implemented: {tool_name}")
        self.category = category
        self.tool_name = tool_name


class ToolExecutionError(ToolflowError):
    """A handler failed while performing its side effect."""

    def __init__(self, message: str, tool_name: str | None = None) -> None:
        super().__init__(message)
        self.tool_name = tool_name


class ToolTimeoutError(ToolflowError, TimeoutError):
    """A tool invocation did not finish before its deadline."""

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"Tool execution timeout after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class UnresolvedVariableError(ToolflowError):
    """Strict template resolution found references missing from scope."""

    def __init__(self, paths: Iterable[str]) -> None:
        self.paths = list(dict.fromkeys(paths))
        super().__init__(f"Unresolved variables: {', '.join(self.paths)}")


#: Errors that will fail the same way on every attempt.
TERMINAL_ERRORS = (ToolNotFound, ToolNotImplemented, UnresolvedVariableError)

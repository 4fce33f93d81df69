"""Control-flow tools: branching, delays and iteration bookkeeping."""

from __future__ import annotations

import asyncio
from typing import Any, Dict

from ..errors import ToolExecutionError
from ..registry import CONTROL, ToolRegistry
from ..utils.expressions import evaluate_condition
from .base import require_field


def register(registry: ToolRegistry) -> None:
    @registry.tool(CONTROL, "conditional_branch")
    async def conditional_branch(tool_input: Dict[str, Any]) -> Dict[str, Any]:
        condition = require_field(tool_input, "condition", "conditional_branch")
        result = evaluate_condition(condition, tool_input.get("context") or {})
        return {"result": result, "branch": "true" if result else "false"}

    @registry.tool(CONTROL, "wait_delay")
    async def wait_delay(tool_input: Dict[str, Any]) -> Dict[str, Any]:
        duration = require_field(tool_input, "duration", "wait_delay")
        try:
            duration_ms = float(duration)
        except (TypeError, ValueError) as exc:
            raise ToolExecutionError(f"Invalid duration: {duration!r}", "wait_delay") from exc
        await asyncio.sleep(max(duration_ms, 0) / 1000)
        return {"waited": duration}

    # Reports the items only; the engine never fans out over them.
    @registry.tool(CONTROL, "loop_iteration")
    async def loop_iteration(tool_input: Dict[str, Any]) -> Dict[str, Any]:
        items = require_field(tool_input, "items", "loop_iteration")
        if not isinstance(items, list):
            raise ToolExecutionError("loop_iteration requires 'items' to be a list", "loop_iteration")
        return {"iterations": len(items), "results": items}

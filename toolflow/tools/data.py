"""Data transformation pipeline tool."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

from ..errors import ToolExecutionError
from ..registry import DATA, ToolRegistry
from ..resolver import extract_path
from ..utils.expressions import evaluate_condition
from .base import as_mapping


def apply_operations(data: Any, operations: List[Mapping[str, Any]]) -> Any:
    """Apply ``extract``/``map``/``filter`` operations to ``data`` in order.

    ``map`` and ``filter`` leave non-list values untouched. Unknown operation
    types are skipped.
    """
    result = data
    for operation in operations:
        op_type = operation.get("type")
        if op_type == "extract":
            result = extract_path(result, str(operation.get("path", "")))
        elif op_type == "map":
            if isinstance(result, list):
                path = str(operation.get("path", ""))
                result = [extract_path(item, path) for item in result]
        elif op_type == "filter":
            if isinstance(result, list):
                condition = operation.get("condition", "")
                result = [item for item in result if evaluate_condition(condition, item)]
    return result


def register(registry: ToolRegistry) -> None:
    @registry.tool(DATA, "transform_data")
    async def transform_data(tool_input: Dict[str, Any]) -> Dict[str, Any]:
        data = as_mapping(tool_input, "transform_data")
        operations = data.get("operations") or []
        if not isinstance(operations, list) or not all(isinstance(o, Mapping) for o in operations):
            raise ToolExecutionError("transform_data requires a list of operations", "transform_data")
        return {"result": apply_operations(data.get("data"), operations)}

"""toolflow: sequential tool-calling workflow execution."""

from .contracts import (
    ExecutionLogEntry,
    ExecutionResult,
    RetryPolicy,
    Step,
    ToolDefinition,
    ToolUsageRecord,
    WorkflowDefinition,
)
from .engine import RunContext, StepExecutor, WorkflowRunner
from .loader import load_workflow, parse_workflow
from .registry import ToolCatalog, ToolHandler, ToolRegistry
from .resolver import resolve
from .service import WorkflowService, create_service
from .usage import get_usage_sink

__version__ = "0.1.0"
__all__ = [
    "ExecutionLogEntry",
    "ExecutionResult",
    "RetryPolicy",
    "RunContext",
    "Step",
    "StepExecutor",
    "ToolCatalog",
    "ToolDefinition",
    "ToolHandler",
    "ToolRegistry",
    "ToolUsageRecord",
    "WorkflowDefinition",
    "WorkflowRunner",
    "WorkflowService",
    "create_service",
    "get_usage_sink",
    "load_workflow",
    "parse_workflow",
    "resolve",
]

"""Workflow execution engine for toolflow."""

from __future__ import annotations

import copy
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Mapping, MutableMapping, Optional

from .constants import DURATION_KEY
from .contracts import ExecutionLogEntry, ExecutionResult, Step, ToolUsageRecord, WorkflowDefinition
from .errors import TERMINAL_ERRORS
from .registry import ToolCatalog, ToolRegistry
from .resolver import resolve
from .usage import InMemoryUsageSink, UsageSink
from .utils.retry import with_retry
from .utils.timeout import with_timeout

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _error_message(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


@dataclass(frozen=True)
class RunContext:
    """Identifiers attached to every usage record of one run."""

    workflow_id: Optional[str] = None
    execution_id: Optional[str] = None


class StepExecutor:
    """Executes a single step: resolve, dispatch under a deadline, retry."""

    def __init__(
        self,
        catalog: ToolCatalog,
        registry: ToolRegistry,
        usage_sink: UsageSink | None = None,
        strict_templates: bool = False,
        retry_terminal_errors: bool = True,
    ) -> None:
        self._catalog = catalog
        self._registry = registry
        self._usage_sink = usage_sink if usage_sink is not None else InMemoryUsageSink()
        self._strict_templates = strict_templates
        self._retry_terminal_errors = retry_terminal_errors

    @property
    def usage_sink(self) -> UsageSink:
        return self._usage_sink

    def _is_retryable(self, exc: BaseException) -> bool:
        return self._retry_terminal_errors or not isinstance(exc, TERMINAL_ERRORS)

    async def execute_step(
        self, step: Step, scope: Mapping[str, Any], context: RunContext = RunContext()
    ) -> Dict[str, Any]:
        """Run ``step`` against ``scope`` with its retry policy.

        Returns:
            The tool result with ``_duration`` (milliseconds) added.

        Raises:
            ToolflowError: The error of the final attempt.
        """

        def on_retry(attempt: int, exc: Exception) -> None:
            logger.info(
                f"Step {step.id} attempt {attempt}/{step.retry_policy.max_attempts} failed: {exc}"
            )

        return await with_retry(
            lambda: self._attempt(step, scope, context),
            step.retry_policy,
            retryable=self._is_retryable,
            on_retry=on_retry,
        )

    async def _attempt(
        self, step: Step, scope: Mapping[str, Any], context: RunContext
    ) -> Dict[str, Any]:
        start = time.monotonic()
        resolved_input = resolve(step.input, scope, strict=self._strict_templates)
        tool = self._catalog.require(step.tool)

        try:
            result = await with_timeout(
                lambda: self._registry.dispatch(tool, resolved_input), step.timeout
            )
        except Exception as exc:
            await self._log_usage(
                step, context, resolved_input, None, _error_message(exc), _elapsed_ms(start)
            )
            raise

        await self._log_usage(step, context, resolved_input, result, None, _elapsed_ms(start))
        output = dict(result) if isinstance(result, Mapping) else {"result": result}
        output[DURATION_KEY] = _elapsed_ms(start)
        return output

    async def _log_usage(
        self,
        step: Step,
        context: RunContext,
        tool_input: Any,
        output: Any,
        error: Optional[str],
        duration_ms: int,
    ) -> None:
        record = ToolUsageRecord(
            tool_name=step.tool,
            workflow_id=context.workflow_id,
            execution_id=context.execution_id,
            input=tool_input,
            output=output,
            success=error is None,
            error=error,
            duration_ms=duration_ms,
        )
        try:
            await self._usage_sink.log_usage(record)
        except Exception as exc:
            logger.warning(f"Failed to record usage for tool {step.tool}: {exc}")


class WorkflowRunner:
    """Runs the steps of a workflow in order and assembles the result."""

    def __init__(self, executor: StepExecutor) -> None:
        self._executor = executor

    @property
    def executor(self) -> StepExecutor:
        return self._executor

    async def run(
        self,
        workflow: WorkflowDefinition,
        input: Optional[Mapping[str, Any]] = None,
        execution_id: Optional[str] = None,
    ) -> ExecutionResult:
        """Execute ``workflow`` once.

        ``input`` overrides workflow variables of the same name. Each call
        owns its scope, outputs and log; nothing is shared between runs.
        """
        start = time.monotonic()
        execution_id = execution_id or str(uuid.uuid4())
        context = RunContext(workflow_id=workflow.id, execution_id=execution_id)
        scope: MutableMapping[str, Any] = copy.deepcopy({**workflow.variables, **(input or {})})
        outputs: Dict[str, Any] = {}
        log: list[ExecutionLogEntry] = []
        error: Optional[str] = None

        logger.info(
            f"Starting workflow {workflow.name!r} ({len(workflow.steps)} steps) "
            f"execution_id={execution_id}"
        )
        for step in workflow.steps:
            entry = ExecutionLogEntry(step_id=step.id, step_name=step.name)
            log.append(entry)
            step_start = time.monotonic()

            try:
                step_result = await self._executor.execute_step(step, scope, context)
            except Exception as exc:
                message = _error_message(exc)
                entry.fail(message, _elapsed_ms(step_start))
                if step.on_error == "continue":
                    logger.warning(f"Step {step.id} failed, continuing: {message}")
                    outputs[step.id] = {"error": message}
                    scope[step.id] = {"error": message}
                    continue
                logger.error(f"Step {step.id} failed, stopping workflow: {message}")
                error = message
                break

            outputs[step.id] = step_result
            scope[step.id] = step_result
            entry.complete(step_result, step_result.get(DURATION_KEY))
            logger.info(f"Step {step.id} completed for execution_id={execution_id}")

        result = ExecutionResult(
            success=error is None,
            outputs=outputs,
            error=error,
            log=log,
            duration_ms=_elapsed_ms(start),
            execution_id=execution_id,
        )
        logger.info(
            f"Workflow {workflow.name!r} {'completed' if result.success else 'failed'} "
            f"in {result.duration_ms}ms execution_id={execution_id}"
        )
        return result

"""Run boundary: load a workflow, execute it and shape the response."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Mapping, Optional, Protocol

from pydantic import BaseModel

from .cache import TTLCache
from .config import ToolflowConfig
from .contracts import WorkflowDefinition
from .engine import StepExecutor, WorkflowRunner
from .loader import parse_workflow
from .tools import build_catalog, build_registry
from .usage import UsageSink, get_usage_sink

logger = logging.getLogger(__name__)


class StoredWorkflow(BaseModel):
    """A workflow held by a store together with its run statistics."""

    definition: WorkflowDefinition
    execution_count: int = 0
    success_count: int = 0
    failure_count: int = 0


class WorkflowStore(Protocol):
    """Source of stored workflows, keyed by workflow id."""

    async def get_workflow(self, workflow_id: str) -> Optional[StoredWorkflow]:
        """Return the stored workflow or ``None``."""

    async def record_outcome(self, workflow_id: str, success: bool) -> None:
        """Count one finished execution."""


class InMemoryWorkflowStore(WorkflowStore):
    """Workflow store backed by a dict."""

    def __init__(self) -> None:
        self._workflows: Dict[str, StoredWorkflow] = {}

    async def save(self, workflow: WorkflowDefinition | Mapping[str, Any]) -> str:
        definition = parse_workflow(workflow)
        workflow_id = definition.id or str(uuid.uuid4())
        if definition.id != workflow_id:
            definition = definition.model_copy(update={"id": workflow_id})
        self._workflows[workflow_id] = StoredWorkflow(definition=definition)
        return workflow_id

    async def get_workflow(self, workflow_id: str) -> Optional[StoredWorkflow]:
        return self._workflows.get(workflow_id)

    async def record_outcome(self, workflow_id: str, success: bool) -> None:
        stored = self._workflows.get(workflow_id)
        if stored is None:
            return
        stored.execution_count += 1
        if success:
            stored.success_count += 1
        else:
            stored.failure_count += 1


class WorkflowNotFound(LookupError):
    """Raised when ``workflow_id`` is not present in the store."""


class WorkflowService:
    """Executes workflows on behalf of a caller.

    Responses for a given idempotency key are cached for the lifetime of the
    injected :class:`TTLCache`, so a retried request does not run the
    workflow twice.
    """

    def __init__(
        self,
        runner: WorkflowRunner,
        workflows: Optional[WorkflowStore] = None,
        cache: Optional[TTLCache[Dict[str, Any]]] = None,
    ) -> None:
        self._runner = runner
        self._workflows = workflows
        self._cache = cache

    async def execute(
        self,
        workflow: WorkflowDefinition | Mapping[str, Any] | None = None,
        workflow_id: Optional[str] = None,
        input: Optional[Mapping[str, Any]] = None,
        idempotency_key: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Run a workflow and return ``{success, executionId, outputs, error, log, duration}``.

        Raises:
            ValueError: Neither or both of ``workflow`` and ``workflow_id`` given.
            WorkflowNotFound: ``workflow_id`` is unknown to the store.
            WorkflowValidationError: An inline workflow is malformed.
        """
        if (workflow is None) == (workflow_id is None):
            raise ValueError("Exactly one of workflow or workflow_id is required")

        if idempotency_key and self._cache is not None:
            cached = self._cache.get(idempotency_key)
            if cached is not None:
                logger.info(f"Returning cached response for idempotency key {idempotency_key}")
                return cached

        if workflow_id is not None:
            if self._workflows is None:
                raise WorkflowNotFound(f"No workflow store configured for {workflow_id}")
            stored = await self._workflows.get_workflow(workflow_id)
            if stored is None:
                raise WorkflowNotFound(f"Workflow not found: {workflow_id}")
            definition = stored.definition
        else:
            definition = parse_workflow(workflow)

        execution_id = str(uuid.uuid4())
        result = await self._runner.run(definition, input=input, execution_id=execution_id)

        if workflow_id is not None and self._workflows is not None:
            await self._workflows.record_outcome(workflow_id, result.success)

        response = result.to_response()
        if idempotency_key and self._cache is not None:
            self._cache.set(idempotency_key, response)
        return response


def create_service(
    config: ToolflowConfig,
    usage_sink: Optional[UsageSink] = None,
    workflows: Optional[WorkflowStore] = None,
    **registry_kwargs: Any,
) -> WorkflowService:
    """Wire catalog, registry, executor, runner and cache from ``config``."""
    executor = StepExecutor(
        catalog=build_catalog(config),
        registry=build_registry(config, **registry_kwargs),
        usage_sink=usage_sink if usage_sink is not None else get_usage_sink(config=config),
        strict_templates=config.engine.strict_templates,
        retry_terminal_errors=config.engine.retry_terminal_errors,
    )
    return WorkflowService(
        WorkflowRunner(executor),
        workflows=workflows,
        cache=TTLCache(config.cache_ttl_seconds),
    )

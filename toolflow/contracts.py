"""Core data contracts for toolflow workflows."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .constants import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_ON_ERROR,
    DEFAULT_RETRY_DELAY_MS,
    DEFAULT_STEP_TIMEOUT_MS,
)

OnErrorPolicy = Literal["stop", "continue"]
StepStatus = Literal["running", "completed", "failed"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RetryPolicy(BaseModel):
    """Bounded retry with linear backoff."""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    delay_ms: int = Field(default=DEFAULT_RETRY_DELAY_MS, ge=0)


class Step(BaseModel):
    """Defines one step in a workflow."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str
    tool: str = Field(min_length=1)
    input: Any = Field(default_factory=dict)
    on_error: OnErrorPolicy = DEFAULT_ON_ERROR
    retry: Optional[RetryPolicy] = None
    timeout: int = Field(default=DEFAULT_STEP_TIMEOUT_MS, gt=0)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _default_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("name") and data.get("id"):
            data = {**data, "name": data["id"]}
        return data

    @property
    def retry_policy(self) -> RetryPolicy:
        """Effective retry policy, a single attempt when none is declared."""
        return self.retry or RetryPolicy()


class WorkflowDefinition(BaseModel):
    """An ordered list of steps plus workflow-level variables."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    name: str
    description: Optional[str] = None
    steps: List[Step] = Field(default_factory=list)
    variables: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _unique_step_ids(self) -> "WorkflowDefinition":
        seen: set[str] = set()
        for step in self.steps:
            if step.id in seen:
                raise ValueError(f"Duplicate step id: {step.id}")
            seen.add(step.id)
        return self

    def step_ids(self) -> List[str]:
        return [step.id for step in self.steps]


class ToolDefinition(BaseModel):
    """Catalog entry naming a tool and the category that handles it."""

    model_config = ConfigDict(frozen=True)

    name: str
    category: str
    description: Optional[str] = None


class ExecutionLogEntry(BaseModel):
    """Audit record for one attempted step."""

    step_id: str
    step_name: str
    status: StepStatus = "running"
    timestamp: datetime = Field(default_factory=_utcnow)
    output: Any = None
    error: Optional[str] = None
    duration_ms: Optional[int] = None

    def complete(self, output: Any, duration_ms: Optional[int]) -> None:
        self.status = "completed"
        self.output = output
        self.duration_ms = duration_ms

    def fail(self, error: str, duration_ms: Optional[int] = None) -> None:
        self.status = "failed"
        self.error = error
        self.duration_ms = duration_ms


class ExecutionResult(BaseModel):
    """Terminal outcome of one workflow run."""

    success: bool
    outputs: Dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
    log: List[ExecutionLogEntry] = Field(default_factory=list)
    duration_ms: int = 0
    execution_id: Optional[str] = None

    def to_response(self) -> Dict[str, Any]:
        """Serialize to the mapping handed back to whoever started the run."""
        return {
            "success": self.success,
            "executionId": self.execution_id,
            "outputs": self.outputs,
            "error": self.error,
            "log": [entry.model_dump(mode="json", exclude_none=True) for entry in self.log],
            "duration": self.duration_ms,
        }


class ToolUsageRecord(BaseModel):
    """One tool invocation attempt, as recorded by a usage sink."""

    tool_name: str
    workflow_id: Optional[str] = None
    execution_id: Optional[str] = None
    input: Any = None
    output: Any = None
    success: bool = False
    error: Optional[str] = None
    duration_ms: int = 0
    created_at: datetime = Field(default_factory=_utcnow)

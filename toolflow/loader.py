"""Materialize workflow definitions from files or decoded mappings."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

import yaml
from pydantic import ValidationError

from .contracts import WorkflowDefinition
from .errors import WorkflowValidationError
from .resolver import find_placeholders

_OPTIONAL_STEP_KEYS = ("on_error", "retry", "timeout", "input", "metadata")


def _normalize_step(index: int, raw: Any) -> Dict[str, Any]:
    if not isinstance(raw, Mapping):
        raise WorkflowValidationError(f"Step {index} must be a mapping, got {type(raw).__name__}")
    step = dict(raw)
    step_id = step.get("id")
    step["id"] = str(step_id) if step_id not in (None, "") else f"step_{index}"
    step["name"] = step.get("name") or f"Step {index}"
    # null means "use the default", as generated workflows often spell it
    for key in _OPTIONAL_STEP_KEYS:
        if key in step and step[key] is None:
            del step[key]
    # so does a zero timeout or attempt count
    if step.get("timeout") == 0:
        del step["timeout"]
    retry = step.get("retry")
    if isinstance(retry, Mapping) and retry.get("max_attempts") == 0:
        step["retry"] = {k: v for k, v in retry.items() if k != "max_attempts"}
    return step


def parse_workflow(data: Mapping[str, Any] | WorkflowDefinition) -> WorkflowDefinition:
    """Validate ``data`` and return a :class:`WorkflowDefinition`.

    Steps without an ``id`` or ``name`` are numbered ``step_<n>`` / ``Step <n>``.

    Raises:
        WorkflowValidationError: If the structure is invalid, step ids repeat
            or a step declares an unknown ``on_error`` policy.
    """
    if isinstance(data, WorkflowDefinition):
        return data
    if not isinstance(data, Mapping):
        raise WorkflowValidationError("Workflow must be a mapping")

    raw_steps = data.get("steps")
    if raw_steps is None:
        raw_steps = []
    if not isinstance(raw_steps, list):
        raise WorkflowValidationError("Workflow 'steps' must be a list")

    payload = dict(data)
    payload["steps"] = [_normalize_step(i, s) for i, s in enumerate(raw_steps, start=1)]
    if payload.get("variables") is None:
        payload.pop("variables", None)
    if payload.get("id") is not None:
        payload["id"] = str(payload["id"])

    try:
        return WorkflowDefinition.model_validate(payload)
    except ValidationError as exc:
        raise WorkflowValidationError(f"Invalid workflow: {exc}") from exc


def load_workflow(path: str | Path) -> WorkflowDefinition:
    """Load a workflow from a YAML or JSON file."""
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as exc:
        raise WorkflowValidationError(f"Cannot read workflow file {path}: {exc}") from exc

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise WorkflowValidationError(f"Cannot parse workflow file {path}: {exc}") from exc

    return parse_workflow(data or {})


def check_workflow(
    workflow: WorkflowDefinition,
    known_tools: Iterable[str],
    input_names: Iterable[str] = (),
) -> List[str]:
    """Return human-readable problems that would surface at run time.

    Reports steps naming tools outside ``known_tools`` and template references
    whose root is neither a workflow variable, a caller input nor an earlier
    step.
    """
    tools = set(known_tools)
    visible = set(workflow.variables) | set(input_names)
    problems: List[str] = []
    for step in workflow.steps:
        if step.tool not in tools:
            problems.append(f"Step {step.id}: unknown tool {step.tool!r}")
        for root, path in find_placeholders(step.input):
            if root not in visible:
                problems.append(f"Step {step.id}: reference {{{{{path}}}}} is not defined before this step")
        visible.add(step.id)
    return problems

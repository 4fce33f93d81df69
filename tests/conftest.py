"""Shared fixtures: an engine wired to scripted test tools."""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List

import pytest

from toolflow.contracts import ToolDefinition
from toolflow.engine import StepExecutor, WorkflowRunner
from toolflow.registry import ToolCatalog, ToolRegistry
from toolflow.usage import InMemoryUsageSink

TEST_TOOLS = [
    ToolDefinition(name="echo", category="test"),
    ToolDefinition(name="fail", category="test"),
    ToolDefinition(name="flaky", category="test"),
    ToolDefinition(name="slow", category="test"),
    ToolDefinition(name="collect", category="test"),
    ToolDefinition(name="missing_handler", category="test"),
    ToolDefinition(name="mystery", category="unheard_of"),
]


@dataclass
class EngineHarness:
    runner: WorkflowRunner
    executor: StepExecutor
    usage_sink: InMemoryUsageSink
    calls: List[Dict[str, Any]] = field(default_factory=list)
    flaky_failures: int = 2


def build_test_engine(strict_templates=False, retry_terminal_errors=True) -> EngineHarness:
    registry = ToolRegistry()
    sink = InMemoryUsageSink()
    executor = StepExecutor(
        ToolCatalog(TEST_TOOLS),
        registry,
        sink,
        strict_templates=strict_templates,
        retry_terminal_errors=retry_terminal_errors,
    )
    engine = EngineHarness(runner=WorkflowRunner(executor), executor=executor, usage_sink=sink)

    @registry.tool("test", "echo")
    async def echo(tool_input):
        engine.calls.append({"tool": "echo", "input": tool_input})
        return {"echo": tool_input}

    @registry.tool("test", "fail")
    async def fail(tool_input):
        engine.calls.append({"tool": "fail", "input": tool_input})
        raise RuntimeError("boom")

    @registry.tool("test", "flaky")
    async def flaky(tool_input):
        engine.calls.append({"tool": "flaky", "input": tool_input})
        if engine.flaky_failures > 0:
            engine.flaky_failures -= 1
            raise RuntimeError("transient")
        return {"ok": True}

    @registry.tool("test", "collect")
    async def collect(tool_input):
        engine.calls.append({"tool": "collect", "input": tool_input})
        tool_input["items"].append("added")
        tool_input.setdefault("meta", {})["seen"] = True
        return {"items": tool_input["items"], "meta": tool_input["meta"]}

    @registry.tool("test", "slow")
    async def slow(tool_input):
        engine.calls.append({"tool": "slow", "input": tool_input})
        await asyncio.sleep(tool_input.get("seconds", 1))
        return {"slept": tool_input.get("seconds", 1)}

    return engine


@pytest.fixture
def engine() -> EngineHarness:
    return build_test_engine()


@pytest.fixture
def make_engine():
    return build_test_engine

"""Run snippets of code in a child process."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..errors import ToolExecutionError
from ..registry import CODE, ToolRegistry
from .base import require_field

logger = logging.getLogger(__name__)


def build_command(language: str, code: str, args: Iterable[Any] = ()) -> List[str]:
    """Return the argv that runs ``code`` written in ``language``."""
    extra = [str(a) for a in args]
    if language == "python":
        return [sys.executable, "-c", code, *extra]
    if language == "shell":
        return ["/bin/sh", "-c", code, "sh", *extra]
    raise ToolExecutionError(f"Unsupported language: {language}", "execute_code")


async def run_process(
    argv: List[str], cwd: Optional[Path] = None, env: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    """Run ``argv`` to completion, killing the child if we are cancelled.

    A non-zero exit code is reported in the result rather than raised.
    """
    proc = await asyncio.create_subprocess_exec(
        *argv,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=str(cwd) if cwd else None,
        env=env,
    )
    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            logger.warning(f"Killing process {proc.pid} after cancellation")
            proc.kill()
            await proc.wait()
        raise
    return {
        "success": proc.returncode == 0,
        "exit_code": proc.returncode,
        "stdout": stdout.decode(errors="replace"),
        "stderr": stderr.decode(errors="replace"),
    }


def register(
    registry: ToolRegistry,
    workspace: str | Path,
    allowed_languages: Iterable[str] = ("python", "shell"),
) -> None:
    allowed = set(allowed_languages)
    cwd = Path(workspace)

    @registry.tool(CODE, "execute_code")
    async def execute_code(tool_input: Dict[str, Any]) -> Dict[str, Any]:
        code = require_field(tool_input, "code", "execute_code")
        language = tool_input.get("language", "python")
        if language not in allowed:
            raise ToolExecutionError(f"Language not allowed: {language}", "execute_code")
        env = None
        if tool_input.get("env"):
            env = {**os.environ, **{k: str(v) for k, v in tool_input["env"].items()}}
        argv = build_command(language, str(code), tool_input.get("args") or ())
        return await run_process(argv, cwd=cwd, env=env)

"""Command line interface for running toolflow workflows."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer

from toolflow.config import load_config
from toolflow.errors import WorkflowValidationError
from toolflow.loader import check_workflow, load_workflow
from toolflow.service import create_service
from toolflow.tools import build_catalog
from toolflow.usage import get_usage_sink

app = typer.Typer(help="CLI for toolflow workflows")

# Command groups
tools_app = typer.Typer(help="Commands for inspecting the tool catalog")
usage_app = typer.Typer(help="Commands for inspecting recorded tool usage")

app.add_typer(tools_app, name="tools")
app.add_typer(usage_app, name="usage")


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", help="Logging level for engine output"),
) -> None:
    """toolflow CLI entry point."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _parse_input(raw: Optional[str]) -> dict:
    if not raw:
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        typer.secho(f"Invalid --input JSON: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    if not isinstance(data, dict):
        typer.secho("--input must be a JSON object", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    return data


@app.command("run")
def run(
    workflow_path: Path,
    input: Optional[str] = typer.Option(None, help="JSON object merged into the scope"),
    strict: bool = typer.Option(False, help="Fail steps with unresolved template variables"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Path to toolflow.yaml"),
) -> None:
    """
    Execute a workflow file and print the execution result as JSON.

    Steps run in order; each step's output becomes available to later steps as
    {{step_id.field}}. Exits with code 1 when the workflow fails.

    Example:
        toolflow run ./workflows/report.yaml
        toolflow run ./report.yaml --input '{"customer": "acme"}' --strict
    """
    config = load_config(str(config_path) if config_path else None)
    if strict:
        config.engine.strict_templates = True
    variables = _parse_input(input)

    try:
        workflow = load_workflow(workflow_path)
    except WorkflowValidationError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    service = create_service(config)
    response = asyncio.run(service.execute(workflow=workflow, input=variables))
    typer.echo(json.dumps(response, indent=2, default=str))
    if not response["success"]:
        raise typer.Exit(code=1)


@app.command("validate")
def validate(
    workflow_path: Path,
    config_path: Optional[Path] = typer.Option(None, "--config", help="Path to toolflow.yaml"),
) -> None:
    """
    Check a workflow file without running it.

    Reports structural errors, steps that use unknown tools and template
    references to steps or variables that are not defined earlier.

    Example:
        toolflow validate ./workflows/report.yaml
    """
    config = load_config(str(config_path) if config_path else None)
    try:
        workflow = load_workflow(workflow_path)
    except WorkflowValidationError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)

    catalog = build_catalog(config)
    problems = check_workflow(workflow, (tool.name for tool in catalog))
    if problems:
        for problem in problems:
            typer.secho(problem, fg=typer.colors.YELLOW)
        raise typer.Exit(code=1)
    typer.echo(f"Workflow {workflow.name!r} is valid ({len(workflow.steps)} steps)")


@tools_app.command("list")
def tools_list(
    category: Optional[str] = typer.Option(None, help="Only show this category"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Path to toolflow.yaml"),
) -> None:
    """List the tools available to workflow steps."""
    catalog = build_catalog(load_config(str(config_path) if config_path else None))
    tools = [t for t in catalog if category is None or t.category == category]
    if not tools:
        typer.echo("No tools found")
        return
    for tool in sorted(tools, key=lambda t: (t.category, t.name)):
        typer.echo(f"{tool.category}\t{tool.name}\t{tool.description or ''}".rstrip())


@usage_app.command("list")
def usage_list(
    limit: int = typer.Option(20, help="Maximum number of records"),
    tool: Optional[str] = typer.Option(None, help="Only show this tool"),
    database_url: Optional[str] = typer.Option(None, help="Usage database URL"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Path to toolflow.yaml"),
) -> None:
    """
    Show the most recent tool invocations.

    Example:
        toolflow usage list --database-url sqlite://usage.db --tool http_request
    """
    config = load_config(str(config_path) if config_path else None)
    sink = get_usage_sink(database_url, config=config)
    records = asyncio.run(sink.list_usage(limit=limit, tool_name=tool))
    if not records:
        typer.echo("No usage recorded")
        return
    for record in records:
        status = "ok" if record.success else f"failed: {record.error}"
        typer.echo(
            f"{record.created_at.isoformat()}\t{record.tool_name}\t"
            f"{record.duration_ms}ms\t{record.execution_id or '-'}\t{status}"
        )


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()

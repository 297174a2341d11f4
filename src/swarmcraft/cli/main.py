"""Swarmcraft command-line interface.

Runs YAML-defined agents and swarms, generates swarms from a task, or runs a
single ad hoc agent.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from ..core.errors import SwarmcraftError
from ..models.result import ExecutionOutput, TaskResult

console = Console()

COLORS = {
    "primary": "red",
    "success": "#2ECC71",
    "warning": "#F1C40F",
    "error": "#E74C3C",
}


def show_error(message: str, help_text: Optional[str] = None) -> None:
    console.print(f"[{COLORS['error']}]Error: {message}[/{COLORS['error']}]")
    if help_text:
        console.print(f"[{COLORS['warning']}]Hint: {help_text}[/{COLORS['warning']}]")


def _setup_logging(workspace: Optional[str], verbose: bool) -> None:
    from ..core.config import get_effective_config
    from ..utils.logging import initialize_logger

    config = get_effective_config(Path(workspace) if workspace else None)
    log_config = config.get("logging", {})
    initialize_logger(
        log_folder=log_config.get("log_folder", "swarmcraft"),
        workspace_dir=config.get("workspace_dir", "agent_workspace"),
        level="DEBUG" if verbose else log_config.get("level", "INFO"),
    )


def render_result(result: object) -> None:
    if isinstance(result, ExecutionOutput):
        console.print(f"  [bold]{result.name or 'swarm'}[/bold] ({result.swarm_type.value})")
        for outcome in result.outcomes:
            if outcome.ok:
                console.print(f"  [green]OK[/green] {outcome.agent_name}: {outcome.output}")
            else:
                console.print(f"  [red]FAILED[/red] {outcome.agent_name}: {outcome.error}")
        if not isinstance(result.output, list):
            console.print(f"\n{result.output}")
    elif isinstance(result, list) and all(isinstance(r, TaskResult) for r in result):
        if not result:
            console.print("  [dim]No agent declares a task[/dim]")
        for r in result:
            if r.error:
                console.print(f"  [red]FAILED[/red] {r.agent_name}: {r.error}")
            else:
                console.print(f"  [green]OK[/green] {r.agent_name}: {r.output}")
    else:
        console.print(repr(result))


@click.group()
@click.option("--workspace", type=click.Path(file_okay=False), help="Workspace directory")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx: click.Context, workspace: Optional[str], verbose: bool) -> None:
    """Swarmcraft - declarative LLM agents and swarms."""
    ctx.ensure_object(dict)
    ctx.obj["workspace"] = workspace
    _setup_logging(workspace, verbose)


@cli.command("run-agents")
@click.option("--yaml-file", type=click.Path(), default="agents.yaml", show_default=True)
@click.option(
    "--return-type",
    type=click.Choice(["auto", "swarm", "agents", "both", "tasks", "run_swarm"]),
    default="tasks",
    show_default=True,
)
@click.option("--model", type=str, help="Model for agents that do not set model_name")
@click.pass_context
def run_agents(ctx: click.Context, yaml_file: str, return_type: str, model: Optional[str]) -> None:
    """Run agents using a YAML configuration."""
    from ..core.orchestrator import create_agents_from_yaml

    console.print(f"[{COLORS['primary']}]Loading {yaml_file}...[/{COLORS['primary']}]")
    try:
        result = asyncio.run(
            create_agents_from_yaml(
                yaml_file=yaml_file,
                return_type=return_type,
                model=model,
                workspace_dir=ctx.obj["workspace"],
            )
        )
    except SwarmcraftError as e:
        show_error(e.message, "Check the YAML file and your API keys.")
        sys.exit(1)
    render_result(result)


@cli.command("autoswarm")
@click.option("--task", type=str, required=True, help="Task for the generated swarm")
@click.option("--model", type=str, default="gpt-4o", show_default=True)
@click.pass_context
def autoswarm(ctx: click.Context, task: str, model: str) -> None:
    """Generate and execute an autonomous swarm."""
    from ..core.autoswarm import generate_swarm_config

    if not task.strip():
        show_error("Task cannot be empty.")
        sys.exit(1)

    console.print(f"[{COLORS['warning']}]Initializing autoswarm...[/{COLORS['warning']}]")
    try:
        result = asyncio.run(
            generate_swarm_config(task, model_name=model, workspace_dir=ctx.obj["workspace"])
        )
    except SwarmcraftError as e:
        show_error(e.message, "Check API keys, model name, or task validity.")
        sys.exit(1)
    console.print(f"[{COLORS['success']}]Swarm configuration generated successfully![/{COLORS['success']}]")
    render_result(result)


@cli.command("create-agent")
@click.option("--name", required=True, help="Agent name")
@click.option("--system-prompt", required=True, help="System prompt")
@click.option("--model-name", default="gpt-4o", show_default=True)
@click.option("--task", required=True, help="Task to run")
@click.option("--max-loops", type=click.IntRange(min=1), default=1, show_default=True)
@click.pass_context
def create_agent(
    ctx: click.Context,
    name: str,
    system_prompt: str,
    model_name: str,
    task: str,
    max_loops: int,
) -> None:
    """Create a single agent and run one task."""
    from ..core.orchestrator import run_agent_by_name

    try:
        output = asyncio.run(
            run_agent_by_name(
                name,
                system_prompt,
                model_name,
                task,
                max_loops=max_loops,
                workspace_dir=ctx.obj["workspace"],
            )
        )
    except SwarmcraftError as e:
        show_error(e.message)
        sys.exit(1)
    console.print(output)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()

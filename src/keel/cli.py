"""Keel command line interface."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from keel.config import Settings, get_settings
from keel.core.backend import InferenceBackend
from keel.core.loop import LoopEvent, OrchestrationLoop
from keel.core.prompt import PromptRenderer
from keel.core.protocol import PLANNING_MARKERS, ActionCatalog, ProtocolClassifier, default_catalog
from keel.core.types import Done, Inconclusive, InvokeSkill, InvokeTool
from keel.errors import KeelError
from keel.integrations.republic_backend import build_backend
from keel.logging_utils import configure_logging
from keel.skills.contract import SkillRegistry
from keel.skills.loader import discover_skills
from keel.skills.view import render_skill_prompt
from keel.tools.registry import ToolRegistry
from keel.tools.shell import create_shell_tool

app = typer.Typer(
    name="keel",
    help="A small, guarded tool-using agent.",
    add_completion=False,
)

_stderr = Console(stderr=True)


def build_loop(
    settings: Settings,
    backend: InferenceBackend,
    *,
    console: Console | None = None,
    on_event: Callable[[LoopEvent], None] | None = None,
) -> OrchestrationLoop:
    """Wire the default tools, skills and prompts into an orchestration loop."""

    tools = ToolRegistry()
    tools.register(create_shell_tool(confirm=settings.confirm_tools, console=console))
    skills = SkillRegistry.default()

    classifier = ProtocolClassifier(
        ActionCatalog(tools=tools.params_models(), skills=skills.params_models()),
        planning_markers=PLANNING_MARKERS,
        inconclusive_max_length=settings.inconclusive_max_length,
    )
    renderer = PromptRenderer(
        settings.prompts,
        tool_catalogue="\n".join(tools.compact_rows()),
        skill_catalogue=render_skill_prompt(skills.catalogue(), discover_skills(settings.skills_dirs)),
    )
    return OrchestrationLoop(
        backend=backend,
        tools=tools,
        skills=skills,
        classifier=classifier,
        renderer=renderer,
        max_iterations=settings.max_iterations,
        max_tokens=settings.max_tokens,
        on_event=on_event,
    )


def _render_event(event: LoopEvent) -> None:
    payload = event.payload
    if event.kind == "tool.start":
        _stderr.print(f"[cyan]> {payload['name']}[/cyan] {escape(json.dumps(payload['params'], ensure_ascii=False))}")
    elif event.kind == "tool.result":
        status = "ok" if payload["success"] else f"failed: {escape(str(payload['error']))}"
        _stderr.print(f"[dim]  {payload['name']} {status}[/dim]")
    elif event.kind == "guardrail.reject":
        _stderr.print(f"[yellow]  guardrail rejected {payload['name']}: {escape(payload['reason'])}[/yellow]")
    elif event.kind == "retry.start":
        _stderr.print(f"[yellow]  retrying after {payload['trigger']}[/yellow]")
    elif event.kind == "skill.result":
        status = "ok" if payload["success"] else f"failed: {escape(str(payload['error']))}"
        _stderr.print(f"[magenta]> skill {payload['name']}[/magenta] {status}")


@app.command()
def run(
    query: str = typer.Argument(..., help="Task for the agent"),
    model: str | None = typer.Option(None, "--model", help="Model as provider:model"),
    max_iterations: int | None = typer.Option(None, "--max-iterations", min=1, help="Primary iteration budget"),
    max_tokens: int | None = typer.Option(None, "--max-tokens", min=1, help="Tokens per inference call"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Run tool commands without asking"),
    skills_dir: list[Path] | None = typer.Option(None, "--skills-dir", help="Extra SKILL.md directory"),
) -> None:
    """Run one task to completion and print the answer."""

    settings = get_settings(
        model=model,
        max_iterations=max_iterations,
        max_tokens=max_tokens,
        confirm_tools=False if yes else None,
        skills_dirs=skills_dir or None,
    )
    configure_logging(profile="cli", level=settings.log_level)
    try:
        backend = build_backend(settings)
        loop = build_loop(settings, backend, console=_stderr, on_event=_render_event)
        result = asyncio.run(loop.run(query))
    except KeelError as exc:
        _stderr.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc

    if not result.succeeded:
        _stderr.print(result.diagnostic(), markup=False)
        raise typer.Exit(1)
    typer.echo(result.answer)


@app.command()
def classify(text: str = typer.Argument(..., help="Raw model output")) -> None:
    """Show how a model output would be classified."""

    settings = get_settings()
    classifier = ProtocolClassifier(default_catalog(), inconclusive_max_length=settings.inconclusive_max_length)
    decision = classifier.classify(text)
    if isinstance(decision, InvokeTool):
        typer.echo(f"InvokeTool {decision.request.name} {json.dumps(decision.request.parameter_bag)}")
    elif isinstance(decision, InvokeSkill):
        typer.echo(f"InvokeSkill {decision.request.name} {json.dumps(decision.request.parameter_bag)}")
    elif isinstance(decision, Inconclusive):
        typer.echo(f"Inconclusive {decision.text}")
    elif isinstance(decision, Done):
        typer.echo(f"Done {decision.text}")


@app.command()
def skills(
    skills_dir: list[Path] | None = typer.Option(None, "--skills-dir", help="Extra SKILL.md directory"),
) -> None:
    """List built-in and discovered skills."""

    settings = get_settings(skills_dirs=skills_dir or None)
    for entry in SkillRegistry.default().catalogue():
        typer.echo(f"{entry.name} (builtin {entry.version}): {entry.description}")
    for skill in discover_skills(settings.skills_dirs):
        typer.echo(f"{skill.name} ({skill.location}): {skill.description}")


if __name__ == "__main__":
    app()

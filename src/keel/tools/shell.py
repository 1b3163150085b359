"""Reference shell tool."""

from __future__ import annotations

import asyncio
import shutil
import subprocess

from pydantic import BaseModel, Field
from rich.console import Console
from rich.prompt import Confirm

from keel.core.types import ActionOutcome
from keel.errors import ToolExecutionError
from keel.tools.registry import ToolDescriptor

REJECTED_BY_USER = "Command rejected by user"


class ShellInput(BaseModel):
    """Run a shell command."""

    command: str = Field(..., description="Command line passed to bash -lc")


def create_shell_tool(*, confirm: bool = True, console: Console | None = None) -> ToolDescriptor:
    """Create the shell tool; with ``confirm`` every command needs an explicit yes."""

    console = console or Console(stderr=True)

    async def _handler(params: ShellInput) -> ActionOutcome:
        if confirm and not Confirm.ask(f"Run [bold]{params.command}[/bold]?", console=console, default=False):
            return ActionOutcome.failed(REJECTED_BY_USER)
        return await asyncio.to_thread(_run_command, params.command)

    return ToolDescriptor(
        name="shell",
        short_description="Run a shell command and return its standard output",
        params_model=ShellInput,
        handler=_handler,
    )


def _run_command(command: str) -> ActionOutcome:
    bash_executable = shutil.which("bash") or "bash"
    try:
        # The model intentionally runs shell commands through this tool.
        result = subprocess.run(  # noqa: S603
            [bash_executable, "-lc", command],
            capture_output=True,
            text=True,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        raise ToolExecutionError(f"failed to run command: {exc!s}") from exc

    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        return ActionOutcome.failed(stderr or f"Command exited with status {result.returncode}")
    return ActionOutcome.ok(result.stdout or "")

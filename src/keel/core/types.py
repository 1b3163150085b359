"""Shared core dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeAlias

from pydantic import BaseModel


class Role(str, Enum):
    """Author of one conversation message."""

    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ActionKind(str, Enum):
    """Discriminator key an action request is published under."""

    TOOL = "tool"
    SKILL = "skill"


@dataclass(frozen=True)
class Message:
    role: Role
    content: str


@dataclass(frozen=True)
class ToolInvocation:
    """Request to run a host tool with its validated parameter record."""

    name: str
    params: BaseModel

    @property
    def parameter_bag(self) -> dict[str, Any]:
        return self.params.model_dump()


@dataclass(frozen=True)
class SkillInvocation:
    """Request to run a contract-based skill with its validated parameter record."""

    name: str
    params: BaseModel

    @property
    def parameter_bag(self) -> dict[str, Any]:
        return self.params.model_dump()


ActionRequest: TypeAlias = ToolInvocation | SkillInvocation


@dataclass(frozen=True)
class ActionOutcome:
    """Result of one tool or skill execution.

    A successful outcome never carries an error and a failed one never carries
    output; the constructor refuses anything else.
    """

    success: bool
    output: str = ""
    error: str | None = None

    def __post_init__(self) -> None:
        if self.success and self.error is not None:
            raise ValueError("successful outcome must not carry an error")
        if not self.success and self.output:
            raise ValueError("failed outcome must not carry output")

    @classmethod
    def ok(cls, output: str) -> ActionOutcome:
        return cls(success=True, output=output)

    @classmethod
    def failed(cls, error: str) -> ActionOutcome:
        return cls(success=False, error=error)


@dataclass(frozen=True)
class InvokeTool:
    request: ToolInvocation


@dataclass(frozen=True)
class InvokeSkill:
    request: SkillInvocation


@dataclass(frozen=True)
class Done:
    """Model produced its final answer."""

    text: str


@dataclass(frozen=True)
class Inconclusive:
    """Model described what it would do instead of doing it."""

    text: str


Decision: TypeAlias = InvokeTool | InvokeSkill | Done | Inconclusive

"""Post-execution guardrails for tool outcomes.

Guardrails check correctness, not safety: they exist to stop the agent from
treating an implausible tool output (an empty listing, a bare ``total 12`` header)
as a successful observation.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, TypeAlias

from loguru import logger

from keel.core.state import ConversationState
from keel.core.types import ActionOutcome, ToolInvocation


@dataclass(frozen=True)
class Accept:
    pass


@dataclass(frozen=True)
class Reject:
    reason: str


GuardrailVerdict: TypeAlias = Accept | Reject

ACCEPT = Accept()


@dataclass(frozen=True)
class GuardrailContext:
    state: ConversationState
    request: ToolInvocation
    outcome: ActionOutcome


class Guardrail(Protocol):
    name: str

    def validate(self, context: GuardrailContext) -> GuardrailVerdict: ...


GuardrailFunction: TypeAlias = Callable[[ConversationState, ToolInvocation, ActionOutcome], GuardrailVerdict]


@dataclass(frozen=True)
class FunctionGuardrail:
    """Adapts a plain ``(state, request, outcome)`` function to the guardrail protocol."""

    name: str
    func: GuardrailFunction

    def validate(self, context: GuardrailContext) -> GuardrailVerdict:
        return self.func(context.state, context.request, context.outcome)


def guardrail(name: str) -> Callable[[GuardrailFunction], FunctionGuardrail]:
    def decorator(func: GuardrailFunction) -> FunctionGuardrail:
        return FunctionGuardrail(name=name, func=func)

    return decorator


class GuardrailChain:
    """Guardrails evaluated strictly in registration order.

    The first rejection ends evaluation; guardrails registered after it are not
    called at all, so a guardrail may rely on every earlier one having accepted.
    """

    def __init__(self) -> None:
        self._guards: list[Guardrail] = []

    @classmethod
    def default(cls) -> GuardrailChain:
        return cls().add(PlausibilityGuardrail())

    def add(self, guard: Guardrail) -> GuardrailChain:
        self._guards.append(guard)
        return self

    def names(self) -> list[str]:
        return [guard.name for guard in self._guards]

    def __len__(self) -> int:
        return len(self._guards)

    def validate(self, context: GuardrailContext) -> GuardrailVerdict:
        for guard in self._guards:
            verdict = guard.validate(context)
            if isinstance(verdict, Reject):
                logger.info("guardrail.reject name={} tool={} reason={}", guard.name, context.request.name, verdict.reason)
                return verdict
        return ACCEPT


class PlausibilityGuardrail:
    """Rejects successful outputs that obviously carry no task data."""

    name = "plausibility"

    def validate(self, context: GuardrailContext) -> GuardrailVerdict:
        outcome = context.outcome
        # A failed action is already visible as a failure; do not penalize it twice.
        if not outcome.success:
            return ACCEPT

        output = outcome.output
        if not output.strip():
            return Reject("Tool output is empty - no data returned")
        if _is_metadata_only(output):
            return Reject("Tool output contains only metadata (e.g. 'total' line), not actual data")
        if not _has_minimal_substance(output):
            return Reject("Tool output lacks substantive content")
        return ACCEPT


def _is_metadata_only(output: str) -> bool:
    trimmed = output.strip()
    if len(trimmed.splitlines()) != 1:
        return False
    parts = trimmed.split()
    return (
        len(parts) == 2
        and parts[0].casefold() == "total"
        and parts[1].isascii()
        and parts[1].isdigit()
    )


def _has_minimal_substance(output: str) -> bool:
    trimmed = output.strip()
    if len(trimmed) < 3:
        return False
    return any(ch.isalnum() for ch in trimmed)

"""Orchestration loop tying classifier, state, guardrails and skills together."""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeAlias

from loguru import logger

from keel.core.backend import BackendSession, InferenceBackend
from keel.core.guardrails import GuardrailChain, GuardrailContext, Reject
from keel.core.prompt import PromptRenderer
from keel.core.protocol import ProtocolClassifier
from keel.core.retry import FailureKind, LoopPhase, RetryStateMachine
from keel.core.state import ConversationState
from keel.core.types import (
    ActionKind,
    ActionOutcome,
    Decision,
    Done,
    Inconclusive,
    InvokeSkill,
    InvokeTool,
    Role,
    SkillInvocation,
    ToolInvocation,
)

Generate: TypeAlias = Callable[[str], Awaitable[str]]


class ToolExecutor(Protocol):
    async def execute(self, request: ToolInvocation) -> ActionOutcome: ...


class SkillExecutor(Protocol):
    async def execute(self, request: SkillInvocation, generate: Generate) -> ActionOutcome: ...


@dataclass(frozen=True)
class LoopEvent:
    kind: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LoopResult:
    """Terminal outcome of one session."""

    phase: LoopPhase
    state: ConversationState
    iterations: int
    answer: str | None = None
    failure: FailureKind | None = None
    details: tuple[str, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.phase is LoopPhase.SUCCEEDED

    def diagnostic(self) -> str:
        if self.failure is None:
            return ""
        if self.failure is FailureKind.GUARDRAIL_REJECTED_TWICE:
            initial, retry = self.details
            return (
                "TASK FAILED: guardrail rejected the tool output twice\n"
                "A corrective retry was attempted and its output was rejected as well.\n"
                f"  Initial attempt: {initial}\n"
                f"  Retry attempt:   {retry}"
            )
        if self.failure is FailureKind.INCONCLUSIVE_AFTER_REJECTION:
            reason, output = self.details
            return (
                "TASK FAILED: model could not recover from a guardrail rejection\n"
                "After the rejection the model neither invoked an action nor answered.\n"
                f"  Guardrail rejection: {reason}\n"
                f'  Model output:        "{output}"'
            )
        if self.failure is FailureKind.INCONCLUSIVE_AFTER_RETRY:
            original, retry = self.details
            return (
                "TASK FAILED: model produced inconclusive output after a corrective retry\n"
                "The model did not invoke a tool or provide a complete answer.\n"
                f'  Original output: "{original}"\n'
                f'  Retry output:    "{retry}"'
            )
        return (
            "TASK FAILED: iteration budget exhausted\n"
            f"The agent reached the maximum of {self.iterations} iterations without a final answer."
        )


@dataclass
class _Run:
    state: ConversationState
    session: BackendSession
    machine: RetryStateMachine
    tool_succeeded: bool = False


class OrchestrationLoop:
    """Drives one session from the user query to a terminal result.

    Backend and executor failures are raised out of ``run``; every other
    failure mode ends in a failed ``LoopResult``.
    """

    def __init__(
        self,
        *,
        backend: InferenceBackend,
        tools: ToolExecutor,
        skills: SkillExecutor,
        classifier: ProtocolClassifier,
        renderer: PromptRenderer,
        guardrails: GuardrailChain | None = None,
        max_iterations: int = 5,
        max_tokens: int = 256,
        on_event: Callable[[LoopEvent], None] | None = None,
    ) -> None:
        self._backend = backend
        self._tools = tools
        self._skills = skills
        self._classifier = classifier
        self._renderer = renderer
        self._guardrails = guardrails if guardrails is not None else GuardrailChain.default()
        self._max_iterations = max_iterations
        self._max_tokens = max_tokens
        self._on_event = on_event

    async def run(self, query: str) -> LoopResult:
        session_id = uuid.uuid4().hex[:8]
        with logger.contextualize(session=session_id):
            run = _Run(
                state=ConversationState.new_session(query),
                session=BackendSession(self._backend, max_tokens=self._max_tokens),
                machine=RetryStateMachine(self._max_iterations),
            )
            await self._drive(run)
            return self._finish(run)

    async def _drive(self, run: _Run) -> None:
        machine = run.machine
        while machine.advance():
            corrective = machine.correcting
            correction = machine.correction
            if correction is not None:
                self._emit("retry.start", trigger=correction.trigger.value, detail=correction.detail)
            else:
                logger.info("loop.iteration iteration={} max={}", machine.iterations, self._max_iterations)

            prompt = self._renderer.render(run.state, tool_succeeded=run.tool_succeeded, corrective=corrective)
            raw = await run.session.generate(prompt)
            decision = self._classifier.classify(raw)
            logger.debug("loop.decision kind={} corrective={}", type(decision).__name__, corrective)
            await self._dispatch(run, decision, raw)

    async def _dispatch(self, run: _Run, decision: Decision, raw: str) -> None:
        if isinstance(decision, Done):
            run.state.append_message(Role.ASSISTANT, decision.text)
            run.state.mark_complete(decision.text)
            run.machine.on_done()
        elif isinstance(decision, InvokeTool):
            run.state.append_message(Role.ASSISTANT, raw.strip())
            await self._run_tool(run, decision.request)
        elif isinstance(decision, InvokeSkill):
            run.state.append_message(Role.ASSISTANT, raw.strip())
            await self._run_skill(run, decision.request)
        elif isinstance(decision, Inconclusive):
            logger.info("loop.inconclusive chars={}", len(decision.text))
            run.machine.on_inconclusive(decision.text)

    async def _run_tool(self, run: _Run, request: ToolInvocation) -> None:
        self._emit("tool.start", name=request.name, params=request.parameter_bag)
        outcome = await self._tools.execute(request)
        verdict = self._guardrails.validate(GuardrailContext(state=run.state, request=request, outcome=outcome))
        if isinstance(verdict, Reject):
            self._emit("guardrail.reject", name=request.name, reason=verdict.reason)
            run.machine.on_rejected(verdict.reason)
            return

        run.state.record_outcome(outcome, ActionKind.TOOL)
        run.tool_succeeded = True
        self._emit("tool.result", name=request.name, success=outcome.success, output=outcome.output, error=outcome.error)
        run.machine.on_accepted()

    async def _run_skill(self, run: _Run, request: SkillInvocation) -> None:
        outcome = await self._skills.execute(request, run.session.generate)
        run.state.record_outcome(outcome, ActionKind.SKILL)
        self._emit("skill.result", name=request.name, success=outcome.success, output=outcome.output, error=outcome.error)
        run.machine.on_skill_completed()

    def _finish(self, run: _Run) -> LoopResult:
        machine = run.machine
        if machine.failure is FailureKind.ITERATION_BUDGET_EXHAUSTED:
            logger.warning("loop.max_iterations max={}", self._max_iterations)
        elif machine.failure is not None:
            logger.error("loop.failed failure={} iterations={}", machine.failure.value, machine.iterations)
        else:
            logger.info("loop.done iterations={} model_calls={}", machine.iterations, run.session.calls)
        logger.debug("loop.state snapshot={}", run.state.snapshot())
        return LoopResult(
            phase=machine.phase,
            state=run.state,
            iterations=machine.iterations,
            answer=run.state.final_answer,
            failure=machine.failure,
            details=machine.details,
        )

    def _emit(self, kind: str, **payload: Any) -> None:
        if self._on_event is not None:
            self._on_event(LoopEvent(kind=kind, payload=payload))

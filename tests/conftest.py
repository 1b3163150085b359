from __future__ import annotations

from collections.abc import Iterable

import pytest

from keel.config import PromptTemplates
from keel.core.backend import InferenceRequest, InferenceResult
from keel.core.loop import LoopEvent, OrchestrationLoop
from keel.core.prompt import PromptRenderer
from keel.core.protocol import ProtocolClassifier, default_catalog
from keel.core.types import ActionOutcome, ToolInvocation
from keel.skills.contract import SkillRegistry


class ScriptedBackend:
    """Returns canned responses in order and records every request."""

    def __init__(self, responses: Iterable[str], *, tokens_per_call: int = 0) -> None:
        self._responses = list(responses)
        self._tokens_per_call = tokens_per_call
        self.requests: list[InferenceRequest] = []

    @property
    def prompts(self) -> list[str]:
        return [request.prompt for request in self.requests]

    async def infer(self, request: InferenceRequest) -> InferenceResult:
        self.requests.append(request)
        if not self._responses:
            raise AssertionError("backend called more often than scripted")
        return InferenceResult(text=self._responses.pop(0), tokens_consumed=self._tokens_per_call)


class RecordingExecutor:
    """Tool executor returning scripted outcomes and recording the requests."""

    def __init__(self, outcomes: Iterable[ActionOutcome] = ()) -> None:
        self._outcomes = list(outcomes)
        self.requests: list[ToolInvocation] = []

    async def execute(self, request: ToolInvocation) -> ActionOutcome:
        self.requests.append(request)
        if not self._outcomes:
            raise AssertionError("executor called more often than scripted")
        return self._outcomes.pop(0)


@pytest.fixture
def events() -> list[LoopEvent]:
    return []


@pytest.fixture
def make_loop(events: list[LoopEvent]):
    def _make(
        backend: ScriptedBackend,
        executor: RecordingExecutor | None = None,
        *,
        max_iterations: int = 5,
        **kwargs,
    ) -> OrchestrationLoop:
        return OrchestrationLoop(
            backend=backend,
            tools=executor or RecordingExecutor(),
            skills=SkillRegistry.default(),
            classifier=ProtocolClassifier(default_catalog()),
            renderer=PromptRenderer(PromptTemplates(), tool_catalogue="- shell: Run a shell command"),
            max_iterations=max_iterations,
            on_event=events.append,
            **kwargs,
        )

    return _make

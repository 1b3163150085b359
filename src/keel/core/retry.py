"""Corrective-retry state machine of the orchestration loop.

Every failure event (a guardrail rejection or an inconclusive output) earns
exactly one corrective retry. The retry is generated while the machine is
``CORRECTING`` and does not consume an iteration of the primary budget; only
``advance`` from ``ITERATING`` does.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from loguru import logger


class LoopPhase(str, Enum):
    ITERATING = "iterating"
    CORRECTING = "correcting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureKind(str, Enum):
    GUARDRAIL_REJECTED_TWICE = "guardrail_rejected_twice"
    INCONCLUSIVE_AFTER_REJECTION = "inconclusive_after_rejection"
    INCONCLUSIVE_AFTER_RETRY = "inconclusive_after_retry"
    ITERATION_BUDGET_EXHAUSTED = "iteration_budget_exhausted"


class CorrectionTrigger(str, Enum):
    REJECTION = "rejection"
    INCONCLUSIVE = "inconclusive"


@dataclass(frozen=True)
class Correction:
    """The failure event a pending corrective retry answers."""

    trigger: CorrectionTrigger
    detail: str


class RetryStateMachine:
    def __init__(self, max_iterations: int) -> None:
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self._max_iterations = max_iterations
        self._phase = LoopPhase.ITERATING
        self._iterations = 0
        self._correction: Correction | None = None
        self._failure: FailureKind | None = None
        self._details: tuple[str, ...] = ()

    @property
    def phase(self) -> LoopPhase:
        return self._phase

    @property
    def iterations(self) -> int:
        return self._iterations

    @property
    def correction(self) -> Correction | None:
        return self._correction

    @property
    def correcting(self) -> bool:
        return self._phase is LoopPhase.CORRECTING

    @property
    def failure(self) -> FailureKind | None:
        return self._failure

    @property
    def details(self) -> tuple[str, ...]:
        return self._details

    @property
    def terminated(self) -> bool:
        return self._phase in (LoopPhase.SUCCEEDED, LoopPhase.FAILED)

    def advance(self) -> bool:
        """Admit the next generation; ``False`` once the machine has terminated.

        A pending retry is admitted without touching the iteration count.
        """
        if self.terminated:
            return False
        if self._phase is LoopPhase.CORRECTING:
            return True
        if self._iterations >= self._max_iterations:
            self._fail(FailureKind.ITERATION_BUDGET_EXHAUSTED, ())
            return False
        self._iterations += 1
        return True

    def on_done(self) -> None:
        self._ensure_active()
        self._correction = None
        self._phase = LoopPhase.SUCCEEDED

    def on_accepted(self) -> None:
        self._resume()

    def on_skill_completed(self) -> None:
        self._resume()

    def on_rejected(self, reason: str) -> None:
        self._ensure_active()
        previous = self._correction
        if previous is not None and previous.trigger is CorrectionTrigger.REJECTION:
            self._fail(FailureKind.GUARDRAIL_REJECTED_TWICE, (previous.detail, reason))
            return
        self._begin_correction(Correction(CorrectionTrigger.REJECTION, reason))

    def on_inconclusive(self, text: str) -> None:
        self._ensure_active()
        previous = self._correction
        if previous is None:
            self._begin_correction(Correction(CorrectionTrigger.INCONCLUSIVE, text))
        elif previous.trigger is CorrectionTrigger.REJECTION:
            self._fail(FailureKind.INCONCLUSIVE_AFTER_REJECTION, (previous.detail, text))
        else:
            self._fail(FailureKind.INCONCLUSIVE_AFTER_RETRY, (previous.detail, text))

    def _begin_correction(self, correction: Correction) -> None:
        logger.info("loop.retry trigger={} iteration={}", correction.trigger.value, self._iterations)
        self._correction = correction
        self._phase = LoopPhase.CORRECTING

    def _resume(self) -> None:
        self._ensure_active()
        self._correction = None
        self._phase = LoopPhase.ITERATING

    def _fail(self, failure: FailureKind, details: tuple[str, ...]) -> None:
        self._correction = None
        self._failure = failure
        self._details = details
        self._phase = LoopPhase.FAILED

    def _ensure_active(self) -> None:
        if self.terminated:
            raise RuntimeError(f"retry state machine already terminated ({self._phase.value})")

"""Inference backend interface.

The core never sees tokenizers, samplers or HTTP clients; it hands a prompt to a
backend and gets text back.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from loguru import logger


@dataclass(frozen=True)
class InferenceRequest:
    prompt: str
    max_tokens: int
    # Position in the backend's context cache; append-only backends resume from here.
    cursor: int = 0
    first_call: bool = False


@dataclass(frozen=True)
class InferenceResult:
    text: str
    tokens_consumed: int = 0


class InferenceBackend(Protocol):
    async def infer(self, request: InferenceRequest) -> InferenceResult:
        """Generate text for the request, raising ``BackendError`` on failure."""
        ...


class BackendSession:
    """Tracks the continuation cursor and first-call hint across calls of one session."""

    def __init__(self, backend: InferenceBackend, *, max_tokens: int) -> None:
        self._backend = backend
        self._max_tokens = max_tokens
        self._cursor = 0
        self._calls = 0

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def calls(self) -> int:
        return self._calls

    async def generate(self, prompt: str) -> str:
        request = InferenceRequest(
            prompt=prompt,
            max_tokens=self._max_tokens,
            cursor=self._cursor,
            first_call=self._calls == 0,
        )
        result = await self._backend.infer(request)
        self._calls += 1
        self._cursor += result.tokens_consumed
        logger.debug(
            "backend.infer call={} cursor={} tokens={} chars={}",
            self._calls,
            self._cursor,
            result.tokens_consumed,
            len(result.text),
        )
        return result.text

"""Republic integration: remote chat models as an inference backend."""

from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger
from republic import LLM

from keel.config import Settings
from keel.core.backend import InferenceRequest, InferenceResult
from keel.errors import BackendError


class RepublicBackend:
    """Inference backend over a Republic LLM client.

    Remote chat APIs are stateless, so the continuation cursor is ignored and
    no tokens are reported as consumed.
    """

    def __init__(self, llm: Any, *, timeout_seconds: float | None = None) -> None:
        self._llm = llm
        self._timeout_seconds = timeout_seconds

    async def infer(self, request: InferenceRequest) -> InferenceResult:
        try:
            if self._timeout_seconds is None:
                response = await self._llm.chat_async(request.prompt, max_tokens=request.max_tokens)
            else:
                async with asyncio.timeout(self._timeout_seconds):
                    response = await self._llm.chat_async(request.prompt, max_tokens=request.max_tokens)
        except TimeoutError as exc:
            raise BackendError(f"model request timed out after {self._timeout_seconds}s") from exc
        except Exception as exc:
            logger.exception("backend.error first_call={}", request.first_call)
            raise BackendError(f"model request failed: {exc}") from exc
        return InferenceResult(text=_response_text(response))


def _response_text(response: object) -> str:
    if isinstance(response, str):
        return response
    error = getattr(response, "error", None)
    if error is not None:
        raise BackendError(f"model request failed: {error}")
    value = getattr(response, "value", None)
    if not isinstance(value, str):
        raise BackendError(f"unexpected model response: {type(response).__name__}")
    return value


def build_llm(settings: Settings) -> LLM:
    """Build Republic LLM client configured for Keel."""

    settings.resolved_model()
    return LLM(settings.model, api_key=settings.api_key, api_base=settings.api_base)


def build_backend(settings: Settings) -> RepublicBackend:
    return RepublicBackend(build_llm(settings), timeout_seconds=settings.timeout_seconds)

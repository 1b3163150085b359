"""Host tool registry."""

from __future__ import annotations

import json
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeAlias

from loguru import logger
from pydantic import BaseModel

from keel.core.types import ActionOutcome, ToolInvocation
from keel.errors import KeelError, ToolExecutionError

ToolHandler: TypeAlias = Callable[[Any], Awaitable[ActionOutcome]]


def _shorten_text(text: str, width: int = 30, placeholder: str = "...") -> str:
    """Shorten text to width characters, cutting in the middle of words if needed.

    Unlike textwrap.shorten, this function can cut in the middle of a word,
    ensuring long strings without spaces are still truncated properly.
    """
    if len(text) <= width:
        return text

    available = width - len(placeholder)
    if available <= 0:
        return placeholder

    return text[:available] + placeholder


@dataclass(frozen=True)
class ToolDescriptor:
    """Tool metadata and runtime handle."""

    name: str
    short_description: str
    params_model: type[BaseModel]
    handler: ToolHandler


class ToolRegistry:
    """Registry of host tools the model may invoke by name."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolDescriptor] = {}

    def register(self, descriptor: ToolDescriptor) -> None:
        self._tools[descriptor.name] = descriptor

    def has(self, name: str) -> bool:
        return name in self._tools

    def get(self, name: str) -> ToolDescriptor | None:
        return self._tools.get(name)

    def descriptors(self) -> list[ToolDescriptor]:
        return sorted(self._tools.values(), key=lambda item: item.name)

    def compact_rows(self) -> list[str]:
        return [f"- {descriptor.name}: {descriptor.short_description}" for descriptor in self.descriptors()]

    def params_models(self) -> dict[str, type[BaseModel]]:
        return {descriptor.name: descriptor.params_model for descriptor in self.descriptors()}

    async def execute(self, request: ToolInvocation) -> ActionOutcome:
        descriptor = self.get(request.name)
        if descriptor is None:
            return ActionOutcome.failed(f"Unknown tool: {request.name}")

        self._log_tool_call(request.name, request.parameter_bag)
        start = time.monotonic()
        try:
            return await descriptor.handler(request.params)
        except KeelError:
            raise
        except Exception as exc:
            logger.exception("tool.call.error name={}", request.name)
            raise ToolExecutionError(f"tool '{request.name}' failed: {exc}") from exc
        finally:
            duration = time.monotonic() - start
            logger.info("tool.call.end name={} duration={:.3f}ms", request.name, duration * 1000)

    def _log_tool_call(self, name: str, kwargs: dict[str, Any]) -> None:
        params: list[str] = []
        for key, value in kwargs.items():
            try:
                rendered = json.dumps(value, ensure_ascii=False)
            except TypeError:
                rendered = repr(value)
            value = _shorten_text(rendered, width=30, placeholder="...")
            if value.startswith('"') and not value.endswith('"'):
                value = value + '"'
            params.append(f"{key}={value}")
        logger.info("tool.call.start name={} {{ {} }}", name, ", ".join(params))

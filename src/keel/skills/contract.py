"""Skill contract and registry.

A skill is a contract-based operation: it validates its own input, asks the
backend for structured output, and proves that output against the input before
anything reaches the conversation. Skills never go through tool guardrails.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, ClassVar, TypeAlias

from loguru import logger
from pydantic import BaseModel

from keel.core.types import ActionOutcome, SkillInvocation
from keel.errors import SkillError

Generate: TypeAlias = Callable[[str], Awaitable[str]]


@dataclass(frozen=True)
class SkillEntry:
    """Name/description pair published in the skill catalogue."""

    name: str
    description: str
    version: str = ""


class SkillContract(ABC):
    """Fixed execution contract shared by all skills.

    ``validate_input`` returns the resolved target the remaining steps work on;
    any ``SkillError`` raised along the way short-circuits into a failed
    outcome. There is no partial success.
    """

    name: ClassVar[str]
    description: ClassVar[str]
    version: ClassVar[str] = "1.0.0"
    params_model: ClassVar[type[BaseModel]]

    @abstractmethod
    def validate_input(self, params: Any) -> Any: ...

    @abstractmethod
    def build_prompt(self, params: Any, target: Any) -> str: ...

    @abstractmethod
    def parse_output(self, raw: str, target: Any) -> dict[str, Any]: ...

    @abstractmethod
    def validate_output(self, params: Any, output: dict[str, Any], target: Any) -> None: ...

    async def execute(self, params: Any, generate: Generate) -> ActionOutcome:
        try:
            target = self.validate_input(params)
            raw = await generate(self.build_prompt(params, target))
            output = self.parse_output(raw, target)
            self.validate_output(params, output, target)
        except SkillError as exc:
            logger.info("skill.failed name={} kind={} detail={}", self.name, exc.kind, exc.detail)
            return ActionOutcome.failed(str(exc))
        return ActionOutcome.ok(json.dumps(output, ensure_ascii=False))

    def entry(self) -> SkillEntry:
        return SkillEntry(name=self.name, description=self.description, version=self.version)


class SkillRegistry:
    """Registry of built-in skill contracts."""

    def __init__(self) -> None:
        self._skills: dict[str, SkillContract] = {}

    @classmethod
    def default(cls) -> SkillRegistry:
        from keel.skills.extraction import ExtractionSkill

        registry = cls()
        registry.register(ExtractionSkill())
        return registry

    def register(self, skill: SkillContract) -> None:
        if skill.name in self._skills:
            raise ValueError(f"Duplicate skill name: {skill.name}")
        self._skills[skill.name] = skill

    def get(self, name: str) -> SkillContract | None:
        return self._skills.get(name)

    def catalogue(self) -> list[SkillEntry]:
        return [skill.entry() for skill in sorted(self._skills.values(), key=lambda item: item.name)]

    def params_models(self) -> dict[str, type[BaseModel]]:
        return {name: skill.params_model for name, skill in self._skills.items()}

    async def execute(self, request: SkillInvocation, generate: Generate) -> ActionOutcome:
        skill = self.get(request.name)
        if skill is None:
            return ActionOutcome.failed(f"Unknown skill: {request.name}")
        logger.info("skill.call.start name={}", request.name)
        outcome = await skill.execute(request.params, generate)
        logger.info("skill.call.end name={} success={}", request.name, outcome.success)
        return outcome

"""Model output classification."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from pydantic import BaseModel, ValidationError

from keel.core.types import (
    ActionKind,
    Decision,
    Done,
    Inconclusive,
    InvokeSkill,
    InvokeTool,
    SkillInvocation,
    ToolInvocation,
)

INCONCLUSIVE_MAX_LENGTH = 300
PLANNING_MARKERS = (
    "i will",
    "i'll",
    "let me",
    "let's",
    "we can",
    "we will",
    "to do this",
    "first,",
    "step 1",
    "the command",
    "using the",
    "by using",
)


@dataclass(frozen=True)
class ActionCatalog:
    """Supported action names and the parameter model each one accepts."""

    tools: Mapping[str, type[BaseModel]] = field(default_factory=dict)
    skills: Mapping[str, type[BaseModel]] = field(default_factory=dict)

    def params_model(self, kind: ActionKind, name: str) -> type[BaseModel] | None:
        table = self.tools if kind is ActionKind.TOOL else self.skills
        return table.get(name)


def default_catalog() -> ActionCatalog:
    """Catalog of the actions shipped with Keel: the shell tool and the extract skill."""
    from keel.skills.extraction import ExtractionInput
    from keel.tools.shell import ShellInput

    return ActionCatalog(tools={"shell": ShellInput}, skills={"extract": ExtractionInput})


class ProtocolClassifier:
    """Turns raw model text into exactly one decision. Never raises."""

    def __init__(
        self,
        catalog: ActionCatalog,
        *,
        planning_markers: Iterable[str] = PLANNING_MARKERS,
        inconclusive_max_length: int = INCONCLUSIVE_MAX_LENGTH,
    ) -> None:
        self._catalog = catalog
        self._markers = tuple(marker.casefold() for marker in planning_markers)
        self._max_length = inconclusive_max_length

    @property
    def catalog(self) -> ActionCatalog:
        return self._catalog

    def classify(self, raw: str) -> Decision:
        trimmed = raw.strip()
        action = self._parse_action(trimmed)
        if action is not None:
            return action
        if self._is_inconclusive(trimmed):
            return Inconclusive(trimmed)
        return Done(trimmed)

    def _parse_action(self, text: str) -> InvokeTool | InvokeSkill | None:
        try:
            payload = json.loads(text)
        except (ValueError, RecursionError):
            return None
        if not isinstance(payload, dict):
            return None

        for kind in (ActionKind.TOOL, ActionKind.SKILL):
            name = payload.get(kind.value)
            if not isinstance(name, str):
                continue
            model = self._catalog.params_model(kind, name)
            if model is None:
                continue
            fields = {key: value for key, value in payload.items() if key != kind.value}
            try:
                params = model.model_validate(fields)
            except ValidationError:
                return None
            if kind is ActionKind.TOOL:
                return InvokeTool(ToolInvocation(name=name, params=params))
            return InvokeSkill(SkillInvocation(name=name, params=params))
        return None

    def _is_inconclusive(self, text: str) -> bool:
        # Longer responses are more likely to be complete answers.
        if len(text) >= self._max_length:
            return False
        lowered = text.casefold()
        return any(marker in lowered for marker in self._markers)


_default_classifier: ProtocolClassifier | None = None


def classify(raw: str) -> Decision:
    """Classify with the default catalog and marker set."""
    global _default_classifier
    if _default_classifier is None:
        _default_classifier = ProtocolClassifier(default_catalog())
    return _default_classifier.classify(raw)

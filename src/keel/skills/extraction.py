"""Built-in extraction skill."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, Field

from keel.errors import (
    EmptyInputError,
    HallucinationError,
    InvalidTargetError,
    MalformedOutputError,
    SchemaViolationError,
)
from keel.skills.contract import SkillContract

ENTITY_FIELDS = ("people", "organizations", "locations")


class ExtractionTarget(str, Enum):
    EMAIL = "email"
    URL = "url"
    DATE = "date"
    ENTITY = "entity"

    @classmethod
    def lookup(cls, name: str) -> ExtractionTarget | None:
        """Resolve a target by name, ignoring case."""
        lowered = name.lower()
        for target in cls:
            if target.value == lowered:
                return target
        return None


class ExtractionInput(BaseModel):
    """Extract structured values from unstructured text."""

    text: str = Field(..., description="The unstructured text to extract from")
    target: str = Field(..., description="What to extract: email, url, date or entity")


_FIELD_SHAPES: dict[ExtractionTarget, str] = {
    ExtractionTarget.EMAIL: '{"email": ["address@example.com"]}',
    ExtractionTarget.URL: '{"url": ["https://example.com"]}',
    ExtractionTarget.DATE: '{"date": ["2024-01-31"]}',
    ExtractionTarget.ENTITY: '{"entity": {"people": [], "organizations": [], "locations": []}}',
}


class ExtractionSkill(SkillContract):
    """Extract emails, URLs, dates or named entities.

    Every extracted value must be traceable to the source text; anything that
    is not is reported as a hallucination and the whole result is discarded.
    """

    name: ClassVar[str] = "extract"
    description: ClassVar[str] = "Extract structured information from unstructured text"
    version: ClassVar[str] = "1.0.0"
    params_model: ClassVar[type[BaseModel]] = ExtractionInput

    def validate_input(self, params: ExtractionInput) -> ExtractionTarget:
        if not params.text:
            raise EmptyInputError()
        target = ExtractionTarget.lookup(params.target)
        if target is None:
            raise InvalidTargetError(params.target)
        return target

    def build_prompt(self, params: ExtractionInput, target: ExtractionTarget) -> str:
        return (
            f"Extract every {target.value} from the text below.\n"
            f"Respond ONLY with a JSON object containing exactly one field named \"{target.value}\", "
            f"shaped like: {_FIELD_SHAPES[target]}\n"
            "Only include values that appear verbatim in the text. Do NOT invent values.\n"
            "If nothing matches, return an empty list.\n\n"
            f"Text:\n{params.text}"
        )

    def parse_output(self, raw: str, target: ExtractionTarget) -> dict[str, Any]:
        try:
            value = json.loads(raw.strip())
        except (ValueError, RecursionError) as exc:
            raise MalformedOutputError(f"invalid JSON: {exc}") from exc
        if not isinstance(value, dict):
            raise MalformedOutputError("output must be a JSON object")
        if target.value not in value:
            raise SchemaViolationError(f"output missing '{target.value}' field")
        return value

    def validate_output(self, params: ExtractionInput, output: dict[str, Any], target: ExtractionTarget) -> None:
        if target.value not in output:
            raise SchemaViolationError(f"output missing '{target.value}' field")

        source = params.text.lower()
        if target is ExtractionTarget.ENTITY:
            _check_entities(source, output[target.value])
            return
        for item in _string_items(output[target.value]):
            if item.lower() not in source:
                raise HallucinationError(item)


def _string_items(value: object) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, list):
        return [item for item in value if isinstance(item, str)]
    return []


def _check_entities(source: str, entity: object) -> None:
    # A name is kept when any of its words occurs in the source.
    if not isinstance(entity, dict):
        return
    for field in ENTITY_FIELDS:
        values = entity.get(field)
        if not isinstance(values, list):
            continue
        for value in values:
            if not isinstance(value, str):
                continue
            if not any(word.lower() in source for word in value.split()):
                raise HallucinationError(value)

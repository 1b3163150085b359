import json

import pytest

from keel.core.types import SkillInvocation
from keel.errors import (
    EmptyInputError,
    HallucinationError,
    InvalidTargetError,
    MalformedOutputError,
    SchemaViolationError,
)
from keel.skills.contract import SkillContract, SkillRegistry
from keel.skills.extraction import ExtractionInput, ExtractionSkill, ExtractionTarget


def _generator(*responses: str):
    prompts: list[str] = []
    queue = list(responses)

    async def generate(prompt: str) -> str:
        prompts.append(prompt)
        return queue.pop(0)

    return generate, prompts


def test_target_lookup_ignores_case() -> None:
    assert ExtractionTarget.lookup("URL") is ExtractionTarget.URL
    assert ExtractionTarget.lookup("Entity") is ExtractionTarget.ENTITY
    assert ExtractionTarget.lookup("phone") is None


def test_validate_input() -> None:
    skill = ExtractionSkill()

    assert skill.validate_input(ExtractionInput(text="hello@keel.dev", target="EMAIL")) is ExtractionTarget.EMAIL
    with pytest.raises(EmptyInputError):
        skill.validate_input(ExtractionInput(text="", target="email"))
    with pytest.raises(InvalidTargetError) as excinfo:
        skill.validate_input(ExtractionInput(text="text", target="phone"))
    assert excinfo.value.target == "phone"
    assert str(excinfo.value) == "InvalidTarget: unknown target 'phone'"


def test_build_prompt_names_the_field_and_embeds_text() -> None:
    skill = ExtractionSkill()
    params = ExtractionInput(text="Meet Ada at Acme in Paris", target="entity")

    prompt = skill.build_prompt(params, ExtractionTarget.ENTITY)

    assert 'field named "entity"' in prompt
    assert "people" in prompt and "organizations" in prompt and "locations" in prompt
    assert "Do NOT invent values" in prompt
    assert prompt.endswith("Meet Ada at Acme in Paris")


def test_parse_output() -> None:
    skill = ExtractionSkill()

    assert skill.parse_output(' {"email": ["a@b.io"]} ', ExtractionTarget.EMAIL) == {"email": ["a@b.io"]}
    with pytest.raises(MalformedOutputError):
        skill.parse_output("not json", ExtractionTarget.EMAIL)
    with pytest.raises(MalformedOutputError):
        skill.parse_output('["a@b.io"]', ExtractionTarget.EMAIL)
    with pytest.raises(SchemaViolationError) as excinfo:
        skill.parse_output('{"url": "http://example.com"}', ExtractionTarget.EMAIL)
    assert str(excinfo.value) == "SchemaViolation: output missing 'email' field"


def test_scalar_values_must_appear_in_source() -> None:
    skill = ExtractionSkill()
    params = ExtractionInput(text="Write to Hello@Keel.dev or visit https://keel.dev", target="email")

    skill.validate_output(params, {"email": ["hello@keel.dev", 7]}, ExtractionTarget.EMAIL)
    skill.validate_output(params, {"url": "https://keel.dev"}, ExtractionTarget.URL)
    with pytest.raises(HallucinationError) as excinfo:
        skill.validate_output(params, {"email": ["fake@example.com"]}, ExtractionTarget.EMAIL)
    assert excinfo.value.value == "fake@example.com"
    assert str(excinfo.value) == "Hallucination: 'fake@example.com' not found in source text"


def test_entities_match_on_any_word() -> None:
    skill = ExtractionSkill()
    params = ExtractionInput(text="Ada joined Acme in Paris", target="entity")
    entity = {"people": ["Ada Lovelace"], "organizations": ["Acme Corp"], "locations": ["paris"]}

    skill.validate_output(params, {"entity": entity}, ExtractionTarget.ENTITY)
    with pytest.raises(HallucinationError) as excinfo:
        skill.validate_output(
            params,
            {"entity": {"people": ["Grace Hopper"], "organizations": [], "locations": []}},
            ExtractionTarget.ENTITY,
        )
    assert excinfo.value.value == "Grace Hopper"


def test_validate_output_requires_the_field() -> None:
    skill = ExtractionSkill()
    params = ExtractionInput(text="text", target="date")

    with pytest.raises(SchemaViolationError):
        skill.validate_output(params, {"email": []}, ExtractionTarget.DATE)


@pytest.mark.asyncio
async def test_execute_success_returns_json_output() -> None:
    generate, prompts = _generator('{"email": ["hello@keel.dev"]}')

    outcome = await ExtractionSkill().execute(ExtractionInput(text="ping hello@keel.dev", target="email"), generate)

    assert outcome.success
    assert json.loads(outcome.output) == {"email": ["hello@keel.dev"]}
    assert len(prompts) == 1


@pytest.mark.asyncio
async def test_execute_folds_errors_into_failed_outcome() -> None:
    generate, prompts = _generator()

    outcome = await ExtractionSkill().execute(ExtractionInput(text="", target="email"), generate)

    assert not outcome.success
    assert outcome.error == "EmptyInput: the input text is empty"
    assert prompts == []


@pytest.mark.asyncio
async def test_execute_reports_hallucination() -> None:
    generate, _ = _generator('{"email": ["fake@example.com"]}')

    outcome = await ExtractionSkill().execute(ExtractionInput(text="Contact us anytime", target="email"), generate)

    assert outcome.error == "Hallucination: 'fake@example.com' not found in source text"
    assert outcome.output == ""


@pytest.mark.asyncio
async def test_registry_executes_known_skills_only() -> None:
    registry = SkillRegistry.default()
    generate, _ = _generator('{"date": ["2024-05-01"]}')

    outcome = await registry.execute(
        SkillInvocation(name="extract", params=ExtractionInput(text="due 2024-05-01", target="date")),
        generate,
    )
    missing = await registry.execute(
        SkillInvocation(name="summarize", params=ExtractionInput(text="x", target="date")),
        generate,
    )

    assert outcome.success
    assert missing.error == "Unknown skill: summarize"


def test_registry_catalogue_and_models() -> None:
    registry = SkillRegistry.default()

    [entry] = registry.catalogue()
    assert (entry.name, entry.description, entry.version) == (
        "extract",
        "Extract structured information from unstructured text",
        "1.0.0",
    )
    assert registry.params_models() == {"extract": ExtractionInput}
    with pytest.raises(ValueError):
        registry.register(ExtractionSkill())


def test_contract_cannot_be_instantiated() -> None:
    with pytest.raises(TypeError):
        SkillContract()  # type: ignore[abstract]


def test_parse_output_rejects_deeply_nested_json() -> None:
    with pytest.raises(MalformedOutputError, match="invalid JSON"):
        ExtractionSkill().parse_output("[" * 100_000, ExtractionTarget.EMAIL)

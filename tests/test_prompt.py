from keel.config import PromptTemplates
from keel.core.prompt import PromptRenderer
from keel.core.state import ConversationState
from keel.core.types import ActionOutcome, Role


def _state() -> ConversationState:
    state = ConversationState.new_session("list files")
    state.append_message(Role.ASSISTANT, '{"tool": "shell", "command": "ls"}')
    state.record_outcome(ActionOutcome.ok("a.txt"))
    return state


def test_catalogues_are_substituted_into_system_prompt() -> None:
    renderer = PromptRenderer(
        PromptTemplates(system_prompt="Tools:\n{tools}\n\n{skills}"),
        tool_catalogue="- shell: Run a shell command",
        skill_catalogue="<available_skills>\n</available_skills>",
    )

    assert renderer.system_prompt == "Tools:\n- shell: Run a shell command\n\n<available_skills>\n</available_skills>"


def test_default_system_prompt_keeps_json_examples() -> None:
    renderer = PromptRenderer(PromptTemplates())

    assert '{"tool": "shell", "command": "ls -la"}' in renderer.system_prompt
    assert "{tools}" not in renderer.system_prompt


def test_render_layout() -> None:
    templates = PromptTemplates(
        system_prompt="SYSTEM",
        tool_response_schema="SCHEMA",
        corrective_instructions="FIX IT",
    )
    renderer = PromptRenderer(templates)

    plain = renderer.render(_state(), tool_succeeded=False, corrective=False)
    full = renderer.render(_state(), tool_succeeded=True, corrective=True)

    assert plain == (
        "SYSTEM\n\n"
        "User: list files\n\n"
        'Assistant: {"tool": "shell", "command": "ls"}\n\n'
        "Tool output:\na.txt\n\n"
        "Assistant: "
    )
    assert full.endswith("Tool output:\na.txt\n\nSCHEMA\n\nFIX IT\n\nAssistant: ")


def test_role_prefixes_are_configurable() -> None:
    templates = PromptTemplates(
        system_prompt="S",
        user_prefix="<user> ",
        assistant_prefix="<bot> ",
        tool_prefix="<tool> ",
        assistant_marker="<bot>",
    )

    prompt = PromptRenderer(templates).render(_state(), tool_succeeded=False, corrective=False)

    assert "<user> list files" in prompt
    assert "<tool> Tool output:" in prompt
    assert prompt.endswith("\n\n<bot>")

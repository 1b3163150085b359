"""Prompt rendering from conversation state."""

from __future__ import annotations

from keel.config import PromptTemplates
from keel.core.state import ConversationState
from keel.core.types import Role


class PromptRenderer:
    """Renders the full prompt for one inference call.

    Layout: system text (with tool and skill catalogues), every message in
    order, the observation/final-answer schema once a tool outcome has been
    accepted, the corrective block on retries, then the assistant marker.
    """

    def __init__(self, templates: PromptTemplates, *, tool_catalogue: str = "", skill_catalogue: str = "") -> None:
        self._templates = templates
        self._system_prompt = (
            templates.system_prompt.replace("{tools}", tool_catalogue).replace("{skills}", skill_catalogue).strip()
        )

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    def render(self, state: ConversationState, *, tool_succeeded: bool, corrective: bool) -> str:
        blocks: list[str] = [self._system_prompt]
        prefixes = {
            Role.USER: self._templates.user_prefix,
            Role.ASSISTANT: self._templates.assistant_prefix,
            Role.TOOL: self._templates.tool_prefix,
        }
        blocks.extend(f"{prefixes[message.role]}{message.content}" for message in state.messages)
        if tool_succeeded:
            blocks.append(self._templates.tool_response_schema)
        if corrective:
            blocks.append(self._templates.corrective_instructions)
        body = "\n\n".join(block for block in blocks if block)
        return f"{body}\n\n{self._templates.assistant_marker}"

"""Append-only conversation state for one agent session."""

from __future__ import annotations

from typing import Any

from keel.core.types import ActionKind, ActionOutcome, Message, Role
from keel.errors import ConversationCompletedError


class ConversationState:
    """Ordered message log plus the completion flag.

    The log only grows. Once ``mark_complete`` has been called the state is
    terminal: further appends and a second completion raise
    ``ConversationCompletedError``.
    """

    def __init__(self) -> None:
        self._messages: list[Message] = []
        self._final_answer: str | None = None

    @classmethod
    def new_session(cls, query: str) -> ConversationState:
        state = cls()
        state.append_message(Role.USER, query)
        return state

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def completed(self) -> bool:
        return self._final_answer is not None

    @property
    def final_answer(self) -> str | None:
        return self._final_answer

    def __len__(self) -> int:
        return len(self._messages)

    def append_message(self, role: Role, content: str) -> Message:
        self._ensure_open()
        message = Message(role=role, content=content)
        self._messages.append(message)
        return message

    def record_outcome(self, outcome: ActionOutcome, kind: ActionKind = ActionKind.TOOL) -> Message:
        """Append an execution outcome as a tool message the model can read back."""
        label = "Tool" if kind is ActionKind.TOOL else "Skill"
        if outcome.success:
            content = f"{label} output:\n{outcome.output}"
        else:
            content = f"{label} failed: {outcome.error or 'unknown error'}"
        return self.append_message(Role.TOOL, content)

    def mark_complete(self, answer: str) -> None:
        self._ensure_open()
        self._final_answer = answer

    def snapshot(self) -> dict[str, Any]:
        return {
            "history": [{"role": message.role.value, "content": message.content} for message in self._messages],
            "is_complete": self.completed,
            "final_answer": self._final_answer,
        }

    def _ensure_open(self) -> None:
        if self.completed:
            raise ConversationCompletedError(f"conversation already completed with answer: {self._final_answer!r}")

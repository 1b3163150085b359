"""Application-level exception types for Keel."""

from __future__ import annotations


class KeelError(Exception):
    """Base exception for Keel."""


class ConfigurationError(KeelError):
    """Base exception for configuration and startup validation errors."""


class ModelNotConfiguredError(ConfigurationError):
    """Raised when model configuration is missing."""


class InvalidModelFormatError(ConfigurationError):
    """Raised when model format is not provider:model."""


class ConversationCompletedError(KeelError):
    """Raised when a completed conversation is mutated."""


class BackendError(KeelError):
    """Raised when the inference backend fails to produce text."""


class ToolExecutionError(KeelError):
    """Raised when a tool cannot be executed at all (I/O or process failure)."""


class SkillError(KeelError):
    """Base exception for skill contract violations.

    Skill errors are never fatal to a session: the skill runner folds them into
    a failed outcome that the model gets to see.
    """

    kind = "SkillError"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return f"{self.kind}: {self.detail}"


class EmptyInputError(SkillError):
    kind = "EmptyInput"

    def __init__(self) -> None:
        super().__init__("the input text is empty")


class InvalidTargetError(SkillError):
    kind = "InvalidTarget"

    def __init__(self, target: str) -> None:
        super().__init__(f"unknown target '{target}'")
        self.target = target


class MalformedOutputError(SkillError):
    kind = "MalformedOutput"


class SchemaViolationError(SkillError):
    kind = "SchemaViolation"


class HallucinationError(SkillError):
    kind = "Hallucination"

    def __init__(self, value: str) -> None:
        super().__init__(f"'{value}' not found in source text")
        self.value = value

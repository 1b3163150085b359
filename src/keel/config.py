"""Configuration management for Keel."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import InvalidModelFormatError, ModelNotConfiguredError

MODEL_NOT_CONFIGURED_ERROR = "Model not configured. Set KEEL_MODEL (e.g., 'openai:gpt-4o-mini')."

DEFAULT_SYSTEM_PROMPT = """You are a helpful AI agent with access to tools.

Available tools:
{tools}

To invoke a tool, respond with JSON in this exact format:
{"tool": "shell", "command": "your command here"}

{skills}

To invoke a skill, respond with JSON in this exact format:
{"skill": "extract", "text": "source text", "target": "email"}

IMPORTANT:
- Only output JSON when you want to invoke a tool or a skill
- For final answers, respond in plain text (no JSON)
- Be concise and helpful

Example tool invocation:
{"tool": "shell", "command": "ls -la"}

Example final answer:
The directory contains 5 files including README.md and src/."""

DEFAULT_TOOL_RESPONSE_SCHEMA = """When responding after tool usage:
- First provide an OBSERVATIONS section containing factual information derived directly from tool output.
- Then provide a FINAL ANSWER section that directly answers the user request.

Both sections are required."""

DEFAULT_CORRECTIVE_INSTRUCTIONS = """CRITICAL: You MUST call a tool to complete this task.
Respond ONLY with valid JSON in the exact format shown above.
Do NOT explain what you will do. Do NOT use plain text. Output JSON only.

IMPORTANT: The tool command must directly produce the final answer.
Avoid commands that output headers, summaries, or non-answer lines.
The tool output should be the actual data requested, not metadata about it."""


class PromptTemplates(BaseModel):
    """Prompt text injected into the orchestration loop."""

    system_prompt: str = Field(
        default=DEFAULT_SYSTEM_PROMPT,
        description="System prompt; '{tools}' and '{skills}' are replaced with the catalogues",
    )
    tool_response_schema: str = Field(default=DEFAULT_TOOL_RESPONSE_SCHEMA)
    corrective_instructions: str = Field(default=DEFAULT_CORRECTIVE_INSTRUCTIONS)
    user_prefix: str = Field(default="User: ")
    assistant_prefix: str = Field(default="Assistant: ")
    tool_prefix: str = Field(default="")
    assistant_marker: str = Field(default="Assistant: ", description="Trailing marker opening the model's turn")


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="KEEL_",
        env_nested_delimiter="__",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Model Configuration
    model: str | None = Field(default=None, description="Model as provider:model (e.g., 'openai:gpt-4o-mini')")
    api_key: str | None = Field(default=None, description="API key for the LLM provider")
    api_base: str | None = Field(default=None, description="Optional API base URL")
    timeout_seconds: int | None = Field(default=90, description="Per-request timeout of the host backend")

    # Agent Configuration
    max_iterations: int = Field(default=5, ge=1, description="Maximum number of primary loop iterations")
    max_tokens: int = Field(default=256, ge=1, description="Tokens generated per inference call")
    inconclusive_max_length: int = Field(default=300, ge=0, description="Outputs at least this long are never inconclusive")
    confirm_tools: bool = Field(default=True, description="Ask before running shell commands")
    skills_dirs: list[Path] = Field(default_factory=list, description="Directories holding <skill>/SKILL.md manifests")
    prompts: PromptTemplates = Field(default_factory=PromptTemplates)

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Log level")

    def resolved_model(self) -> tuple[str, str]:
        """Return ``(provider, model)`` or raise a configuration error."""
        if not self.model:
            raise ModelNotConfiguredError(MODEL_NOT_CONFIGURED_ERROR)
        provider, separator, name = self.model.partition(":")
        if not separator or not provider or not name:
            raise InvalidModelFormatError(f"Invalid model '{self.model}'. Expected format provider:model.")
        return provider, name


def get_settings(**overrides: object) -> Settings:
    """Get application settings.

    Args:
        overrides: Explicit values (e.g. from CLI options) taking precedence over
            the environment and ``.env``. ``None`` values are ignored.

    Returns:
        Settings instance
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    return Settings(**values)

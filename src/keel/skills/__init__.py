"""Skill contracts, built-in skills and SKILL.md discovery."""

from .contract import SkillContract, SkillEntry, SkillRegistry
from .extraction import ExtractionInput, ExtractionSkill, ExtractionTarget
from .loader import SkillMetadata, discover_skills
from .view import render_skill_prompt

__all__ = [
    "ExtractionInput",
    "ExtractionSkill",
    "ExtractionTarget",
    "SkillContract",
    "SkillEntry",
    "SkillMetadata",
    "SkillRegistry",
    "discover_skills",
    "render_skill_prompt",
]

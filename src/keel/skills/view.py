"""Skill prompt rendering."""

from __future__ import annotations

from collections.abc import Sequence

from keel.skills.contract import SkillEntry
from keel.skills.loader import SkillMetadata


def render_skill_prompt(builtin: Sequence[SkillEntry], discovered: Sequence[SkillMetadata] = ()) -> str:
    """Render compact skill metadata for the system prompt."""

    if not builtin and not discovered:
        return ""

    lines = ["<available_skills>"]
    for entry in builtin:
        lines.extend([
            "  <skill>",
            f"    <name>{entry.name}</name>",
            f"    <description>{entry.description}</description>",
            "  </skill>",
        ])
    for skill in discovered:
        lines.extend([
            "  <skill>",
            f"    <name>{skill.name}</name>",
            f"    <description>{skill.description}</description>",
            f"    <location>{skill.location}</location>",
            "  </skill>",
        ])
    lines.append("</available_skills>")
    return "\n".join(lines)

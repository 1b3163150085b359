"""Discovery of SKILL.md manifests on disk."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

SKILL_FILE_NAME = "SKILL.md"
SKILL_NAME_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
ALLOWED_FRONTMATTER_FIELDS = frozenset(
    {"name", "description", "license", "compatibility", "metadata", "allowed-tools"}
)


class ManifestError(ValueError):
    """Raised for a SKILL.md whose frontmatter cannot be used."""


@dataclass(frozen=True)
class SkillMetadata:
    """Discovered skill metadata."""

    name: str
    description: str
    location: Path
    metadata: dict[str, Any] = field(default_factory=dict)


def discover_skills(skill_dirs: Iterable[Path]) -> list[SkillMetadata]:
    """Scan ``<dir>/<skill>/SKILL.md`` in every directory; first name wins."""

    skills_by_name: dict[str, SkillMetadata] = {}
    for root in skill_dirs:
        root = root.expanduser()
        if not root.is_dir():
            continue
        for skill_dir in sorted(root.iterdir()):
            skill_file = skill_dir / SKILL_FILE_NAME
            if not skill_file.is_file():
                continue
            try:
                metadata = read_skill(skill_file)
            except ManifestError as exc:
                logger.warning("skills.manifest.invalid path={} reason={}", skill_file, exc)
                continue
            key = metadata.name.casefold()
            if key not in skills_by_name:
                skills_by_name[key] = metadata

    return sorted(skills_by_name.values(), key=lambda item: item.name.casefold())


def read_skill(skill_file: Path) -> SkillMetadata:
    try:
        content = skill_file.read_text(encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"unreadable: {exc}") from exc

    frontmatter = parse_manifest(content)
    _validate_frontmatter(frontmatter)
    return SkillMetadata(
        name=str(frontmatter["name"]).strip(),
        description=str(frontmatter["description"]).strip(),
        location=skill_file.resolve(),
        metadata={key: value for key, value in frontmatter.items() if key not in ("name", "description")},
    )


def parse_manifest(content: str) -> dict[str, object]:
    """Parse the YAML frontmatter at the top of a SKILL.md."""

    lines = content.splitlines()
    if not lines or lines[0].strip() != "---":
        raise ManifestError("missing YAML frontmatter delimiter")

    for idx, line in enumerate(lines[1:], start=1):
        if line.strip() == "---":
            payload = "\n".join(lines[1:idx])
            try:
                parsed = yaml.safe_load(payload)
            except yaml.YAMLError as exc:
                raise ManifestError(f"invalid frontmatter: {exc}") from exc
            if not isinstance(parsed, dict):
                raise ManifestError("frontmatter must be a mapping")
            return {str(key).lower(): value for key, value in parsed.items()}
    raise ManifestError("missing YAML frontmatter content")


def _validate_frontmatter(metadata: dict[str, object]) -> None:
    unknown = sorted(key for key in metadata if key not in ALLOWED_FRONTMATTER_FIELDS)
    if unknown:
        raise ManifestError(f"unsupported fields: {', '.join(unknown)}")

    name = metadata.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ManifestError("'name' is required")
    normalized = name.strip()
    if len(normalized) > 64 or SKILL_NAME_PATTERN.fullmatch(normalized) is None:
        raise ManifestError(f"invalid name '{normalized}'")

    description = metadata.get("description")
    if not isinstance(description, str) or not description.strip():
        raise ManifestError("'description' is required")
    if len(description.strip()) > 1024:
        raise ManifestError("'description' is longer than 1024 characters")

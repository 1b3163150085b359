from pathlib import Path

import pytest

from keel.skills.contract import SkillEntry
from keel.skills.loader import ManifestError, discover_skills, parse_manifest
from keel.skills.view import render_skill_prompt


def _write_skill(root: Path, directory: str, content: str) -> Path:
    skill_dir = root / directory
    skill_dir.mkdir(parents=True)
    skill_file = skill_dir / "SKILL.md"
    skill_file.write_text(content, encoding="utf-8")
    return skill_file


def test_discover_skill_with_frontmatter(tmp_path: Path) -> None:
    _write_skill(
        tmp_path,
        "demo-skill",
        "---\nname: demo-skill\ndescription: demo skill\nlicense: MIT\n---\n\n# Demo\nBody text",
    )

    [skill] = discover_skills([tmp_path])

    assert skill.name == "demo-skill"
    assert skill.description == "demo skill"
    assert skill.metadata == {"license": "MIT"}
    assert skill.location.name == "SKILL.md"


def test_invalid_manifests_are_skipped_with_warning(tmp_path: Path, monkeypatch) -> None:
    warnings: list[str] = []
    monkeypatch.setattr("keel.skills.loader.logger.warning", lambda message, *args: warnings.append(message))

    _write_skill(tmp_path, "no-frontmatter", "# Just markdown\n")
    _write_skill(tmp_path, "no-description", "---\nname: no-description\n---\n")
    _write_skill(tmp_path, "bad-yaml", "---\nname: [unclosed\n---\n")
    _write_skill(tmp_path, "extra-field", "---\nname: extra-field\ndescription: d\nowner: me\n---\n")
    _write_skill(tmp_path, "good", "---\nname: good\ndescription: fine\n---\n")
    (tmp_path / "not-a-skill").mkdir()

    skills = discover_skills([tmp_path])

    assert [skill.name for skill in skills] == ["good"]
    assert len(warnings) == 4


def test_first_directory_wins_and_missing_directories_are_ignored(tmp_path: Path) -> None:
    project = tmp_path / "project"
    shared = tmp_path / "shared"
    _write_skill(project, "notes", "---\nname: notes\ndescription: project notes\n---\n")
    _write_skill(shared, "notes", "---\nname: notes\ndescription: shared notes\n---\n")
    _write_skill(shared, "alpha", "---\nname: alpha\ndescription: first\n---\n")

    skills = discover_skills([tmp_path / "missing", project, shared])

    assert [(skill.name, skill.description) for skill in skills] == [
        ("alpha", "first"),
        ("notes", "project notes"),
    ]


def test_parse_manifest_returns_lowercased_frontmatter() -> None:
    assert parse_manifest("---\nName: notes\nDescription: d\n---\n# Body\n") == {"name": "notes", "description": "d"}


def test_parse_manifest_errors() -> None:
    with pytest.raises(ManifestError, match="delimiter"):
        parse_manifest("name: x\n")
    with pytest.raises(ManifestError, match="content"):
        parse_manifest("---\nname: x\n")
    with pytest.raises(ManifestError, match="mapping"):
        parse_manifest("---\n- a\n---\n")


def test_render_skill_prompt(tmp_path: Path) -> None:
    _write_skill(tmp_path, "notes", "---\nname: notes\ndescription: take notes\n---\n")
    discovered = discover_skills([tmp_path])

    prompt = render_skill_prompt([SkillEntry("extract", "Extract things", "1.0.0")], discovered)

    lines = prompt.splitlines()
    assert lines[0] == "<available_skills>"
    assert lines[-1] == "</available_skills>"
    assert "    <name>extract</name>" in lines
    assert "    <description>take notes</description>" in lines
    assert f"    <location>{discovered[0].location}</location>" in lines


def test_render_skill_prompt_empty() -> None:
    assert render_skill_prompt([], []) == ""

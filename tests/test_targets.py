"""
Unit tests for install targets and project root detection.

Run with: python -m pytest tests/ -v
"""

import tempfile
from pathlib import Path

import pytest

from skillsync.core import SCOPE_GLOBAL, SCOPE_LOCAL
from skillsync.errors import ProjectNotFoundError
from skillsync.targets import (
    TARGET_NAMES,
    find_project_root,
    find_project_root_or_none,
    get_targets,
    parse_targets,
)


class TestTargetTable:
    """Tests for the per-tool directory conventions."""

    def test_all_tools_present(self):
        assert TARGET_NAMES == ("gemini", "claude", "codex", "opencode", "copilot", "cursor")

    def test_global_directories(self):
        home = Path("/home/user")
        targets = {t.name: t for t in get_targets(home)}

        assert targets["gemini"].global_install_dir == home / ".gemini" / "skills"
        assert targets["claude"].global_install_dir == home / ".claude" / "skills"
        assert targets["opencode"].global_install_dir == home / ".config" / "opencode" / "skill"
        assert targets["copilot"].global_install_dir == home / ".copilot" / "skills"
        assert targets["cursor"].global_install_dir == home / ".cursor" / "skills"

    def test_codex_installs_into_public(self):
        codex = parse_targets(["codex"], Path("/h"))[0]

        assert codex.global_skills_dir == Path("/h/.codex/skills")
        assert codex.global_install_dir == Path("/h/.codex/skills/public")
        assert codex.categories == ("public", ".system")

    def test_local_directories(self):
        project = Path("/work/project")
        targets = {t.name: t for t in get_targets(Path("/h"))}

        assert targets["claude"].local_dir(project) == project / ".claude" / "skills"
        assert targets["codex"].local_dir(project) == project / ".codex" / "skills"
        assert targets["opencode"].local_dir(project) == project / ".opencode" / "skill"
        assert targets["copilot"].local_dir(project) == project / ".github" / "skills"

    def test_location_labels(self):
        copilot = parse_targets(["copilot"], Path("/h"))[0]

        assert copilot.location_label(SCOPE_GLOBAL) == "GitHub Copilot / VSCode"
        assert copilot.location_label(SCOPE_LOCAL) == ".github/skills"

    def test_ensure_dirs_create_directories(self):
        with tempfile.TemporaryDirectory() as tmp:
            target = parse_targets(["codex"], Path(tmp) / "home")[0]

            assert target.ensure_install_dir().is_dir()
            assert target.ensure_local_install_dir(Path(tmp) / "proj").is_dir()
            assert (Path(tmp) / "proj" / ".codex" / "skills").is_dir()


class TestParseTargets:
    """Tests for parse_targets function."""

    def test_empty_selects_all(self):
        assert [t.name for t in parse_targets(None)] == list(TARGET_NAMES)
        assert [t.name for t in parse_targets([])] == list(TARGET_NAMES)

    def test_comma_separated_and_repeated(self):
        targets = parse_targets(["Claude, codex", "gemini", "claude"])
        assert [t.name for t in targets] == ["claude", "codex", "gemini"]

    def test_invalid_target(self):
        with pytest.raises(ValueError) as exc_info:
            parse_targets(["claude,vim"])
        assert "vim" in str(exc_info.value)
        assert "gemini" in str(exc_info.value)


class TestFindProjectRoot:
    """Tests for find_project_root function."""

    def test_walks_up_to_git_directory(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            (root / ".git").mkdir()
            nested = root / "src" / "pkg"
            nested.mkdir(parents=True)

            assert find_project_root(nested) == root

    def test_git_file_is_not_a_project(self):
        """Only a .git directory marks the root."""
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            (root / "outer" / ".git").mkdir(parents=True)
            inner = root / "outer" / "inner"
            inner.mkdir()
            (inner / ".git").write_text("gitdir: elsewhere")

            assert find_project_root(inner) == root / "outer"

    def test_not_found(self, monkeypatch):
        with tempfile.TemporaryDirectory() as tmp:
            start = Path(tmp).resolve()
            monkeypatch.setattr(Path, "is_dir", lambda self: False)

            with pytest.raises(ProjectNotFoundError):
                find_project_root(start)
            assert find_project_root_or_none(start) is None

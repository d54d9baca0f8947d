"""
Install targets: where each AI coding tool looks for skills.

Each tool has a global skills directory under the user's home, and a
project-local directory relative to the enclosing git repository.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .core import DIR_MODE, SCOPE_GLOBAL
from .errors import ProjectNotFoundError


@dataclass(frozen=True)
class SkillTarget:
    """
    One tool's skill directory conventions.

    global_skills_dir is scanned by `list`; global_install_dir receives new
    skills. They differ only for tools that group skills in category
    subfolders (Codex installs into skills/public).
    """
    name: str
    display_name: str
    global_skills_dir: Path
    global_install_dir: Path
    local_subdir: tuple
    categories: tuple = ()

    def local_dir(self, project_root: Path) -> Path:
        return Path(project_root).joinpath(*self.local_subdir)

    def ensure_install_dir(self) -> Path:
        self.global_install_dir.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        return self.global_install_dir

    def ensure_local_install_dir(self, project_root: Path) -> Path:
        path = self.local_dir(project_root)
        path.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        return path

    def location_label(self, scope: str) -> str:
        if scope == SCOPE_GLOBAL:
            return self.display_name
        return "/".join(self.local_subdir)


def get_targets(home: Optional[Path] = None) -> list[SkillTarget]:
    """All supported targets, rooted at home (default: the user's home)."""
    home = Path(home) if home is not None else Path.home()

    codex_skills = home / ".codex" / "skills"
    opencode_skills = home / ".config" / "opencode" / "skill"

    return [
        SkillTarget(
            name="gemini",
            display_name="Gemini CLI",
            global_skills_dir=home / ".gemini" / "skills",
            global_install_dir=home / ".gemini" / "skills",
            local_subdir=(".gemini", "skills"),
        ),
        SkillTarget(
            name="claude",
            display_name="Claude Code",
            global_skills_dir=home / ".claude" / "skills",
            global_install_dir=home / ".claude" / "skills",
            local_subdir=(".claude", "skills"),
        ),
        SkillTarget(
            name="codex",
            display_name="Codex CLI",
            global_skills_dir=codex_skills,
            global_install_dir=codex_skills / "public",
            local_subdir=(".codex", "skills"),
            categories=("public", ".system"),
        ),
        SkillTarget(
            name="opencode",
            display_name="OpenCode",
            global_skills_dir=opencode_skills,
            global_install_dir=opencode_skills,
            local_subdir=(".opencode", "skill"),
        ),
        SkillTarget(
            name="copilot",
            display_name="GitHub Copilot / VSCode",
            global_skills_dir=home / ".copilot" / "skills",
            global_install_dir=home / ".copilot" / "skills",
            local_subdir=(".github", "skills"),
        ),
        SkillTarget(
            name="cursor",
            display_name="Cursor IDE",
            global_skills_dir=home / ".cursor" / "skills",
            global_install_dir=home / ".cursor" / "skills",
            local_subdir=(".cursor", "skills"),
        ),
    ]


TARGET_NAMES = tuple(t.name for t in get_targets(Path("~")))


def parse_targets(values, home: Optional[Path] = None) -> list[SkillTarget]:
    """
    Select targets from CLI values.

    Accepts a list of names, each possibly comma-separated
    (["gemini,claude", "codex"]). Empty input selects every target.

    Raises:
        ValueError: an unknown target name
    """
    available = {t.name: t for t in get_targets(home)}

    names = []
    for value in values or []:
        for part in value.split(","):
            part = part.strip().lower()
            if part and part not in names:
                names.append(part)

    if not names:
        return list(available.values())

    invalid = [n for n in names if n not in available]
    if invalid:
        raise ValueError(
            f"Invalid target: {', '.join(invalid)} (valid targets: {', '.join(TARGET_NAMES)})"
        )

    return [available[n] for n in names]


def find_project_root(start: Optional[Path] = None) -> Path:
    """
    Walk up from start (default: cwd) to the first directory containing .git.

    Raises:
        ProjectNotFoundError: reached the filesystem root
    """
    current = Path(start) if start is not None else Path(os.getcwd())
    current = current.resolve()

    for directory in (current, *current.parents):
        if (directory / ".git").is_dir():
            return directory

    raise ProjectNotFoundError(current)


def find_project_root_or_none(start: Optional[Path] = None) -> Optional[Path]:
    try:
        return find_project_root(start)
    except ProjectNotFoundError:
        return None

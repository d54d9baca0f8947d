"""
SkillSync Core Library

This module contains the logic that works on local directories, independent
of the CLI interface and of git:

Main Features:
    - Console output: colored log helpers shared by every module
    - Skill discovery: find skills (directories with SKILL.md) in a checkout
    - Copy policy: recursive copy with exclusion rules
    - Installation fan-out: copy skills into many target directories
    - Removal fan-out: delete a skill from many target directories

Failures inside a fan-out are isolated per (skill, target, scope) and
reported in the returned summary instead of being raised.
"""

import os
import shutil
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .errors import NotASkillError, TargetPathNotFoundError


# =============================================================================
# Global Configuration
# =============================================================================

# Marker file that makes a directory a skill
SKILL_MARKER = "SKILL.md"

# Subdirectories that group skills one level deep (e.g. skills/, Codex public/)
CATEGORY_DIRS = (
    "skills",
    "claude-skills",
    "public",
    ".system",
)

# Never copied into a target directory
DEFAULT_COPY_EXCLUDES = (".git", ".DS_Store")

SCOPE_GLOBAL = "global"
SCOPE_LOCAL = "local"

STATUS_INSTALLED = "installed"
STATUS_REMOVED = "removed"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"
STATUS_NOT_FOUND = "not_found"

DIR_MODE = 0o755


# =============================================================================
# Terminal Color Handling
# =============================================================================

class Colors:
    """
    ANSI color code wrapper class.

    Class attributes are used because colors are a process-wide setting;
    disable() blanks them all at once.
    """
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"

    @classmethod
    def disable(cls):
        """Disable all color output."""
        cls.RESET = cls.BOLD = cls.DIM = cls.RED = cls.GREEN = ""
        cls.YELLOW = cls.BLUE = cls.CYAN = ""


if os.environ.get("NO_COLOR") or not sys.stdout.isatty():
    Colors.disable()
elif sys.platform == "win32" and not os.environ.get("WT_SESSION"):
    # Legacy Windows consoles need colorama to interpret ANSI codes
    try:
        import colorama
        colorama.init()
    except ImportError:
        Colors.disable()


# =============================================================================
# Logging Functions
# =============================================================================

def log_info(msg: str):
    """Info message (blue ℹ)."""
    print(f"{Colors.BLUE}ℹ{Colors.RESET} {msg}")


def log_success(msg: str):
    """Success message (green ✓)."""
    print(f"{Colors.GREEN}✓{Colors.RESET} {msg}")


def log_warning(msg: str):
    """Warning message (yellow ⚠)."""
    print(f"{Colors.YELLOW}⚠{Colors.RESET} {msg}")


def log_error(msg: str):
    """Error message (red ✗)."""
    print(f"{Colors.RED}✗{Colors.RESET} {msg}", file=sys.stderr)


# =============================================================================
# Skill Discovery and Parsing
# =============================================================================

@dataclass
class SkillInfo:
    """A skill found in a repository checkout."""
    name: str
    path: Path
    description: str = ""
    category: str = ""


@dataclass
class InstalledSkill:
    """A directory found in a target's skills folder."""
    name: str
    path: Path
    valid: bool
    category: str = ""


def is_skill_dir(path: Path) -> bool:
    """A directory is a skill if and only if it directly contains SKILL.md."""
    return path.is_dir() and (path / SKILL_MARKER).is_file()


def validate_skill_dir(path: Path) -> None:
    """Raise NotASkillError unless path is a skill directory."""
    if not is_skill_dir(path):
        raise NotASkillError(path)


def parse_skill_md(skill_md: Path) -> dict:
    """
    Parse the YAML frontmatter from a SKILL.md file.

    Only flat `key: value` lines are understood, which is all the marker
    metadata uses.

    Returns:
        dict with name and description (may be None)
    """
    content = skill_md.read_text(encoding="utf-8", errors="replace")

    result = {
        "name": None,
        "description": None,
    }

    if content.startswith("---"):
        parts = content.split("---", 2)
        if len(parts) >= 3:
            frontmatter = parts[1].strip()
            for line in frontmatter.splitlines():
                if ":" in line:
                    key, value = line.split(":", 1)
                    key = key.strip().lower()
                    value = value.strip().strip('"').strip("'")
                    if key in ("name", "description"):
                        result[key] = value

    return result


def read_skill_description(skill_dir: Path) -> str:
    """Description from the skill's frontmatter, or "" if it has none."""
    skill_md = skill_dir / SKILL_MARKER
    try:
        return parse_skill_md(skill_md).get("description") or ""
    except OSError:
        return ""


def _skill_from_dir(path: Path, category: str = "") -> SkillInfo:
    return SkillInfo(
        name=path.name,
        path=path,
        description=read_skill_description(path),
        category=category,
    )


def scan_skills(root: Path) -> list[SkillInfo]:
    """
    Find all skills in a repository checkout.

    Looks at the direct children of root, and one level into the known
    category directories. Hidden directories are skipped unless they are
    a known category. Results keep the filesystem listing order.
    """
    skills = []

    if not root.is_dir():
        return skills

    for entry in root.iterdir():
        if not entry.is_dir():
            continue
        if entry.name.startswith(".") and entry.name not in CATEGORY_DIRS:
            continue

        if is_skill_dir(entry):
            skills.append(_skill_from_dir(entry))
        elif entry.name in CATEGORY_DIRS:
            for child in entry.iterdir():
                if child.name.startswith("."):
                    continue
                if is_skill_dir(child):
                    skills.append(_skill_from_dir(child, category=entry.name))

    return skills


def resolve_repo_subdir(repo_root: Path, subdir: str) -> Path:
    """Join a repository-relative path, refusing paths that escape the root."""
    repo_root = repo_root.resolve()
    source_dir = (repo_root / Path(subdir)).resolve()
    try:
        source_dir.relative_to(repo_root)
    except ValueError as exc:
        raise ValueError(f"Skill path escapes repository root: {subdir}") from exc
    return source_dir


def collect_skills(root: Path, subdir: str = "", root_name: Optional[str] = None) -> list[SkillInfo]:
    """
    Build the list of installable skills for a checkout.

    Args:
        root: Checkout directory
        subdir: Path from a tree URL; when set, exactly that skill is returned
        root_name: Name for the repository root when it is itself a skill

    Raises:
        TargetPathNotFoundError: subdir does not exist in the checkout
        NotASkillError: subdir exists but has no SKILL.md
    """
    if subdir:
        skill_dir = resolve_repo_subdir(root, subdir)
        if not skill_dir.exists():
            raise TargetPathNotFoundError(subdir)
        validate_skill_dir(skill_dir)
        return [_skill_from_dir(skill_dir)]

    skills = scan_skills(root)
    if not skills and is_skill_dir(root):
        # Single-skill repository: the root is the skill
        skill = _skill_from_dir(root)
        skill.name = root_name or root.name
        skills = [skill]
    return skills


def scan_installed_skills(skills_dir: Path, categories: tuple = ()) -> list[InstalledSkill]:
    """
    List directories in a target's skills folder.

    Unlike scan_skills, directories without SKILL.md are reported too
    (valid=False) so the user can spot broken installs. Hidden directories
    are skipped unless they are valid skills or a known category.
    """
    installed = []

    if not skills_dir.is_dir():
        return installed

    for entry in skills_dir.iterdir():
        if not entry.is_dir():
            continue

        if entry.name in categories:
            for child in entry.iterdir():
                if not child.is_dir() or child.name.startswith("."):
                    continue
                installed.append(InstalledSkill(
                    name=child.name,
                    path=child,
                    valid=is_skill_dir(child),
                    category=entry.name,
                ))
            continue

        valid = is_skill_dir(entry)
        if entry.name.startswith(".") and not valid:
            continue
        installed.append(InstalledSkill(name=entry.name, path=entry, valid=valid))

    return installed


# =============================================================================
# Copy Policy
# =============================================================================

@dataclass(frozen=True)
class CopyOptions:
    """Rules applied to every recursive skill copy."""
    exclude: tuple = DEFAULT_COPY_EXCLUDES


def copy_skill_dir(source: Path, dest: Path, options: Optional[CopyOptions] = None) -> None:
    """Copy a skill directory tree to dest (which must not exist)."""
    options = options or CopyOptions()
    shutil.copytree(source, dest, ignore=shutil.ignore_patterns(*options.exclude))


def _remove_path(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    else:
        shutil.rmtree(path)


# =============================================================================
# Installation and Removal Fan-out
# =============================================================================

@dataclass
class TargetResult:
    """Outcome of one operation on one (target, scope) location."""
    target: str
    scope: str
    status: str
    destination: Optional[Path] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status in (STATUS_INSTALLED, STATUS_REMOVED)


@dataclass
class SkillInstallOutcome:
    skill: SkillInfo
    results: list[TargetResult] = field(default_factory=list)

    @property
    def installed(self) -> bool:
        """A skill counts as installed if any target accepted it."""
        return any(r.succeeded for r in self.results)


@dataclass
class InstallSummary:
    outcomes: list[SkillInstallOutcome] = field(default_factory=list)

    @property
    def total_installed(self) -> int:
        return sum(1 for o in self.outcomes if o.installed)

    @property
    def failed_skills(self) -> list[str]:
        return [o.skill.name for o in self.outcomes if not o.installed]


@dataclass
class RemovalSummary:
    skill_name: str
    results: list[TargetResult] = field(default_factory=list)

    @property
    def removed_count(self) -> int:
        return sum(1 for r in self.results if r.succeeded)


def _install_one(skill: SkillInfo, target, scope: str, ensure_root, options: CopyOptions) -> TargetResult:
    label = target.location_label(scope)

    try:
        dest_root = ensure_root()
    except OSError as e:
        log_warning(f"   Skipping {label}: {e}")
        return TargetResult(target.name, scope, STATUS_SKIPPED, error=str(e))

    dest = dest_root / skill.name
    try:
        if dest.exists() or dest.is_symlink():
            _remove_path(dest)
        copy_skill_dir(skill.path, dest, options)
    except OSError as e:
        # A half-copied directory would still list as an installed skill
        shutil.rmtree(dest, ignore_errors=True)
        log_warning(f"   Copy to {label} failed: {e}")
        return TargetResult(target.name, scope, STATUS_FAILED, destination=dest, error=str(e))

    log_success(f"   {label}: {dest}")
    return TargetResult(target.name, scope, STATUS_INSTALLED, destination=dest)


def install_skills(
    skills: list[SkillInfo],
    targets: list,
    install_global: bool = True,
    install_local: bool = False,
    project_root: Optional[Path] = None,
    copy_options: Optional[CopyOptions] = None,
) -> InstallSummary:
    """
    Copy every skill into every target, for each enabled scope.

    An existing destination directory is deleted first, so reinstalling
    replaces the skill instead of merging into it. Each (skill, target,
    scope) is independent: a failure is logged and recorded, and the loop
    moves on.

    Args:
        skills: Skills to install
        targets: SkillTarget-like objects (see skillsync.targets)
        install_global: Install into each target's global directory
        install_local: Install into each target's project directory
        project_root: Required for install_local
        copy_options: Copy exclusion rules

    Returns:
        InstallSummary with one outcome per skill
    """
    options = copy_options or CopyOptions()
    summary = InstallSummary()

    for skill in skills:
        log_info(f"Installing: {Colors.BOLD}{skill.name}{Colors.RESET}")
        outcome = SkillInstallOutcome(skill=skill)

        for target in targets:
            if install_global:
                outcome.results.append(
                    _install_one(skill, target, SCOPE_GLOBAL, target.ensure_install_dir, options)
                )

            if install_local:
                if project_root is None:
                    log_warning(f"   Skipping {target.location_label(SCOPE_LOCAL)}: no project root")
                    outcome.results.append(
                        TargetResult(target.name, SCOPE_LOCAL, STATUS_SKIPPED, error="no project root")
                    )
                    continue
                outcome.results.append(
                    _install_one(
                        skill,
                        target,
                        SCOPE_LOCAL,
                        lambda t=target: t.ensure_local_install_dir(project_root),
                        options,
                    )
                )

        summary.outcomes.append(outcome)

    return summary


def check_skill_name(skill_name: str) -> None:
    """Reject names that would point outside a skills directory."""
    name = skill_name.strip()
    if not name or name in (".", "..") or "/" in name or "\\" in name:
        raise ValueError(f"Invalid skill name: {skill_name!r}")


def remove_skill(
    skill_name: str,
    targets: list,
    local: bool = False,
    project_root: Optional[Path] = None,
) -> RemovalSummary:
    """
    Delete a skill from each target's install directory.

    The install directory is used rather than the scan directory, since a
    target may install into a nested folder (Codex uses skills/public).
    A missing skill is recorded as not_found and is not an error.
    """
    check_skill_name(skill_name)
    if local and project_root is None:
        raise ValueError("project_root is required for local removal")

    scope = SCOPE_LOCAL if local else SCOPE_GLOBAL
    summary = RemovalSummary(skill_name=skill_name)

    for target in targets:
        label = target.location_label(scope)
        install_dir = target.local_dir(project_root) if local else target.global_install_dir
        skill_path = install_dir / skill_name

        if not skill_path.exists() and not skill_path.is_symlink():
            log_warning(f"   {label}: not found")
            summary.results.append(TargetResult(target.name, scope, STATUS_NOT_FOUND, destination=skill_path))
            continue

        try:
            _remove_path(skill_path)
        except OSError as e:
            log_error(f"   {label}: failed to remove - {e}")
            summary.results.append(
                TargetResult(target.name, scope, STATUS_FAILED, destination=skill_path, error=str(e))
            )
            continue

        log_success(f"   Removed from {label}")
        summary.results.append(TargetResult(target.name, scope, STATUS_REMOVED, destination=skill_path))

    return summary

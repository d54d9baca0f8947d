"""
SkillSync Command Line Interface

Argument parsing and command handlers. Repository fetching lives in the git
module; discovery and the install/remove fan-out live in core.
"""

import argparse
import os
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .core import (
    SCOPE_GLOBAL,
    SCOPE_LOCAL,
    Colors,
    SkillInfo,
    collect_skills,
    install_skills,
    log_error,
    log_info,
    log_success,
    log_warning,
    remove_skill,
    scan_installed_skills,
)
from .errors import UpdateCheckError
from .git import RepositoryFetcher, extract_skill_name, is_tree_url, normalize_url, parse_tree_url
from .targets import find_project_root, find_project_root_or_none, parse_targets
from .updater import check_for_update_in_background, check_latest_version


# =============================================================================
# Helpers
# =============================================================================

def resolve_scopes(args) -> tuple:
    """
    Map --global/--local onto (install_global, install_local).

    No flag installs globally; --local alone installs into the project only;
    both flags install into both.
    """
    want_local = getattr(args, "local", False)
    want_global = getattr(args, "global_", False)

    if want_local and want_global:
        return True, True
    if want_local:
        return False, True
    return True, False


def confirm(prompt: str, default: bool) -> bool:
    hint = "[Y/n]" if default else "[y/N]"
    try:
        answer = input(f"{Colors.BOLD}{prompt} {hint}{Colors.RESET} ").strip().lower()
    except (KeyboardInterrupt, EOFError):
        print()
        return False

    if not answer:
        return default
    return answer in ("y", "yes")


def format_skill_line(skill: SkillInfo) -> str:
    if skill.description:
        return f"{Colors.CYAN}{skill.name}{Colors.RESET} - {skill.description}"
    return f"{Colors.CYAN}{skill.name}{Colors.RESET}"


def interactive_select(skills: list[SkillInfo]) -> list[SkillInfo]:
    """Numbered skill picker for plain terminals."""
    print(f"\n{Colors.BOLD}Select skills to install:{Colors.RESET}\n")

    for i, skill in enumerate(skills, 1):
        print(f"  {Colors.CYAN}{i:3}{Colors.RESET}. {Colors.BOLD}{skill.name}{Colors.RESET}")
        if skill.description:
            print(f"       {Colors.YELLOW}{skill.description}{Colors.RESET}")

    print(f"\n{Colors.BOLD}Enter selection:{Colors.RESET}")
    print("  - 'all' or '*' to install all")
    print("  - Comma-separated numbers (e.g., 1,3,5)")
    print("  - Range (e.g., 1-5)")
    print("  - 'q' to quit\n")

    try:
        selection = input(f"{Colors.GREEN}>{Colors.RESET} ").strip().lower()
    except (KeyboardInterrupt, EOFError):
        print()
        return []

    if selection in ("q", "quit", "exit", ""):
        return []

    if selection in ("all", "*"):
        return skills

    selected = []
    try:
        for part in selection.split(","):
            part = part.strip()
            if "-" in part:
                start, end = map(int, part.split("-"))
                indices = range(start, end + 1)
            else:
                indices = [int(part)]
            for i in indices:
                if 1 <= i <= len(skills) and skills[i - 1] not in selected:
                    selected.append(skills[i - 1])
    except ValueError:
        log_error("Invalid selection format")
        return []

    return selected


def select_by_name(skills: list[SkillInfo], names: str) -> tuple:
    """Split a comma-separated name list into (matched skills, unknown names)."""
    requested = [n.strip() for n in names.split(",") if n.strip()]
    by_name = {s.name.lower(): s for s in skills}

    selected = []
    missing = []
    for name in requested:
        skill = by_name.get(name.lower())
        if skill is None:
            missing.append(name)
        elif skill not in selected:
            selected.append(skill)
    return selected, missing


def show_install_preview(skills, targets, install_global: bool, install_local: bool, project_root) -> None:
    print(f"\n{Colors.BOLD}Installation preview:{Colors.RESET}")
    print(f"  Skills:  {', '.join(s.name for s in skills)}")
    print(f"  Targets: {', '.join(t.display_name for t in targets)}")
    if install_global:
        print("  Scope:   global")
        for target in targets:
            print(f"    {Colors.DIM}{target.global_install_dir}{Colors.RESET}")
    if install_local:
        print(f"  Scope:   project ({project_root})")
        for target in targets:
            print(f"    {Colors.DIM}{target.local_dir(project_root)}{Colors.RESET}")
    print()


# =============================================================================
# CLI Commands
# =============================================================================

def cmd_install(args):
    """install command: fetch a repository and copy skills into targets."""
    targets = parse_targets(args.target)
    install_global, install_local = resolve_scopes(args)

    project_root: Optional[Path] = None
    if install_local:
        project_root = find_project_root()
        log_info(f"Project root: {project_root}")

    source = args.repository
    fetcher = RepositoryFetcher(use_cache=not args.no_cache)

    if is_tree_url(source):
        tree = parse_tree_url(source)
        log_info(f"Cloning repository (branch: {tree.branch})...")
        print(f"   Source: {tree.clone_url()}")
        print(f"   Target Path: {tree.path}\n")
        explicit = True
    else:
        log_info("Cloning repository...")
        print(f"   Source: {normalize_url(source)}\n")
        explicit = False

    with fetcher.checkout(source) as checkout:
        skills = collect_skills(checkout.path, checkout.subdir, extract_skill_name(source))
        if not skills:
            log_error("No valid skills found in repository")
            return 1

        log_success(f"Found {len(skills)} skill(s)")

        if explicit or args.all:
            selected = skills
            for skill in selected:
                print(f"   {format_skill_line(skill)}")
        elif args.skills:
            selected, missing = select_by_name(skills, args.skills)
            if missing:
                log_warning(f"Skills not found in repository: {', '.join(missing)}")
                log_info("Available skills: " + ", ".join(s.name for s in skills))
        else:
            selected = interactive_select(skills)

        if not selected:
            log_warning("No skills selected")
            return 0

        show_install_preview(selected, targets, install_global, install_local, project_root)

        if not args.yes and not confirm("Proceed with installation?", default=True):
            log_warning("Installation cancelled")
            return 0

        summary = install_skills(
            selected,
            targets,
            install_global=install_global,
            install_local=install_local,
            project_root=project_root,
        )

    print()
    if summary.total_installed == 0:
        log_error("No skills installed successfully")
        return 1

    if summary.failed_skills:
        log_warning(f"Not installed: {', '.join(summary.failed_skills)}")
    log_success(f"Installation complete! {summary.total_installed} skill(s) installed")
    return 0


def _print_installed(title: str, directory: Path, entries) -> None:
    print(f"  {Colors.BOLD}{title}{Colors.RESET} ({len(entries)}):")
    print(f"  {Colors.DIM}{directory}{Colors.RESET}")

    # Root-level skills first, then each category
    categories = []
    for entry in entries:
        if entry.category and entry.category not in categories:
            categories.append(entry.category)

    for category in [""] + categories:
        group = [e for e in entries if e.category == category]
        if not group:
            continue
        indent = "    "
        if category:
            print(f"    {Colors.DIM}[{category}]{Colors.RESET}")
            indent = "      "
        for entry in group:
            if entry.valid:
                print(f"{indent}{Colors.GREEN}•{Colors.RESET} {entry.name}")
            else:
                print(f"{indent}{Colors.YELLOW}•{Colors.RESET} {entry.name} {Colors.YELLOW}(missing SKILL.md){Colors.RESET}")
    print()


def cmd_list(args):
    """list command: show skills installed in each target directory."""
    targets = parse_targets(args.target)
    project_root = find_project_root_or_none()

    sections = []
    for target in targets:
        entries = scan_installed_skills(target.global_skills_dir, target.categories)
        if entries:
            sections.append((target.display_name, target.global_skills_dir, entries))

    if project_root is not None:
        for target in targets:
            local_dir = target.local_dir(project_root)
            entries = scan_installed_skills(local_dir)
            if entries:
                label = f"{target.display_name} [{target.location_label(SCOPE_LOCAL)}]"
                sections.append((label, local_dir, entries))

    if not sections:
        log_warning("No installed skills found")
        return 0

    print(f"{Colors.BOLD}Installed Skills:{Colors.RESET}\n")
    for title, directory, entries in sections:
        _print_installed(title, directory, entries)

    return 0


def cmd_remove(args):
    """remove command: delete one skill from the selected targets."""
    targets = parse_targets(args.target)
    skill_name = args.skill_name

    project_root = find_project_root() if args.local else None
    scope = SCOPE_LOCAL if args.local else SCOPE_GLOBAL

    names = ", ".join(t.location_label(scope) for t in targets)
    log_warning(f"This will remove '{skill_name}' from: {names}")

    if not args.yes and not confirm("Are you sure you want to continue?", default=False):
        log_warning("Cancelled")
        return 0

    log_info(f"Removing skill: {skill_name}")
    summary = remove_skill(skill_name, targets, local=args.local, project_root=project_root)

    print()
    if summary.removed_count > 0:
        log_success(f"Skill '{skill_name}' removed successfully!")
    else:
        log_warning("No files were actually removed")
    return 0


def cmd_upgrade(args):
    """upgrade command: report whether a newer release exists."""
    try:
        result = check_latest_version(__version__)
    except UpdateCheckError as e:
        log_error(str(e))
        return 1

    if result.is_latest:
        log_success(f"You are using the latest version ({result.current_version})")
        return 0

    log_warning(f"A new version is available: {result.latest_version}")
    print(f"  Current: {result.current_version}")
    if result.release_url:
        print(f"  Release: {result.release_url}")
    if not args.check:
        print("  Run: pip install --upgrade skillsync")
    return 0


# =============================================================================
# Main Entry Point
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skillsync",
        description="Sync skills from Git repositories into AI coding tools",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Repository formats:
  owner/repo                                  GitHub short form
  https://github.com/owner/repo               Full URL
  git@github.com:owner/repo.git               SSH
  https://github.com/owner/repo/tree/br/path  A single skill

Examples:
  skillsync install AlfonsSkills/skills
  skillsync install AlfonsSkills/skills -t gemini,claude --all
  skillsync install AlfonsSkills/skills --local --skills pdf,xlsx
  skillsync list -t codex
  skillsync remove my-skill -t claude
  skillsync upgrade --check
"""
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    target_help = "Target tools, comma-separated (gemini, claude, codex, opencode, copilot, cursor; default: all)"

    # Install command
    install_parser = subparsers.add_parser("install", help="Install skills from a repository")
    install_parser.add_argument("repository", help="Repository reference or tree URL")
    install_parser.add_argument("--target", "-t", action="append", help=target_help)
    install_parser.add_argument("--local", "-l", action="store_true",
                                help="Install to project-local skills directories")
    install_parser.add_argument("--global", "-g", dest="global_", action="store_true",
                                help="Also install globally (with --local)")
    install_parser.add_argument("--skills", "-s", help="Comma-separated list of skills to install")
    install_parser.add_argument("--all", "-a", action="store_true", help="Install all skills")
    install_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")
    install_parser.add_argument("--no-cache", action="store_true",
                                help="Clone directly without the local mirror cache")
    install_parser.set_defaults(func=cmd_install)

    # List command
    list_parser = subparsers.add_parser("list", help="List installed skills")
    list_parser.add_argument("--target", "-t", action="append", help=target_help)
    list_parser.set_defaults(func=cmd_list)

    # Remove command
    remove_parser = subparsers.add_parser("remove", aliases=["uninstall"], help="Remove an installed skill")
    remove_parser.add_argument("skill_name", help="Name of the skill directory")
    remove_parser.add_argument("--target", "-t", action="append", help=target_help)
    remove_parser.add_argument("--local", "-l", action="store_true",
                               help="Remove from project-local skills directories")
    remove_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")
    remove_parser.set_defaults(func=cmd_remove)

    # Upgrade command
    upgrade_parser = subparsers.add_parser("upgrade", help="Check for a newer SkillSync release")
    upgrade_parser.add_argument("--check", "-c", action="store_true",
                                help="Only report the status, without upgrade instructions")
    upgrade_parser.set_defaults(func=cmd_upgrade)

    return parser


def main(argv=None):
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        code = args.func(args)
    except KeyboardInterrupt:
        print()
        return 130
    except Exception as e:
        log_error(f"Error: {e}")
        if os.environ.get("DEBUG"):
            raise
        return 1

    if args.command != "upgrade":
        check_for_update_in_background(__version__)

    return code


if __name__ == "__main__":
    sys.exit(main())

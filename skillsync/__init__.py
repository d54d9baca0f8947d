"""
SkillSync - Sync skills from Git repositories into AI coding tools

Public API:
    - repo_key: Canonical host/owner/repo key for a repository reference
    - parse_tree_url: Parse "browse to subdirectory" URLs
    - RepositoryCache: Persistent bare-mirror cache
    - RepositoryFetcher: Temporary checkouts via cache or direct clone
    - scan_skills: Find skills in a checkout
    - install_skills: Copy skills into many target directories
    - remove_skill: Delete a skill from many target directories
    - get_targets: Supported AI coding tools and their directories

CLI Entry Point:
    - main: CLI main function
"""

__version__ = "0.3.0"

from .errors import (
    SkillSyncError,
    InvalidReferenceError,
    EmptyReferenceError,
    InvalidSSHFormatError,
    InvalidURLError,
    InvalidPathError,
    UnsupportedTreeFormatError,
    GitCommandError,
    CloneFailedError,
    NotASkillError,
    TargetPathNotFoundError,
    ProjectNotFoundError,
    UpdateCheckError,
)

from .core import (
    # Constants
    SKILL_MARKER,
    CATEGORY_DIRS,

    # Logging
    Colors,
    log_info,
    log_success,
    log_warning,
    log_error,

    # Skill Discovery
    SkillInfo,
    scan_skills,
    validate_skill_dir,
    collect_skills,
    scan_installed_skills,

    # Installation and Removal
    CopyOptions,
    InstallSummary,
    RemovalSummary,
    install_skills,
    remove_skill,
)

from .git import (
    # Repository Identity
    RepoIdentity,
    parse_repo_identity,
    repo_key,
    normalize_url,

    # Tree URLs
    TreeReference,
    TreeURLParser,
    GitHubTreeURLParser,
    GitLabTreeURLParser,
    TREE_URL_PARSERS,
    is_tree_url,
    parse_tree_url,

    # Fetching
    run_git,
    CacheResult,
    RepositoryCache,
    Checkout,
    RepositoryFetcher,
)

from .targets import (
    SkillTarget,
    get_targets,
    parse_targets,
    find_project_root,
)

from .cli import main

__all__ = [
    # Errors
    "SkillSyncError",
    "InvalidReferenceError",
    "EmptyReferenceError",
    "InvalidSSHFormatError",
    "InvalidURLError",
    "InvalidPathError",
    "UnsupportedTreeFormatError",
    "GitCommandError",
    "CloneFailedError",
    "NotASkillError",
    "TargetPathNotFoundError",
    "ProjectNotFoundError",
    "UpdateCheckError",

    # Constants
    "SKILL_MARKER",
    "CATEGORY_DIRS",

    # Logging
    "Colors",
    "log_info",
    "log_success",
    "log_warning",
    "log_error",

    # Skill Discovery
    "SkillInfo",
    "scan_skills",
    "validate_skill_dir",
    "collect_skills",
    "scan_installed_skills",

    # Installation and Removal
    "CopyOptions",
    "InstallSummary",
    "RemovalSummary",
    "install_skills",
    "remove_skill",

    # Repository Identity
    "RepoIdentity",
    "parse_repo_identity",
    "repo_key",
    "normalize_url",

    # Tree URLs
    "TreeReference",
    "TreeURLParser",
    "GitHubTreeURLParser",
    "GitLabTreeURLParser",
    "TREE_URL_PARSERS",
    "is_tree_url",
    "parse_tree_url",

    # Fetching
    "run_git",
    "CacheResult",
    "RepositoryCache",
    "Checkout",
    "RepositoryFetcher",

    # Targets
    "SkillTarget",
    "get_targets",
    "parse_targets",
    "find_project_root",

    # CLI
    "main",
]

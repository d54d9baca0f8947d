"""
SkillSync Exceptions

Input-validation errors are permanent and abort the command. Git errors carry
the command output so the CLI can show what went wrong.
"""

from typing import Optional


class SkillSyncError(Exception):
    """Base class for all errors raised by skillsync."""


# =============================================================================
# Repository Reference Errors
# =============================================================================

class InvalidReferenceError(SkillSyncError, ValueError):
    """A repository reference string could not be understood."""

    def __init__(self, message: str, reference: Optional[str] = None):
        super().__init__(message)
        self.reference = reference


class EmptyReferenceError(InvalidReferenceError):
    pass


class InvalidSSHFormatError(InvalidReferenceError):
    pass


class InvalidURLError(InvalidReferenceError):
    pass


class InvalidPathError(InvalidReferenceError):
    pass


class UnsupportedTreeFormatError(InvalidReferenceError):
    pass


# =============================================================================
# Git Errors
# =============================================================================

class GitCommandError(SkillSyncError):
    """A git subprocess failed, was not found, or timed out."""

    def __init__(self, command: list, returncode: Optional[int] = None, output: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.output = output
        detail = f" ({returncode})" if returncode is not None else ""
        message = f"Git command failed{detail}: {' '.join(self.command)}"
        if output:
            message += f"\n{output}"
        super().__init__(message)


class CloneFailedError(SkillSyncError):
    """Neither the cache nor a direct clone produced a checkout."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        message = f"Failed to clone repository {url}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


# =============================================================================
# Skill Errors
# =============================================================================

class NotASkillError(SkillSyncError):
    """Directory does not contain the SKILL.md marker."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Not a valid skill (missing SKILL.md): {path}")


class TargetPathNotFoundError(SkillSyncError):
    """Tree URL path does not exist in the cloned repository."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Target path not found in repository: {path}")


# =============================================================================
# Environment Errors
# =============================================================================

class ProjectNotFoundError(SkillSyncError):
    """No enclosing git repository for a project-local operation."""

    def __init__(self, start):
        self.start = start
        super().__init__(f"Not in a git repository (searched upwards from {start})")


class UpdateCheckError(SkillSyncError):
    """Release metadata could not be fetched or understood."""

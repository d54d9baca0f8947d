"""Shared fixtures: a recording stand-in for the git binary and skill builders."""

import subprocess
from pathlib import Path

import pytest

from skillsync.core import Colors
from skillsync.errors import GitCommandError

# Assertions match plain text
Colors.disable()


def write_skill(path: Path, description: str = "", body: str = "Content") -> Path:
    """Create a skill directory with a SKILL.md marker."""
    path.mkdir(parents=True, exist_ok=True)
    if description:
        text = f"---\nname: {path.name}\ndescription: {description}\n---\n{body}"
    else:
        text = body
    (path / "SKILL.md").write_text(text)
    return path


class FakeGit:
    """
    Records git invocations instead of running them.

    Commands are classified as "mirror", "shared", "direct", "set-url" and
    "fetch". Names listed in fail_on raise GitCommandError; failing clones
    leave a partial destination behind, like an interrupted real clone.
    Successful working clones are populated from `files`.
    """

    def __init__(self, files=None, fail_on=()):
        self.calls = []
        self.files = dict(files or {})
        self.fail_on = set(fail_on)
        self.destinations = []

    @staticmethod
    def kind(args) -> str:
        if args[0] == "clone":
            if "--mirror" in args:
                return "mirror"
            if "--shared" in args:
                return "shared"
            return "direct"
        if "set-url" in args:
            return "set-url"
        if "fetch" in args:
            return "fetch"
        return args[0]

    def kinds(self) -> list:
        return [self.kind(a) for a in self.calls]

    def __call__(self, args, cwd=None):
        args = list(args)
        self.calls.append(args)
        kind = self.kind(args)

        if args[0] == "clone":
            dest = Path(args[-1])
            self.destinations.append(dest)
            dest.mkdir(parents=True, exist_ok=True)
            if kind in self.fail_on:
                (dest / "partial").write_text("")
                raise GitCommandError(["git"] + args, 128, "fatal: simulated failure")
            if kind != "mirror":
                for rel, content in self.files.items():
                    target = dest / rel
                    target.parent.mkdir(parents=True, exist_ok=True)
                    target.write_text(content)
        elif kind in self.fail_on:
            raise GitCommandError(["git"] + args, 1, "fatal: simulated failure")

        return subprocess.CompletedProcess(["git"] + args, 0, "", "")


@pytest.fixture
def fake_git():
    return FakeGit(files={
        "skills/pdf/SKILL.md": "---\ndescription: Work with PDFs\n---\nContent",
        "skills/xlsx/SKILL.md": "Content",
        "README.md": "# Skills",
    })

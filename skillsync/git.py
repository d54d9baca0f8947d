"""
Repository fetching for SkillSync.

Main Features:
    - Repository identity: map short/HTTPS/SSH/tree references onto one
      canonical host/owner/repo key
    - Tree URLs: pluggable parsers for "browse to subdirectory" links
    - Mirror cache: one bare mirror per repository identity, refreshed on use
    - Fetcher: working checkout from the cache, or a direct shallow clone

The system git binary is used for every network operation so the user's
proxy and credential configuration apply.
"""

import hashlib
import os
import re
import shutil
import subprocess
import sys
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Callable, Iterator, Optional, Protocol
from urllib.parse import urlsplit

from .core import log_info
from .errors import (
    CloneFailedError,
    EmptyReferenceError,
    GitCommandError,
    InvalidPathError,
    InvalidSSHFormatError,
    InvalidURLError,
    UnsupportedTreeFormatError,
)

if sys.platform != "win32":
    import fcntl
else:
    fcntl = None


# =============================================================================
# Global Configuration
# =============================================================================

# Host used for short owner/repo references
DEFAULT_HOST = "github.com"

# Directory name under the system temp root that holds the mirror cache
CACHE_NAMESPACE = "skillsync-cache"

# Environment variable overriding the cache root
CACHE_DIR_ENV = "SKILLSYNC_CACHE_DIR"

GitRunner = Callable[..., subprocess.CompletedProcess]


# =============================================================================
# Git Operations
# =============================================================================

def run_git(args: list, cwd: Optional[Path] = None) -> subprocess.CompletedProcess:
    """
    Unified interface for executing Git commands.

    Args:
        args: Git command arguments (without 'git' itself)
        cwd: Working directory

    Raises:
        GitCommandError: git is missing or exited non-zero
    """
    cmd = ["git"] + list(args)
    try:
        return subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError as e:
        raise GitCommandError(cmd, output="git executable was not found in PATH") from e
    except subprocess.CalledProcessError as e:
        details = (e.stderr or e.stdout or "").strip()
        raise GitCommandError(cmd, e.returncode, details) from e


# =============================================================================
# Tree URL Parsing
# =============================================================================

@dataclass(frozen=True)
class TreeReference:
    """A reference to a subdirectory of one branch of a repository."""
    platform: str
    owner: str
    repo: str
    branch: str
    path: str

    def clone_url(self) -> str:
        if self.platform == "github":
            host = "github.com"
        elif self.platform == "gitlab":
            host = "gitlab.com"
        else:
            # Self-hosted instances use their host name as the platform
            host = self.platform
        return f"https://{host}/{self.owner}/{self.repo}.git"

    @property
    def repo_slug(self) -> str:
        return f"{self.owner}/{self.repo}"


class TreeURLParser(Protocol):
    """One hosting platform's subdirectory URL format."""

    def matches(self, reference: str) -> bool:
        ...

    def parse(self, reference: str) -> TreeReference:
        ...

    def platform_name(self) -> str:
        ...


_GITHUB_TREE_RE = re.compile(r"^https://github\.com/([^/]+)/([^/]+)/tree/([^/]+)/(.+)$")

_GITHUB_PREFIXES = (
    ("https://github.com/", "https://github.com/"),
    ("http://github.com/", "https://github.com/"),
    ("https://www.github.com/", "https://github.com/"),
    ("http://www.github.com/", "https://github.com/"),
    ("github.com/", "https://github.com/"),
    ("www.github.com/", "https://github.com/"),
)


def _normalize_github_tree_url(reference: str) -> Optional[str]:
    """
    Rewrite the loose GitHub forms into https://github.com/...

    Returns None for anything that is clearly not GitHub: other schemes,
    SSH shorthand, or a first segment that looks like another host.
    """
    normalized = reference.strip().rstrip("/")
    if not normalized:
        return None

    for prefix, canonical in _GITHUB_PREFIXES:
        if normalized.startswith(prefix):
            return canonical + normalized[len(prefix):]

    if "://" in normalized or normalized.startswith("git@"):
        return None

    first_segment = normalized.split("/", 1)[0]
    if "." in first_segment or "@" in first_segment:
        return None

    # owner/repo/tree/branch/path without a host
    return "https://github.com/" + normalized


class GitHubTreeURLParser:
    """Parses https://github.com/{owner}/{repo}/tree/{branch}/{path...}"""

    def platform_name(self) -> str:
        return "github"

    def matches(self, reference: str) -> bool:
        normalized = _normalize_github_tree_url(reference)
        return normalized is not None and _GITHUB_TREE_RE.match(normalized) is not None

    def parse(self, reference: str) -> TreeReference:
        normalized = _normalize_github_tree_url(reference)
        match = _GITHUB_TREE_RE.match(normalized) if normalized else None
        if not match:
            raise UnsupportedTreeFormatError(f"Invalid GitHub tree URL format: {reference}", reference)

        owner, repo, branch, path = match.groups()
        return TreeReference(
            platform=self.platform_name(),
            owner=owner,
            repo=repo,
            branch=branch,
            path=path,
        )


_GITLAB_TREE_RE = re.compile(r"^https?://([^/]+)/([^/]+)/([^/]+)/-/tree/([^/]+)/(.+)$")


class GitLabTreeURLParser:
    """
    Parses https://{host}/{owner}/{repo}/-/tree/{branch}/{path...}

    gitlab.com maps to the "gitlab" platform; any other host is kept as the
    platform name so self-hosted instances clone from their own host.
    """

    def platform_name(self) -> str:
        return "gitlab"

    def matches(self, reference: str) -> bool:
        return _GITLAB_TREE_RE.match(reference.strip().rstrip("/")) is not None

    def parse(self, reference: str) -> TreeReference:
        match = _GITLAB_TREE_RE.match(reference.strip().rstrip("/"))
        if not match:
            raise UnsupportedTreeFormatError(f"Invalid GitLab tree URL format: {reference}", reference)

        host, owner, repo, branch, path = match.groups()
        host = host.lower()
        platform = self.platform_name() if host in ("gitlab.com", "www.gitlab.com") else host
        return TreeReference(
            platform=platform,
            owner=owner,
            repo=repo,
            branch=branch,
            path=path,
        )


# Tried in order; the first match wins
TREE_URL_PARSERS: list = [
    GitHubTreeURLParser(),
    GitLabTreeURLParser(),
]


def is_tree_url(reference: str, parsers: Optional[list] = None) -> bool:
    """True if any registered parser recognizes reference."""
    return any(p.matches(reference) for p in (parsers or TREE_URL_PARSERS))


def parse_tree_url(reference: str, parsers: Optional[list] = None) -> TreeReference:
    """Parse reference with the first matching parser."""
    for parser in parsers or TREE_URL_PARSERS:
        if parser.matches(reference):
            return parser.parse(reference)
    raise UnsupportedTreeFormatError(f"Unsupported tree URL format: {reference}", reference)


# =============================================================================
# Repository Identity
# =============================================================================

@dataclass(frozen=True)
class RepoIdentity:
    host: str
    owner: str
    repo: str

    @property
    def key(self) -> str:
        return f"{self.host}/{self.owner}/{self.repo}"


def _is_scp_like(reference: str) -> bool:
    # user@host:owner/repo; an @ after the first slash belongs to a path
    if "://" in reference or "@" not in reference:
        return False
    return "/" not in reference.split("@", 1)[0]


def _build_identity(host: str, path: str, reference: str) -> RepoIdentity:
    host = host.strip()
    if not host:
        raise InvalidURLError(f"Invalid repository host: {reference}", reference)

    path = path.strip("/")
    segments = path.split("/") if path else []
    if len(segments) < 2:
        raise InvalidPathError(f"Invalid repository path: {reference}", reference)

    # Segments past owner/repo belong to tree paths, not to the identity
    owner = segments[0].strip()
    repo = segments[1].strip()
    if repo.endswith(".git"):
        repo = repo[:-4]
    if not owner or not repo:
        raise InvalidPathError(f"Invalid repository path: {reference}", reference)

    return RepoIdentity(host=host.lower(), owner=owner.lower(), repo=repo.lower())


def parse_repo_identity(reference: str, default_host: str = DEFAULT_HOST) -> RepoIdentity:
    """
    Normalize a repository reference into its identity.

    Supported formats:
        - Short form: owner/repo
        - URL: https://github.com/owner/repo(.git), ssh://git@host:22/owner/repo
        - SSH shorthand: git@github.com:owner/repo(.git)
        - Bare host: gitlab.com/owner/repo
        - Tree URL: https://github.com/owner/repo/tree/main/path

    Raises:
        InvalidReferenceError subclasses for malformed input
    """
    normalized = reference.strip().rstrip("/")
    if not normalized:
        raise EmptyReferenceError("Empty repository reference", reference)

    # Cache entries are per repository, never per subdirectory
    if is_tree_url(normalized):
        normalized = parse_tree_url(normalized).clone_url()

    if _is_scp_like(normalized):
        at_index = normalized.index("@")
        colon_index = normalized.find(":", at_index + 1)
        if colon_index <= at_index + 1:
            raise InvalidSSHFormatError(f"Invalid SSH repository format: {reference}", reference)
        host = normalized[at_index + 1:colon_index]
        return _build_identity(host, normalized[colon_index + 1:], reference)

    if "://" in normalized:
        try:
            parsed = urlsplit(normalized)
            parsed.port
        except ValueError as e:
            raise InvalidURLError(f"Invalid repository URL: {reference} ({e})", reference) from e
        host = parsed.netloc.rpartition("@")[2]
        return _build_identity(host, parsed.path, reference)

    parts = normalized.split("/")
    if len(parts) < 2:
        raise InvalidPathError(f"Invalid repository reference: {reference}", reference)

    if "." in parts[0]:
        return _build_identity(parts[0], "/".join(parts[1:]), reference)

    return _build_identity(default_host, normalized, reference)


def repo_key(reference: str, default_host: str = DEFAULT_HOST) -> str:
    """Canonical host/owner/repo key for a reference."""
    return parse_repo_identity(reference, default_host).key


def normalize_url(reference: str, default_host: str = DEFAULT_HOST) -> str:
    """
    Convert a reference into a URL that git can clone.

    Examples:
        owner/repo                 -> https://github.com/owner/repo.git
        https://github.com/o/r     -> https://github.com/o/r.git
        git@github.com:o/r.git     -> git@github.com:o/r.git
        gitlab.com/o/r             -> https://gitlab.com/o/r.git
    """
    source = reference.strip().rstrip("/")

    if is_tree_url(source):
        return parse_tree_url(source).clone_url()

    suffix = "" if source.endswith(".git") else ".git"

    if "://" in source or _is_scp_like(source):
        return source + suffix

    if "." in source.split("/", 1)[0]:
        return f"https://{source}{suffix}"

    return f"https://{default_host}/{source}{suffix}"


def extract_skill_name(reference: str) -> str:
    """Name for a skill that is the whole repository (or tree path)."""
    source = reference.strip().rstrip("/")
    if is_tree_url(source):
        return PurePosixPath(parse_tree_url(source).path).name

    name = re.split(r"[/:]", source)[-1]
    if name.endswith(".git"):
        name = name[:-4]
    return name or source


# =============================================================================
# Mirror Cache
# =============================================================================

def default_cache_root() -> Path:
    override = os.environ.get(CACHE_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path(tempfile.gettempdir()) / CACHE_NAMESPACE / "git"


@dataclass(frozen=True)
class CacheResult:
    """
    Result of RepositoryCache.ensure().

    A hit carries the mirror path. A miss carries the reason and tells the
    caller to clone over the network instead; it is never fatal.
    """
    path: Optional[Path] = None
    miss_reason: Optional[str] = None

    @property
    def hit(self) -> bool:
        return self.path is not None

    @classmethod
    def miss(cls, reason: str) -> "CacheResult":
        return cls(miss_reason=reason)


class RepositoryCache:
    """
    Bare mirrors of remote repositories, one per repository identity.

    Mirrors live at <cache_root>/<sha256(key)>.git and persist across runs.
    Callers that update a mirror and then clone from it should hold lock()
    around both steps.
    """

    def __init__(
        self,
        cache_root: Optional[Path] = None,
        default_host: str = DEFAULT_HOST,
        git: GitRunner = run_git,
    ):
        self.cache_root = Path(cache_root) if cache_root is not None else default_cache_root()
        self.default_host = default_host
        self.git = git

    def path_for(self, reference: str) -> Path:
        key = repo_key(reference, self.default_host)
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.cache_root / f"{digest}.git"

    @contextmanager
    def lock(self, cache_path: Path) -> Iterator[None]:
        """Exclusive advisory lock on one mirror (no-op on Windows)."""
        lock_path = cache_path.with_name(cache_path.name + ".lock")
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        with open(lock_path, "w") as handle:
            if fcntl is not None:
                fcntl.flock(handle, fcntl.LOCK_EX)
            try:
                yield
            finally:
                if fcntl is not None:
                    fcntl.flock(handle, fcntl.LOCK_UN)

    def ensure(self, reference: str) -> CacheResult:
        """
        Create or refresh the mirror for reference.

        The mirror's origin is reset to the URL form used this time, so
        switching between SSH and HTTPS reuses the same mirror. A mirror
        that cannot be updated is removed.

        Raises:
            InvalidReferenceError: reference cannot be normalized
        """
        cache_path = self.path_for(reference)
        url = normalize_url(reference, self.default_host)

        try:
            cache_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return CacheResult.miss(f"cannot create cache directory: {e}")

        if not cache_path.exists():
            try:
                self.git(["clone", "--mirror", url, str(cache_path)])
            except GitCommandError as e:
                shutil.rmtree(cache_path, ignore_errors=True)
                return CacheResult.miss(f"mirror clone failed: {e}")
            return CacheResult(path=cache_path)

        try:
            self.git(["-C", str(cache_path), "remote", "set-url", "origin", url])
            self.git(["-C", str(cache_path), "fetch", "--prune", "--tags"])
        except GitCommandError as e:
            # Drop the mirror so the next run starts from a fresh clone
            shutil.rmtree(cache_path, ignore_errors=True)
            return CacheResult.miss(f"mirror update failed: {e}")

        return CacheResult(path=cache_path)


# =============================================================================
# Fetcher
# =============================================================================

@dataclass
class Checkout:
    """A temporary working copy of one branch of a repository."""
    path: Path
    clone_url: str
    subdir: str = ""
    branch: Optional[str] = None
    from_cache: bool = False

    @property
    def source_dir(self) -> Path:
        return self.path / self.subdir if self.subdir else self.path


class RepositoryFetcher:
    """
    Produces working checkouts for repository references.

    The mirror cache is tried first and a direct shallow clone is the
    fallback. Use checkout() so the temporary directory is always removed.
    """

    def __init__(
        self,
        cache: Optional[RepositoryCache] = None,
        default_host: str = DEFAULT_HOST,
        git: GitRunner = run_git,
        use_cache: bool = True,
    ):
        self.default_host = default_host
        self.git = git
        if use_cache:
            self.cache = cache if cache is not None else RepositoryCache(default_host=default_host, git=git)
        else:
            self.cache = None

    def resolve(self, reference: str) -> Checkout:
        """
        Clone reference into a new temporary directory.

        The caller owns the returned directory and must remove it.

        Raises:
            InvalidReferenceError: reference is malformed
            CloneFailedError: both the cache and the direct clone failed
        """
        source = reference.strip().rstrip("/")
        if not source:
            raise EmptyReferenceError("Empty repository reference", reference)

        if is_tree_url(source):
            tree = parse_tree_url(source)
            clone_url = tree.clone_url()
            branch = tree.branch
            subdir = tree.path
            cache_source = clone_url
        else:
            # Validate before touching the network
            repo_key(source, self.default_host)
            clone_url = normalize_url(source, self.default_host)
            branch = None
            subdir = ""
            cache_source = source

        temp_dir = Path(tempfile.mkdtemp(prefix="skillsync-"))
        completed = False
        try:
            from_cache = self.cache is not None and self._clone_via_cache(cache_source, temp_dir, branch)
            if not from_cache:
                self._clone_direct(clone_url, temp_dir, branch)
            completed = True
        finally:
            if not completed:
                shutil.rmtree(temp_dir, ignore_errors=True)

        return Checkout(
            path=temp_dir,
            clone_url=clone_url,
            subdir=subdir,
            branch=branch,
            from_cache=from_cache,
        )

    @contextmanager
    def checkout(self, reference: str) -> Iterator[Checkout]:
        """Context manager around resolve() that removes the checkout on exit."""
        result = self.resolve(reference)
        try:
            yield result
        finally:
            shutil.rmtree(result.path, ignore_errors=True)

    def _clone_via_cache(self, source: str, dest: Path, branch: Optional[str]) -> bool:
        try:
            cache_path = self.cache.path_for(source)
            with self.cache.lock(cache_path):
                result = self.cache.ensure(source)
                if not result.hit:
                    if os.environ.get("DEBUG"):
                        log_info(f"Cache miss: {result.miss_reason}")
                    return False

                args = ["clone", "--shared"]
                if branch:
                    args += ["--branch", branch]
                args += [str(result.path), str(dest)]
                self.git(args)
                return True
        except (GitCommandError, OSError) as e:
            if os.environ.get("DEBUG"):
                log_info(f"Cache clone failed: {e}")
            self._reset_dir(dest)
            return False

    def _clone_direct(self, clone_url: str, dest: Path, branch: Optional[str]) -> None:
        # git creates the destination itself
        shutil.rmtree(dest, ignore_errors=True)

        args = ["clone", "--depth", "1"]
        if branch:
            args += ["--branch", branch]
        args += [clone_url, str(dest)]

        try:
            self.git(args)
        except GitCommandError as e:
            raise CloneFailedError(clone_url, e.output or str(e)) from e

    @staticmethod
    def _reset_dir(path: Path) -> None:
        shutil.rmtree(path, ignore_errors=True)
        path.mkdir(parents=True, exist_ok=True)

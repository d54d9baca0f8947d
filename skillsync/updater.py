"""
Release checks against the latest GitHub release.

The post-command check is opportunistic: it runs in a daemon thread, gives
up after a few seconds, and never reports its own failures.
"""

import os
import re
import threading
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from .core import Colors
from .errors import UpdateCheckError


# =============================================================================
# Global Configuration
# =============================================================================

RELEASE_API = "https://api.github.com/repos/AlfonsSkills/SkillSync/releases/latest"

# Wall-clock limit for the check that follows every command
UPDATE_CHECK_TIMEOUT = 3.0

# Set to any value to skip the post-command check
NO_UPDATE_CHECK_ENV = "SKILLSYNC_NO_UPDATE_CHECK"

DEV_VERSION = "dev"


@dataclass
class CheckResult:
    current_version: str
    latest_version: str
    is_latest: bool
    release_url: str = ""


def normalize_version(version: str) -> tuple:
    """'v1.2.3' -> (1, 2, 3); non-numeric suffixes are ignored."""
    version = version.strip().lstrip("vV")
    parts = []
    for piece in version.split("."):
        match = re.match(r"\d+", piece)
        if not match:
            break
        parts.append(int(match.group()))
    return tuple(parts)


def check_latest_version(
    current_version: str,
    client: Optional[httpx.Client] = None,
    timeout: float = 10.0,
) -> CheckResult:
    """
    Compare current_version with the latest published release.

    Args:
        current_version: Installed version string
        client: HTTP client to use (a new one is created when omitted)
        timeout: Request timeout in seconds

    Raises:
        UpdateCheckError: the request failed or the response had no tag
    """
    owns_client = client is None
    if owns_client:
        client = httpx.Client(timeout=timeout, follow_redirects=True)

    try:
        resp = client.get(RELEASE_API, headers={"Accept": "application/vnd.github+json"})
        resp.raise_for_status()
        data = resp.json()
    except httpx.HTTPError as e:
        raise UpdateCheckError(f"Failed to check for updates: {e}") from e
    except ValueError as e:
        raise UpdateCheckError(f"Failed to parse release info: {e}") from e
    finally:
        if owns_client:
            client.close()

    latest = data.get("tag_name") if isinstance(data, dict) else None
    if not latest:
        raise UpdateCheckError("Failed to parse release info: missing tag_name")

    is_latest = (
        current_version == DEV_VERSION
        or normalize_version(current_version) >= normalize_version(latest)
    )

    return CheckResult(
        current_version=current_version,
        latest_version=latest,
        is_latest=is_latest,
        release_url=data.get("html_url") or "",
    )


def check_for_update_in_background(
    current_version: str,
    timeout: float = UPDATE_CHECK_TIMEOUT,
    checker: Callable[[str], CheckResult] = check_latest_version,
) -> Optional[CheckResult]:
    """
    Print a notice when a newer release exists.

    Skipped for development builds and when SKILLSYNC_NO_UPDATE_CHECK is
    set. Returns the result if the check finished in time, else None.
    """
    if current_version == DEV_VERSION or os.environ.get(NO_UPDATE_CHECK_ENV):
        return None

    outcome = {}

    def worker():
        try:
            outcome["result"] = checker(current_version)
        except Exception:
            # A failed check must never affect the command that just ran
            pass

    thread = threading.Thread(target=worker, name="skillsync-update-check", daemon=True)
    thread.start()
    thread.join(timeout)

    result = outcome.get("result")
    if result is None:
        return None

    if not result.is_latest:
        print(
            f"\n{Colors.YELLOW}⚠ A new version is available: {result.latest_version} "
            f"(current: {result.current_version}){Colors.RESET}"
        )
        print("  Run 'skillsync upgrade' to upgrade")

    return result

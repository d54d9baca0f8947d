"""
Unit tests for the release check.

HTTP is served by httpx.MockTransport; nothing leaves the machine.
Run with: python -m pytest tests/ -v
"""

import time

import httpx
import pytest

from skillsync.errors import UpdateCheckError
from skillsync.updater import (
    RELEASE_API,
    CheckResult,
    check_for_update_in_background,
    check_latest_version,
    normalize_version,
)


def make_client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def release_handler(tag, status=200):
    def handler(request):
        assert str(request.url) == RELEASE_API
        return httpx.Response(status, json={"tag_name": tag, "html_url": f"https://example.com/{tag}"})
    return handler


class TestNormalizeVersion:
    """Tests for normalize_version function."""

    def test_strips_prefix(self):
        assert normalize_version("v1.2.3") == (1, 2, 3)
        assert normalize_version("1.2.3") == (1, 2, 3)

    def test_ignores_suffixes(self):
        assert normalize_version("v0.4.0-rc1") == (0, 4, 0)


class TestCheckLatestVersion:
    """Tests for check_latest_version function."""

    def test_newer_release_available(self):
        with make_client(release_handler("v0.5.0")) as client:
            result = check_latest_version("0.3.0", client=client)

        assert not result.is_latest
        assert result.latest_version == "v0.5.0"
        assert result.release_url == "https://example.com/v0.5.0"

    def test_same_version_is_latest(self):
        with make_client(release_handler("v0.3.0")) as client:
            assert check_latest_version("0.3.0", client=client).is_latest

    def test_dev_build_is_always_latest(self):
        with make_client(release_handler("v9.9.9")) as client:
            assert check_latest_version("dev", client=client).is_latest

    def test_http_error(self):
        with make_client(release_handler("v1.0.0", status=503)) as client:
            with pytest.raises(UpdateCheckError):
                check_latest_version("0.3.0", client=client)

    def test_missing_tag(self):
        def handler(request):
            return httpx.Response(200, json={"message": "Not Found"})

        with make_client(handler) as client:
            with pytest.raises(UpdateCheckError):
                check_latest_version("0.3.0", client=client)

    def test_invalid_json(self):
        def handler(request):
            return httpx.Response(200, text="<html>")

        with make_client(handler) as client:
            with pytest.raises(UpdateCheckError):
                check_latest_version("0.3.0", client=client)


class TestBackgroundCheck:
    """Tests for check_for_update_in_background function."""

    def test_prints_notice_for_newer_release(self, monkeypatch, capsys):
        monkeypatch.delenv("SKILLSYNC_NO_UPDATE_CHECK", raising=False)

        def checker(version):
            return CheckResult(version, "v1.0.0", False)

        result = check_for_update_in_background("0.3.0", checker=checker)

        assert result.latest_version == "v1.0.0"
        assert "A new version is available: v1.0.0" in capsys.readouterr().out

    def test_silent_when_up_to_date(self, monkeypatch, capsys):
        monkeypatch.delenv("SKILLSYNC_NO_UPDATE_CHECK", raising=False)

        check_for_update_in_background("1.0.0", checker=lambda v: CheckResult(v, "v1.0.0", True))

        assert capsys.readouterr().out == ""

    def test_failures_are_swallowed(self, monkeypatch, capsys):
        monkeypatch.delenv("SKILLSYNC_NO_UPDATE_CHECK", raising=False)

        def checker(version):
            raise UpdateCheckError("offline")

        assert check_for_update_in_background("0.3.0", checker=checker) is None
        assert capsys.readouterr().out == ""

    def test_gives_up_after_timeout(self, monkeypatch):
        monkeypatch.delenv("SKILLSYNC_NO_UPDATE_CHECK", raising=False)

        def checker(version):
            time.sleep(2)
            return CheckResult(version, "v1.0.0", False)

        started = time.monotonic()
        result = check_for_update_in_background("0.3.0", timeout=0.1, checker=checker)

        assert result is None
        assert time.monotonic() - started < 1.5

    def test_skipped_for_dev_and_when_disabled(self, monkeypatch):
        calls = []

        def checker(version):
            calls.append(version)
            return CheckResult(version, "v1.0.0", False)

        monkeypatch.delenv("SKILLSYNC_NO_UPDATE_CHECK", raising=False)
        assert check_for_update_in_background("dev", checker=checker) is None

        monkeypatch.setenv("SKILLSYNC_NO_UPDATE_CHECK", "1")
        assert check_for_update_in_background("0.3.0", checker=checker) is None

        assert calls == []

#!/usr/bin/env python3
"""Tests for publish options, environment loading and validation."""

import os
import sys
import tempfile
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest

from ghpublish.config import PublishOptions, load_configuration, validate_configuration
from ghpublish.platform import get_default_cache_dir


def test_defaults():
    """Defaults match the documented configuration surface."""
    print("Testing default options")

    options = PublishOptions()

    assert options.remote_url is None
    assert options.origin == "origin"
    assert options.branch == "gh-pages"
    assert options.cache_dir == get_default_cache_dir().resolve()
    assert options.push is True
    assert options.force is False
    assert options.message is None
    print("  ✓ Defaults correct")


def test_default_commit_message():
    """Without a message, commits are named after the current time."""
    options = PublishOptions()
    now = datetime(2024, 5, 1, 12, 30, 0)

    assert options.commit_message(now) == "Update 2024-05-01T12:30:00"
    message = options.commit_message()
    assert message.startswith("Update ")
    datetime.fromisoformat(message[len("Update "):])

    assert PublishOptions(message="Deploy").commit_message(now) == "Deploy"
    print("  ✓ Commit message rendered")


def test_paths_are_normalized():
    """cache_dir and cwd are expanded and made absolute."""
    options = PublishOptions(cache_dir="~/site-cache", cwd=".")

    assert options.cache_dir == Path.home().resolve() / "site-cache"
    assert options.cwd == Path.cwd().resolve()
    assert options.resolve_cwd() == Path.cwd().resolve()
    assert PublishOptions(cache_dir=None).cache_dir == get_default_cache_dir().resolve()
    print("  ✓ Paths normalized")


def test_invalid_options():
    """Invalid values are rejected on construction."""
    print("Testing option validation")

    with pytest.raises(ValueError):
        PublishOptions(branch="")
    with pytest.raises(ValueError):
        PublishOptions(origin="  ")
    with pytest.raises(ValueError):
        PublishOptions(log_level="LOUD")
    with pytest.raises(ValueError):
        PublishOptions(history_limit=0)

    assert PublishOptions(remote_url="   ").remote_url is None
    assert PublishOptions(log_level="debug").log_level == "DEBUG"
    print("  ✓ Invalid options rejected")


def test_load_configuration_from_environment():
    """Environment variables override the defaults."""
    print("Testing environment configuration")

    env = {
        "GHPUBLISH_REMOTE_URL": "https://github.com/example/site.git",
        "GHPUBLISH_BRANCH": "pages",
        "GHPUBLISH_ORIGIN": "upstream",
        "GHPUBLISH_CACHE_DIR": "/tmp/ghpublish-test-cache",
        "GHPUBLISH_PUSH": "false",
        "GHPUBLISH_FORCE": "yes",
        "GHPUBLISH_MESSAGE": "Deploy docs",
        "GHPUBLISH_LOG_LEVEL": "warning",
        "GHPUBLISH_HISTORY_LIMIT": "5",
    }

    with patch.dict(os.environ, env, clear=False):
        options = load_configuration()

    assert options.remote_url == "https://github.com/example/site.git"
    assert options.branch == "pages"
    assert options.origin == "upstream"
    assert options.cache_dir == Path("/tmp/ghpublish-test-cache").resolve()
    assert options.push is False
    assert options.force is True
    assert options.message == "Deploy docs"
    assert options.log_level == "WARNING"
    assert options.history_limit == 5
    print("  ✓ Environment applied")


def test_load_configuration_errors():
    """Malformed environment values raise a configuration error."""
    with patch.dict(os.environ, {"GHPUBLISH_HISTORY_LIMIT": "many"}):
        with pytest.raises(ValueError, match="Configuration error"):
            load_configuration()
    print("  ✓ Configuration error raised")


def test_validate_configuration():
    """Validation reports suspicious remotes and missing git."""
    print("Testing configuration validation")

    with tempfile.TemporaryDirectory() as temp_dir:
        options = PublishOptions(remote_url="ftp://example.com/site", cache_dir=Path(temp_dir) / "cache")

        issues = validate_configuration(options)
        assert any(issue.startswith("WARNING:") and "ftp://" in issue for issue in issues)
        assert not any(issue.startswith("ERROR:") for issue in issues)

        with patch("ghpublish.config.validate_git_availability", return_value=(False, "Git executable 'git' not found")):
            issues = validate_configuration(options)
        assert "ERROR: Git executable 'git' not found" in issues
    print("  ✓ Issues reported")


def run_all_tests():
    """Run all configuration tests."""
    print("Configuration Tests")
    print("=" * 50)

    tests = [
        test_defaults,
        test_default_commit_message,
        test_paths_are_normalized,
        test_invalid_options,
        test_load_configuration_from_environment,
        test_load_configuration_errors,
        test_validate_configuration,
    ]

    passed = 0
    for test in tests:
        try:
            test()
            passed += 1
        except Exception as e:
            print(f"  ✗ {test.__name__} failed: {e}")
        print()

    print(f"Tests passed: {passed}/{len(tests)}")
    return passed == len(tests)


if __name__ == "__main__":
    sys.exit(0 if run_all_tests() else 1)

#!/usr/bin/env python3
"""
Unit tests for the asynchronous GitPython adapter.

Covers error translation into the publish error taxonomy, porcelain status
parsing, remote URL lookup and the branch listing primitives.
"""

import asyncio
import shutil
import subprocess
import sys
import tempfile
from pathlib import Path

import pytest
from git import GitCommandError

from ghpublish.errors import (
    GitOperationError,
    InvalidBranchError,
    NetworkOrAuthError,
    RepositoryNotFoundError,
)
from ghpublish.git_publish.adapter import GitAdapter, parse_porcelain_status, translate_git_error
from ghpublish.platform import get_git_executable


def git(*args, cwd=None):
    """Run a git command for test setup."""
    return subprocess.run(
        [get_git_executable(), *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True
    ).stdout


def create_remote_repository(temp_dir: Path, extra_branches=()) -> str:
    """Create a bare repository with one commit on ``main`` and optional extra branches."""
    remote_dir = temp_dir / "remote.git"
    git("init", "--bare", str(remote_dir))
    git("symbolic-ref", "HEAD", "refs/heads/main", cwd=remote_dir)

    work_dir = temp_dir / "seed"
    git("clone", str(remote_dir), str(work_dir))
    git("config", "user.name", "Test User", cwd=work_dir)
    git("config", "user.email", "test@example.com", cwd=work_dir)
    (work_dir / "README.md").write_text("# Test Repository\n")
    git("add", ".", cwd=work_dir)
    git("commit", "-m", "Initial commit", cwd=work_dir)
    git("push", "origin", "HEAD:refs/heads/main", cwd=work_dir)
    for branch in extra_branches:
        git("push", "origin", f"HEAD:refs/heads/{branch}", cwd=work_dir)

    shutil.rmtree(work_dir)
    return str(remote_dir)


def test_translate_checkout_of_unknown_branch():
    """An unmatched pathspec on checkout becomes InvalidBranchError naming the branch."""
    print("Testing checkout error translation")

    error = GitCommandError(
        ["git", "checkout", "non-existent-branch"],
        1,
        b"error: pathspec 'non-existent-branch' did not match any file(s) known to git"
    )
    translated = translate_git_error("checkout", error, branch="non-existent-branch")

    assert isinstance(translated, InvalidBranchError)
    assert translated.branch == "non-existent-branch"
    assert "non-existent-branch" in translated.message
    assert translated.message.startswith("error: pathspec")
    assert translated.command == "git checkout non-existent-branch"
    print("  ✓ InvalidBranchError carries git's message verbatim")


def test_translate_network_commands():
    """Push, pull, fetch and clone failures become NetworkOrAuthError."""
    print("Testing network error translation")

    stderr = b"remote: Permission to someone/site.git denied to bot."
    for operation in ("push", "pull", "fetch", "clone"):
        error = GitCommandError(["git", operation], 128, stderr)
        translated = translate_git_error(operation, error)
        assert isinstance(translated, NetworkOrAuthError)
        assert "Permission to" in translated.message
        assert translated.stderr == translated.message
    print("  ✓ Network failures keep the remote's message")


def test_translate_other_commands():
    """Everything else is a GitOperationError."""
    error = GitCommandError(["git", "commit"], 1, b"fatal: unable to auto-detect email address")
    translated = translate_git_error("commit", error)

    assert type(translated) is GitOperationError
    assert translated.error_code == "GIT_COMMAND_FAILED"
    assert "unable to auto-detect" in translated.message
    print("  ✓ Other git failures are GitOperationError")


def test_parse_porcelain_status():
    """Only index-side changes count as staged."""
    print("Testing porcelain status parsing")

    output = "\0".join([
        "A  new.txt",
        "M  changed.txt",
        " M unstaged.txt",
        "?? untracked.txt",
        "D  gone.txt",
        "R  renamed.txt",
        "old name.txt",
        "MM both.txt",
        ""
    ])
    staged = parse_porcelain_status(output)

    assert set(staged) == {"new.txt", "changed.txt", "gone.txt", "renamed.txt", "both.txt"}
    assert staged["new.txt"].status == "A"
    assert staged["gone.txt"].status == "D"
    assert staged["renamed.txt"].original_path == "old name.txt"
    assert parse_porcelain_status("") == {}
    print("  ✓ Staged entries parsed, renames keep their source path")


def test_get_remote_url_outside_repository():
    """Looking up a remote outside any repository fails with RepositoryNotFoundError."""
    print("Testing remote URL lookup outside a repository")

    adapter = GitAdapter()
    with tempfile.TemporaryDirectory() as temp_dir:
        with pytest.raises(RepositoryNotFoundError):
            asyncio.run(adapter.get_remote_url(Path(temp_dir), "origin"))

        with pytest.raises(RepositoryNotFoundError):
            asyncio.run(adapter.open_repo(Path(temp_dir) / "missing"))
    print("  ✓ RepositoryNotFoundError raised")


def test_clone_and_branch_listing():
    """Clone a repository and list its branches."""
    print("Testing clone and branch listing")

    adapter = GitAdapter()
    with tempfile.TemporaryDirectory() as temp_dir:
        temp_path = Path(temp_dir)
        remote_url = create_remote_repository(temp_path, extra_branches=("gh-pages",))

        async def scenario():
            repo = await adapter.clone(remote_url, temp_path / "clone")
            return (
                repo,
                await adapter.current_branch(repo),
                await adapter.branches_local(repo),
                await adapter.branches_remote(repo),
                await adapter.get_remote_url(repo, "origin"),
                await adapter.get_remote_url(repo, "upstream"),
            )

        repo, current, local, remote, url, missing = asyncio.run(scenario())

        assert current == "main"
        assert local == ["main"]
        assert sorted(remote) == ["origin/gh-pages", "origin/main"]
        assert url == remote_url
        assert missing is None
    print("  ✓ Branches and remote URL reported")


def test_clone_nonexistent_repository():
    """Cloning a missing repository raises NetworkOrAuthError with git's message."""
    print("Testing clone of a nonexistent repository")

    adapter = GitAdapter()
    with tempfile.TemporaryDirectory() as temp_dir:
        temp_path = Path(temp_dir)
        with pytest.raises(NetworkOrAuthError) as excinfo:
            asyncio.run(adapter.clone(str(temp_path / "missing.git"), temp_path / "clone"))

        assert "does not exist" in excinfo.value.message or "not found" in excinfo.value.message
        assert isinstance(excinfo.value.__cause__, GitCommandError)
    print("  ✓ NetworkOrAuthError raised")


def test_run_raw_passthrough():
    """run_raw forwards flags and arguments to git."""
    adapter = GitAdapter()
    with tempfile.TemporaryDirectory() as temp_dir:
        temp_path = Path(temp_dir)
        remote_url = create_remote_repository(temp_path)

        async def scenario():
            repo = await adapter.clone(remote_url, temp_path / "clone")
            return await adapter.run_raw(repo, "rev-parse", {"abbrev_ref": True}, ["HEAD"])

        assert asyncio.run(scenario()) == "main"
    print("  ✓ rev-parse --abbrev-ref HEAD returned the branch")


def run_all_tests():
    """Run all adapter tests."""
    print("Git Adapter Tests")
    print("=" * 50)

    tests = [
        test_translate_checkout_of_unknown_branch,
        test_translate_network_commands,
        test_translate_other_commands,
        test_parse_porcelain_status,
        test_get_remote_url_outside_repository,
        test_clone_and_branch_listing,
        test_clone_nonexistent_repository,
        test_run_raw_passthrough,
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

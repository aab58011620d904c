"""Asynchronous facade over GitPython's repository primitives."""

import asyncio
import configparser
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from git import Repo, GitCommandError, InvalidGitRepositoryError, NoSuchPathError
from git.exc import GitCommandNotFound

from ..errors import (
    GitCommandFailure,
    GitOperationError,
    InvalidBranchError,
    NetworkOrAuthError,
    RepositoryNotFoundError,
)
from .repository_info import CommitRecord, StagedChange


# Commands whose failures come from the remote side
NETWORK_COMMANDS = frozenset({"clone", "fetch", "pull", "push", "ls-remote"})

UNMATCHED_PATHSPEC = "did not match any file(s) known to git"

_STDERR_PATTERN = re.compile(r"^\s*stderr: '(.*)'\s*$", re.DOTALL)


def _stderr_text(error: GitCommandError) -> str:
    """Git's own stderr, without GitPython's decoration."""
    text = error.stderr or ""
    match = _STDERR_PATTERN.match(text)
    if match:
        text = match.group(1)
    return text.strip() or str(error)


def _command_text(error: GitCommandError) -> str:
    command = error.command
    if isinstance(command, (list, tuple)):
        return " ".join(str(part) for part in command)
    return str(command)


def translate_git_error(operation: str, error: Exception, branch: Optional[str] = None) -> GitCommandFailure:
    """
    Wrap a GitPython failure into the publish error taxonomy.

    The message is git's stderr, unchanged, so callers can match on it.
    """
    if isinstance(error, GitCommandNotFound):
        return GitOperationError(f"Git executable not found: {error}", command=operation)

    stderr = _stderr_text(error)
    command = _command_text(error)

    if operation == "checkout" and branch is not None and UNMATCHED_PATHSPEC in stderr:
        return InvalidBranchError(stderr, branch=branch, command=command, stderr=stderr)
    if operation in NETWORK_COMMANDS:
        return NetworkOrAuthError(stderr, command=command, stderr=stderr)
    return GitOperationError(stderr, command=command, stderr=stderr)


class GitAdapter:
    """
    Coroutine wrappers around GitPython.

    Each primitive runs its blocking GitPython call in a worker thread and
    raises the matching publish error on failure. Calls are meant to be
    awaited one after another; a ``Repo`` is never used from two threads at
    once.
    """

    def __init__(self):
        self.logger = logging.getLogger('ghpublish.git_publish.adapter')

    async def _call(self, operation: str, func, *args, branch: Optional[str] = None, **kwargs):
        self.logger.debug(f"git {operation}")
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except (GitCommandError, GitCommandNotFound) as e:
            error = translate_git_error(operation, e, branch=branch)
            self.logger.debug(f"git {operation} failed: {error.message}")
            raise error from e

    # -- repositories -----------------------------------------------------

    @staticmethod
    def _open(path: Path, search_parent_directories: bool = False) -> Repo:
        try:
            repo = Repo(str(path), search_parent_directories=search_parent_directories)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise RepositoryNotFoundError(
                f"Failed to find git repository in {path}",
                context={'path': str(path)}
            ) from e
        if repo.bare:
            raise RepositoryNotFoundError(
                f"Repository in {path} has no working tree",
                context={'path': str(path)}
            )
        return repo

    async def open_repo(self, path: Union[str, Path], search_parent_directories: bool = False) -> Repo:
        """Open the working copy rooted at ``path``."""
        return await asyncio.to_thread(self._open, Path(path), search_parent_directories)

    async def get_remote_url(self, repo: Union[Repo, str, Path], remote_name: str = "origin") -> Optional[str]:
        """
        Read ``remote.<name>.url`` from a repository's configuration.

        A path is opened first (searching parent directories, like git does
        from a working directory) and must belong to a repository.
        """
        if not isinstance(repo, Repo):
            repo = await self.open_repo(repo, search_parent_directories=True)

        def read_url() -> Optional[str]:
            with repo.config_reader() as reader:
                try:
                    return str(reader.get_value(f'remote "{remote_name}"', "url"))
                except (configparser.NoSectionError, configparser.NoOptionError):
                    return None

        return await asyncio.to_thread(read_url)

    async def clone(self, url: str, dest_dir: Union[str, Path]) -> Repo:
        """Clone ``url`` into ``dest_dir``."""
        return await self._call("clone", Repo.clone_from, url, str(dest_dir))

    async def ensure_identity(self, repo: Repo, name: str, email: str) -> None:
        """Write a committer identity into the repository when none is configured."""

        def configure() -> None:
            missing = []
            with repo.config_reader() as reader:
                for option in ("name", "email"):
                    try:
                        reader.get_value("user", option)
                    except (configparser.NoSectionError, configparser.NoOptionError):
                        missing.append(option)
            if missing:
                values = {"name": name, "email": email}
                with repo.config_writer() as writer:
                    for option in missing:
                        writer.set_value("user", option, values[option])
                self.logger.debug(f"Configured fallback git identity: {', '.join(missing)}")

        await asyncio.to_thread(configure)

    # -- branches ---------------------------------------------------------

    async def has_commits(self, repo: Repo) -> bool:
        return await asyncio.to_thread(repo.head.is_valid)

    async def current_branch(self, repo: Repo) -> str:
        """Name of the checked-out branch, unborn branches included."""

        def read_branch() -> str:
            try:
                return repo.active_branch.name
            except TypeError:
                # detached HEAD
                return "HEAD"

        return await asyncio.to_thread(read_branch)

    async def branches_local(self, repo: Repo) -> List[str]:
        return await asyncio.to_thread(lambda: [head.name for head in repo.heads])

    async def branches_remote(self, repo: Repo) -> List[str]:
        """``<remote>/<branch>`` names, symbolic HEAD pointers excluded."""
        output = await self._call("branch", repo.git.branch, "-r")
        branches = []
        for line in output.splitlines():
            name = line.strip()
            if name and "->" not in name:
                branches.append(name)
        return branches

    async def checkout(self, repo: Repo, name: str) -> None:
        await self._call("checkout", repo.git.checkout, name, branch=name)

    async def create_branch(self, repo: Repo, name: str) -> None:
        """Create ``name`` at HEAD; an unborn repository gets an orphan branch."""
        if await self.has_commits(repo):
            await self._call("branch", repo.git.branch, name)
        else:
            await self._call("checkout", repo.git.checkout, "--orphan", name)

    # -- index and history ------------------------------------------------

    async def add(self, repo: Repo, pathspec: Union[str, Sequence[str]] = ".", force: bool = False) -> None:
        """Stage ``pathspec``; ignored paths are only included with ``force``."""
        paths = [pathspec] if isinstance(pathspec, str) else list(pathspec)
        await self._call("add", repo.git.add, *paths, force=force)

    async def remove(
        self,
        repo: Repo,
        pathspec: Union[str, Sequence[str]] = ".",
        recursive: bool = False,
        force: bool = False
    ) -> None:
        """Stage deletions for ``pathspec``; unmatched pathspecs are not an error."""
        paths = [pathspec] if isinstance(pathspec, str) else list(pathspec)
        await self._call(
            "rm", repo.git.rm, *paths,
            r=recursive, f=force, ignore_unmatch=True, quiet=True
        )

    async def commit(self, repo: Repo, message: str) -> None:
        await self._call("commit", repo.git.commit, "-m", message, all=True)

    async def status(self, repo: Repo) -> Dict[str, StagedChange]:
        """Index entries that differ from HEAD, keyed by path."""
        output = await self._call("status", repo.git.status, "--porcelain", "-z")
        return parse_porcelain_status(output)

    async def commits(self, repo: Repo, branch: str, limit: int = 20) -> List[CommitRecord]:
        """Most recent first; empty while the branch is unborn."""
        if not await self.has_commits(repo):
            return []

        def read_commits() -> List[CommitRecord]:
            return [
                CommitRecord(id=commit.hexsha, message=commit.message, timestamp=commit.committed_date)
                for commit in repo.iter_commits(branch, max_count=limit)
            ]

        return await self._call("log", read_commits)

    # -- passthrough ------------------------------------------------------

    async def run_raw(
        self,
        repo: Repo,
        command: str,
        flags: Optional[Dict[str, Any]] = None,
        args: Optional[Sequence[str]] = None
    ) -> str:
        """
        Run any git command, e.g. ``run_raw(repo, "push", {"set_upstream": True}, ["origin", "gh-pages"])``.

        Flags follow GitPython's keyword conventions: ``True`` adds the
        switch, ``False``/``None`` omit it, other values are passed along.
        """
        method = getattr(repo.git, command.replace("-", "_"))
        return await self._call(command, method, *(args or []), **(flags or {}))


def parse_porcelain_status(output: str) -> Dict[str, StagedChange]:
    """Parse ``git status --porcelain -z`` output into staged changes."""
    staged: Dict[str, StagedChange] = {}
    entries = output.split("\0")
    index = 0
    while index < len(entries):
        entry = entries[index]
        index += 1
        if len(entry) < 4:
            continue

        index_status, path = entry[0], entry[3:]
        original_path = None
        if (index_status in ("R", "C") or entry[1] in ("R", "C")) and index < len(entries):
            original_path = entries[index]
            index += 1

        if index_status in (" ", "?", "!"):
            continue
        staged[path] = StagedChange(path=path, status=index_status, original_path=original_path)
    return staged

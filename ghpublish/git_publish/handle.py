"""Repository handle: a working copy plus its refreshed view."""

import logging
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, Union

from git import Repo

from .adapter import GitAdapter
from .repository_info import CommitRecord, StagedChange


class RepoHandle:
    """
    A working copy together with its derived state.

    The derived fields (branches, staged files, commit history) are only
    meaningful as of the last refresh. Every operation that changes the
    repository returns a new, fully refreshed handle; existing handles are
    never updated in place.

    Attributes:
        repo: Underlying GitPython repository
        current_branch: Checked-out branch name
        local_branches: Branch heads in the local clone
        remote_branches: ``<remote>/<branch>`` names known locally
        staged_files: Index entries differing from HEAD, keyed by path
        commit_history: Commits on ``current_branch``, most recent first
    """

    def __init__(
        self,
        repo: Repo,
        current_branch: str,
        adapter: Optional[GitAdapter] = None,
        history_limit: int = 20,
        local_branches: Sequence[str] = (),
        remote_branches: Sequence[str] = (),
        staged_files: Optional[Dict[str, StagedChange]] = None,
        commit_history: Sequence[CommitRecord] = ()
    ):
        self.repo = repo
        self.current_branch = current_branch
        self.adapter = adapter or GitAdapter()
        self.history_limit = history_limit
        self.local_branches: Tuple[str, ...] = tuple(local_branches)
        self.remote_branches: Tuple[str, ...] = tuple(remote_branches)
        self.staged_files: Dict[str, StagedChange] = dict(staged_files or {})
        self.commit_history: Tuple[CommitRecord, ...] = tuple(commit_history)
        self.logger = logging.getLogger('ghpublish.git_publish.handle')

    def __repr__(self) -> str:
        return (
            f"RepoHandle(working_dir={str(self.working_dir)!r}, "
            f"current_branch={self.current_branch!r}, staged={len(self.staged_files)})"
        )

    @property
    def working_dir(self) -> Path:
        return Path(self.repo.working_tree_dir)

    def _with_branch(self, branch: str) -> "RepoHandle":
        return RepoHandle(self.repo, branch, adapter=self.adapter, history_limit=self.history_limit)

    async def refresh(self) -> "RepoHandle":
        """Re-derive every field from the repository on disk."""
        staged = await self.adapter.status(self.repo)
        commits = await self.adapter.commits(self.repo, self.current_branch, self.history_limit)
        remote = await self.adapter.branches_remote(self.repo)
        local = await self.adapter.branches_local(self.repo)

        return RepoHandle(
            self.repo,
            self.current_branch,
            adapter=self.adapter,
            history_limit=self.history_limit,
            local_branches=local,
            remote_branches=remote,
            staged_files=staged,
            commit_history=commits
        )

    async def checkout_branch(self, name: str) -> "RepoHandle":
        """Check out ``name``; a remote-only name gets a local tracking branch."""
        await self.adapter.checkout(self.repo, name)
        return await self._with_branch(name).refresh()

    async def create_branch(self, name: str) -> "RepoHandle":
        await self.adapter.create_branch(self.repo, name)
        return await self._with_branch(name).refresh()

    async def create_and_checkout_branch(self, name: str) -> "RepoHandle":
        """
        Create ``name`` and check it out.

        Not atomic: if the checkout fails the new branch is left behind.
        """
        created = await self.create_branch(name)
        if not await self.adapter.has_commits(self.repo):
            # Orphan branches are checked out by creation
            return created
        return await created.checkout_branch(name)

    async def add_files(self, pathspec: Union[str, Sequence[str]] = ".", force: bool = False) -> "RepoHandle":
        await self.adapter.add(self.repo, pathspec, force=force)
        return await self.refresh()

    async def remove_files(
        self,
        pathspec: Union[str, Sequence[str]] = ".",
        recursive: bool = False,
        force: bool = False
    ) -> "RepoHandle":
        await self.adapter.remove(self.repo, pathspec, recursive=recursive, force=force)
        return await self.refresh()

    async def commit(self, message: str = "Updates") -> "RepoHandle":
        await self.adapter.commit(self.repo, message)
        return await self.refresh()

    async def fetch(self, remote: str = "origin") -> "RepoHandle":
        await self.adapter.run_raw(self.repo, "fetch", {"prune": True}, [remote])
        return await self.refresh()

    async def pull(self, remote: str = "origin", branch: Optional[str] = None) -> "RepoHandle":
        await self.adapter.run_raw(
            self.repo, "pull", {"no_rebase": True}, [remote, branch or self.current_branch]
        )
        return await self.refresh()

    async def reset_to_remote(self, remote: str = "origin", branch: Optional[str] = None) -> "RepoHandle":
        """
        Move the checked-out branch to ``<remote>/<branch>`` as last fetched.

        Local commits and working tree changes are discarded, so a branch
        rewritten on the remote never needs a merge.
        """
        target = f"{remote}/{branch or self.current_branch}"
        await self.adapter.run_raw(self.repo, "reset", {"hard": True, "quiet": True}, [target])
        return await self.refresh()

    async def push(self, remote: str = "origin", branch: Optional[str] = None) -> "RepoHandle":
        """``git push --set-upstream <remote> <branch>``, the current branch by default."""
        await self.adapter.run_raw(
            self.repo, "push", {"set_upstream": True}, [remote, branch or self.current_branch]
        )
        return await self.refresh()

    async def remote_url(self, remote: str = "origin") -> Optional[str]:
        return await self.adapter.get_remote_url(self.repo, remote)

    @property
    def head_commit(self) -> Optional[CommitRecord]:
        return self.commit_history[0] if self.commit_history else None

"""Data structures describing a working copy's derived state."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PublishPhase(Enum):
    """Phases of a publish, in execution order."""
    COLLECT = "collect"
    PREPARE_REPO = "prepare_repo"
    RESOLVE_BRANCH = "resolve_branch"
    SYNC_REMOTE = "sync_remote"
    CLEAR_WORKING_TREE = "clear_working_tree"
    WRITE_FILES = "write_files"
    STAGE = "stage"
    COMMIT = "commit"
    PUSH = "push"


@dataclass(frozen=True)
class StagedChange:
    """An index entry that differs from HEAD."""
    path: str
    status: str                         # porcelain index letter: A, M, D, R, C, T
    original_path: Optional[str] = None # source path for renames and copies


@dataclass(frozen=True)
class CommitRecord:
    """A commit reachable from the current branch."""
    id: str
    message: str
    timestamp: int

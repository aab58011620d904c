"""
ghpublish - publish generated files to a branch of a git repository.

Files produced by a build are written into a cached clone of the target
branch (``gh-pages`` by default), committed when they differ from what is
already there, and pushed.
"""

__version__ = "1.0.0"
__description__ = "Publish generated files to a gh-pages style branch"

from .config import PublishOptions, load_configuration
from .errors import (
    PublishError,
    RepositoryNotFoundError,
    NetworkOrAuthError,
    InvalidBranchError,
    UnsupportedContentError,
    FilesystemError,
    GitOperationError,
)
from .files import IncomingFile, collect_directory
from .git_publish import Publisher, PublishResult, RepoHandle, prepare_repo, publish, publish_stream

__all__ = [
    "PublishOptions",
    "load_configuration",
    "PublishError",
    "RepositoryNotFoundError",
    "NetworkOrAuthError",
    "InvalidBranchError",
    "UnsupportedContentError",
    "FilesystemError",
    "GitOperationError",
    "IncomingFile",
    "collect_directory",
    "Publisher",
    "PublishResult",
    "RepoHandle",
    "prepare_repo",
    "publish",
    "publish_stream",
]

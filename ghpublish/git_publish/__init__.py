"""Git publishing functionality for ghpublish."""

from .adapter import GitAdapter, translate_git_error
from .handle import RepoHandle
from .prepare import prepare_repo
from .publisher import Publisher, publish, publish_stream
from .repository_info import CommitRecord, PublishPhase, StagedChange
from .utils import PublishResult, create_publish_result

__all__ = [
    'GitAdapter',
    'translate_git_error',
    'RepoHandle',
    'prepare_repo',
    'Publisher',
    'publish',
    'publish_stream',
    'CommitRecord',
    'PublishPhase',
    'StagedChange',
    'PublishResult',
    'create_publish_result'
]

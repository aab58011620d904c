"""Repository preparation: reuse a cached clone or clone afresh."""

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Optional, Union

from ..errors import FilesystemError, RepositoryNotFoundError
from .adapter import GitAdapter
from .handle import RepoHandle


FALLBACK_USER_NAME = "ghpublish"
FALLBACK_USER_EMAIL = "ghpublish@localhost"


async def resolve_remote_url(
    remote_url: Optional[str],
    origin: str,
    cwd: Union[str, Path],
    adapter: GitAdapter
) -> str:
    """Explicit URL, or the ``origin`` URL of the repository containing ``cwd``."""
    if remote_url:
        return remote_url

    url = await adapter.get_remote_url(cwd, origin)
    if not url:
        raise RepositoryNotFoundError(
            f"Repository in {cwd} has no remote named '{origin}'",
            context={'path': str(cwd), 'remote': origin}
        )
    return url


def _clear_directory(path: Path) -> None:
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        elif path.exists() or path.is_symlink():
            path.unlink()
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError.from_os_error(e) from e


async def _cached_remote_url(cache_dir: Path, origin: str, adapter: GitAdapter) -> Optional[str]:
    """Remote URL recorded in the cached clone, None when there is no usable clone."""
    try:
        repo = await adapter.open_repo(cache_dir)
    except RepositoryNotFoundError:
        return None
    return await adapter.get_remote_url(repo, origin)


async def prepare_repo(
    remote_url: Optional[str],
    origin: str = "origin",
    cache_dir: Union[str, Path] = None,
    cwd: Optional[Union[str, Path]] = None,
    adapter: Optional[GitAdapter] = None,
    history_limit: int = 20
) -> RepoHandle:
    """
    Return a refreshed handle on a working copy of ``remote_url``.

    A clone already sitting in ``cache_dir`` is reused when its ``origin``
    URL matches (warm cache); remote branch names are fetched so they reflect
    the remote. Anything else in ``cache_dir`` is deleted and replaced by a
    fresh clone.

    Args:
        remote_url: URL to publish to; None derives it from ``cwd``
        origin: Name of the remote to compare and derive from
        cache_dir: Directory holding the working copy
        cwd: Directory whose repository supplies a missing ``remote_url``
        adapter: Git adapter, a new one by default
        history_limit: Commits kept in ``RepoHandle.commit_history``

    Raises:
        RepositoryNotFoundError: ``remote_url`` is unset and ``cwd`` is not in a repository
        NetworkOrAuthError: Clone or fetch failed
        FilesystemError: ``cache_dir`` could not be cleared
    """
    logger = logging.getLogger('ghpublish.git_publish.prepare')
    adapter = adapter or GitAdapter()
    if cache_dir is None:
        raise ValueError("cache_dir is required")
    cache_dir = Path(cache_dir)

    remote_url = await resolve_remote_url(remote_url, origin, cwd or Path.cwd(), adapter)

    cached_url = await _cached_remote_url(cache_dir, origin, adapter)
    if cached_url is not None and cached_url == remote_url:
        logger.info(f"Reusing cached clone of {remote_url} in {cache_dir}")
        repo = await adapter.open_repo(cache_dir)
        handle = RepoHandle(repo, await adapter.current_branch(repo), adapter=adapter, history_limit=history_limit)
        await adapter.ensure_identity(repo, FALLBACK_USER_NAME, FALLBACK_USER_EMAIL)
        return await handle.fetch(origin)

    if cached_url is not None:
        logger.info(f"Cached clone points at {cached_url}, re-cloning")

    await asyncio.to_thread(_clear_directory, cache_dir)
    logger.info(f"Cloning {remote_url} into {cache_dir}")
    repo = await adapter.clone(remote_url, cache_dir)
    await adapter.ensure_identity(repo, FALLBACK_USER_NAME, FALLBACK_USER_EMAIL)

    handle = RepoHandle(repo, await adapter.current_branch(repo), adapter=adapter, history_limit=history_limit)
    return await handle.refresh()

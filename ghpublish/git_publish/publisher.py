"""Publish orchestration: collect files, then commit them to the target branch."""

import asyncio
import logging
from pathlib import Path
from typing import AsyncIterable, AsyncIterator, Iterable, Optional, Tuple, Union

from ..config import PublishOptions
from ..errors import FilesystemError
from ..files import FileAccumulator, IncomingFile
from .adapter import GitAdapter
from .handle import RepoHandle
from .performance_logger import PerformanceLogger
from .prepare import prepare_repo
from .repository_info import PublishPhase
from .utils import PublishResult, create_publish_result


FileSource = Union[Iterable[IncomingFile], AsyncIterable[IncomingFile]]

_END_OF_INPUT = object()


async def _iterate(files: FileSource) -> AsyncIterator[IncomingFile]:
    if hasattr(files, "__aiter__"):
        async for incoming in files:
            yield incoming
    else:
        for incoming in files:
            yield incoming


def write_incoming_file(working_dir: Path, incoming: IncomingFile) -> Path:
    """Write one file below ``working_dir``, creating parent directories."""
    target = working_dir.joinpath(*incoming.relative_path().parts)
    content = incoming.content
    if isinstance(content, str):
        content = content.encode("utf-8")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
    except OSError as e:
        raise FilesystemError.from_os_error(e, target) from e
    return target


class Publisher:
    """
    Publishes a stream of files to one branch of a remote repository.

    ``stream()`` re-emits every incoming file: pass-through items as soon as
    they arrive, publishable files once written to the working copy. The
    repository work starts only after the input is exhausted and runs its
    phases strictly in order; the first failure ends the stream with that
    error. Nothing is retried or rolled back.

    A cache directory must not be shared by concurrent publishes.
    """

    def __init__(self, options: Optional[PublishOptions] = None, adapter: Optional[GitAdapter] = None):
        self.options = options or PublishOptions()
        self.adapter = adapter or GitAdapter()
        self.result: Optional[PublishResult] = None
        self.handle: Optional[RepoHandle] = None
        self.logger = logging.getLogger('ghpublish.git_publish.publisher')

    async def _resolve_branch(self, handle: RepoHandle) -> Tuple[RepoHandle, bool]:
        """Check out the target branch, creating it when it exists nowhere."""
        branch = self.options.branch
        remote_branch = f"{self.options.origin}/{branch}"

        if branch in handle.local_branches:
            self.logger.info(f"Checkout branch `{branch}`")
            return await handle.checkout_branch(branch), False
        if remote_branch in handle.remote_branches:
            self.logger.info(f"Checkout branch `{branch}` from `{remote_branch}`")
            return await handle.checkout_branch(branch), False

        self.logger.info(f"Create branch `{branch}` and checkout")
        return await handle.create_and_checkout_branch(branch), True

    async def stream(self, files: FileSource) -> AsyncIterator[IncomingFile]:
        """Collect ``files``, publish them, and yield each one back."""
        options = self.options
        perf = PerformanceLogger()
        accumulator = FileAccumulator()
        passed_through = 0
        self.result = None

        source = _iterate(files)
        while True:
            with perf.accumulate_operation(PublishPhase.COLLECT.value):
                incoming = await anext(source, _END_OF_INPUT)
                if incoming is not _END_OF_INPUT and not incoming.is_null():
                    accumulator.add(incoming)
            if incoming is _END_OF_INPUT:
                break
            if incoming.is_null():
                passed_through += 1
                yield incoming

        if not accumulator:
            self.logger.info("No files to publish")
            self.result = create_publish_result(
                success=True,
                message="No files to publish",
                files_passed_through=passed_through,
                phase_durations=perf.durations()
            )
            return

        with perf.time_operation(PublishPhase.PREPARE_REPO.value):
            self.logger.info("Preparing repository")
            handle = await prepare_repo(
                options.remote_url,
                origin=options.origin,
                cache_dir=options.cache_dir,
                cwd=options.resolve_cwd(),
                adapter=self.adapter,
                history_limit=options.history_limit
            )
            self.handle = handle

        with perf.time_operation(PublishPhase.RESOLVE_BRANCH.value):
            handle, created_branch = await self._resolve_branch(handle)
            self.handle = handle

        remote_branch = f"{options.origin}/{options.branch}"
        if not created_branch and remote_branch in handle.remote_branches:
            with perf.time_operation(PublishPhase.SYNC_REMOTE.value):
                self.logger.info(f"Resetting `{options.branch}` to `{remote_branch}`")
                handle = await handle.reset_to_remote(options.origin, options.branch)
                self.handle = handle

        with perf.time_operation(PublishPhase.CLEAR_WORKING_TREE.value):
            handle = await handle.remove_files(".", recursive=True, force=True)
            self.handle = handle

        self.logger.info("Copying files to repository")
        for incoming in accumulator.files:
            with perf.accumulate_operation(PublishPhase.WRITE_FILES.value, context={'files': len(accumulator)}):
                await asyncio.to_thread(write_incoming_file, handle.working_dir, incoming)
            yield incoming

        with perf.time_operation(PublishPhase.STAGE.value):
            self.logger.info(f"Adding {len(accumulator)} files.")
            handle = await handle.add_files(".", force=options.force)
            self.handle = handle

        summary = dict(
            branch_used=handle.current_branch,
            created_branch=created_branch,
            files_published=len(accumulator),
            files_passed_through=passed_through
        )

        if not handle.staged_files:
            self.logger.info("No files have changed.")
            self.result = create_publish_result(
                success=True,
                message="No files have changed",
                phase_durations=perf.durations(),
                **summary
            )
            return

        with perf.time_operation(PublishPhase.COMMIT.value):
            self.logger.info(f"Committing {len(handle.staged_files)} changed files")
            handle = await handle.commit(options.commit_message())
            self.handle = handle

        commit_id = handle.head_commit.id if handle.head_commit else None

        if options.push:
            with perf.time_operation(PublishPhase.PUSH.value):
                self.logger.info(f"Pushing to {options.origin}/{handle.current_branch}")
                handle = await handle.push(options.origin)
                self.handle = handle

        self.result = create_publish_result(
            success=True,
            message=f"Published {len(accumulator)} files to {handle.current_branch}",
            changed=True,
            committed=True,
            pushed=options.push,
            commit_id=commit_id,
            phase_durations=perf.durations(),
            **summary
        )

    async def run(self, files: FileSource) -> PublishResult:
        """Publish ``files`` and return the result, discarding the re-emitted stream."""
        async for _ in self.stream(files):
            pass
        return self.result


async def publish_stream(files: FileSource, options: Optional[PublishOptions] = None) -> AsyncIterator[IncomingFile]:
    """Publish ``files``, yielding each one back as it is handled."""
    async for incoming in Publisher(options).stream(files):
        yield incoming


async def publish(files: FileSource, options: Optional[PublishOptions] = None) -> PublishResult:
    """Publish ``files`` and return a PublishResult."""
    return await Publisher(options).run(files)

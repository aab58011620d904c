"""Incoming file records consumed from the upstream build."""

import errno
import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterator, List, Optional, Union

from .errors import FilesystemError, UnsupportedContentError


@dataclass
class IncomingFile:
    """
    A generated file waiting to be published.

    ``content`` of None marks a pass-through item that is re-emitted but never
    written. ``is_stream`` marks stream-shaped content, which is rejected.
    """
    path: str
    content: Optional[bytes] = None
    is_stream: bool = False

    def is_null(self) -> bool:
        return self.content is None and not self.is_stream

    def relative_path(self) -> PurePosixPath:
        """Validated path relative to the working tree root."""
        normalized = PurePosixPath(str(self.path).replace("\\", "/"))
        parts = [part for part in normalized.parts if part not in ("", ".")]

        if normalized.is_absolute() or not parts or ".." in parts or parts[0] == ".git":
            raise FilesystemError(
                f"Refusing to write outside the working tree: {self.path!r}",
                errno=errno.EINVAL,
                path=str(self.path)
            )
        return PurePosixPath(*parts)

    @classmethod
    def from_path(cls, base_dir: Union[str, Path], path: Union[str, Path]) -> "IncomingFile":
        """Read a file from disk, keeping its path relative to ``base_dir``."""
        base_dir = Path(base_dir)
        path = Path(path)
        full_path = path if path.is_absolute() else base_dir / path
        try:
            content = full_path.read_bytes()
        except OSError as e:
            raise FilesystemError.from_os_error(e, full_path) from e
        return cls(path=full_path.relative_to(base_dir).as_posix(), content=content)


class FileAccumulator:
    """Buffers one invocation's publishable files until the stream ends."""

    def __init__(self):
        self._files: List[IncomingFile] = []
        self.logger = logging.getLogger('ghpublish.files')

    def add(self, incoming: IncomingFile) -> None:
        if incoming.is_stream:
            raise UnsupportedContentError(
                "Stream content is not supported",
                context={'path': str(incoming.path)}
            )
        incoming.relative_path()
        self._files.append(incoming)
        self.logger.debug(f"Collected {incoming.path}")

    @property
    def files(self) -> List[IncomingFile]:
        return list(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __bool__(self) -> bool:
        return bool(self._files)


def collect_directory(source_dir: Union[str, Path]) -> Iterator[IncomingFile]:
    """Yield every regular file below a build output directory, skipping ``.git``."""
    source_dir = Path(source_dir)
    if not source_dir.is_dir():
        raise FilesystemError(
            f"Source directory does not exist: {source_dir}",
            errno=errno.ENOENT,
            path=str(source_dir)
        )

    for path in sorted(source_dir.rglob("*")):
        relative = path.relative_to(source_dir)
        if ".git" in relative.parts:
            continue
        if path.is_file():
            yield IncomingFile.from_path(source_dir, relative)

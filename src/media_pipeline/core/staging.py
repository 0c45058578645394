"""Scoped staging files for transforms that only work on disk."""

import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Set, Union

from .exceptions import StagingError
from .logging_config import get_logger

logger = get_logger("staging")


class StagingFile:
    """A staging path exclusively owned by the worker that acquired it."""

    def __init__(self, path: Path):
        self.path = path

    def write_bytes(self, data: bytes) -> None:
        try:
            self.path.write_bytes(data)
        except OSError as e:
            raise StagingError(f"Failed to write staging file {self.path}: {e}") from e

    def read_bytes(self) -> bytes:
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise StagingError(f"Failed to read staging file {self.path}: {e}") from e

    def __fspath__(self) -> str:
        return str(self.path)

    def __repr__(self) -> str:
        return f"StagingFile({self.path})"


class StagingArea:
    """
    Tracks the staging files of one pipeline run.

    Files are released when the ``acquire`` scope exits, whatever the exit
    path. Releases that fail stay pending and are retried by ``release_all``,
    which also runs when the area is used as a context manager.
    """

    def __init__(self, root: Union[str, Path], prefix: str = "stage-"):
        self.root = Path(root)
        self._prefix = prefix
        self._pending: Set[Path] = set()
        self._lock = threading.Lock()

    def __enter__(self) -> "StagingArea":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.release_all()
        return False

    @property
    def pending(self) -> List[Path]:
        with self._lock:
            return sorted(self._pending)

    def _create(self, suffix: str) -> Path:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, name = tempfile.mkstemp(prefix=self._prefix, suffix=suffix, dir=self.root)
            os.close(fd)
        except OSError as e:
            raise StagingError(f"Failed to create staging file in {self.root}: {e}") from e
        path = Path(name)
        with self._lock:
            self._pending.add(path)
        return path

    @contextmanager
    def acquire(self, suffix: str = "") -> Iterator[StagingFile]:
        """Create a staging file and release it on every exit path."""
        if suffix and not suffix.startswith("."):
            suffix = f".{suffix}"
        staged = StagingFile(self._create(suffix))
        try:
            yield staged
        finally:
            self.release(staged.path)

    def release(self, path: Path) -> bool:
        """Delete a staging file. Failures are logged and left pending."""
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to delete staging file {path}: {e}")
            return False
        with self._lock:
            self._pending.discard(path)
        return True

    def release_all(self) -> int:
        """Release every staging file still pending; returns how many remain."""
        for path in self.pending:
            self.release(path)
        remaining = len(self.pending)
        if remaining:
            logger.error(f"{remaining} staging file(s) could not be removed from {self.root}")
        return remaining


"""Advisory lock guarding the local state file."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import IO, TYPE_CHECKING

from aws_provisioner.engine.errors import StateLockError

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)

if sys.platform == "win32":  # pragma: no cover
    import msvcrt

    def _lock(f: IO[str]) -> None:
        msvcrt.locking(f.fileno(), msvcrt.LK_LOCK, 1)

    def _unlock(f: IO[str]) -> None:
        msvcrt.locking(f.fileno(), msvcrt.LK_UNLCK, 1)

else:
    import fcntl

    def _lock(f: IO[str]) -> None:
        fcntl.flock(f.fileno(), fcntl.LOCK_EX)

    def _unlock(f: IO[str]) -> None:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)


class StateLock:
    """Hold ``<state>.lock`` exclusively while plan/apply/refresh touch state.

    Blocks until a concurrent run on the same state file releases it.
    """

    def __init__(self, state_path: Path) -> None:
        self.path = Path(f"{state_path}.lock")
        self._handle: IO[str] | None = None

    def __enter__(self) -> StateLock:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        handle = self.path.open("a+", encoding="utf-8")
        try:
            _lock(handle)
        except OSError as e:
            handle.close()
            raise StateLockError(f"Cannot lock {self.path}: {e}") from e
        self._handle = handle
        logger.debug("Acquired state lock %s", self.path)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            _unlock(handle)
        finally:
            handle.close()
        logger.debug("Released state lock %s", self.path)

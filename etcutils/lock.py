from __future__ import annotations
import contextlib
import fcntl
import logging
import os
from pathlib import Path
import time
from typing import IO, Any, Iterator, Optional, Union

from .constants import LOCK_FILE_MODE, LOCK_POLL_INTERVAL, LOCK_TIMEOUT
from .errors import LockError

logger = logging.getLogger(__name__)


class LockManager:
    """The advisory lock serializing writers of the account databases

    A single lock file guards passwd, group, shadow and gshadow together, so
    etcutils writers of any of them exclude each other. The lock is an
    flock(2) lock on the path lckpwdf(3) uses. On Linux, flock locks and
    the fcntl record lock taken by lckpwdf(3) do not conflict, so this does
    not exclude the shadow-utils tools. flock locks belong to an open file
    rather than a process, so two managers in one process still exclude
    each other.

    The manager is either unlocked or holding the lock. Acquiring while
    already holding is a no-op, and releasing while unlocked is a no-op.
    """

    def __init__(
        self,
        path: Union[str, Path],
        poll_interval: float = LOCK_POLL_INTERVAL,
    ):
        self.path = Path(path)
        self.poll_interval = poll_interval
        self._file: Optional[IO[Any]] = None

    @property
    def locked(self) -> bool:
        return self._file is not None

    def acquire(self, timeout: float = LOCK_TIMEOUT) -> None:
        """Take the lock, waiting up to timeout seconds for it

        Raises LockError if another holder keeps it for the whole timeout.
        """
        if self._file is not None:
            return

        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, LOCK_FILE_MODE)
        f = os.fdopen(fd, "r+")

        deadline = time.monotonic() + timeout
        while True:
            try:
                fcntl.flock(f, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    break
                time.sleep(self.poll_interval)
                continue
            except BaseException:
                f.close()
                raise

            logger.debug("Acquired %s", self.path)
            self._file = f
            return

        f.close()
        raise LockError(
            "Could not acquire password file lock",
            timeout=timeout,
            path=self.path,
        )

    def release(self) -> None:
        f, self._file = self._file, None
        if f is None:
            return

        try:
            fcntl.flock(f, fcntl.LOCK_UN)
        finally:
            f.close()
        logger.debug("Released %s", self.path)

    @contextlib.contextmanager
    def held(self, timeout: float = LOCK_TIMEOUT) -> Iterator[LockManager]:
        """Hold the lock for the duration of a with-block

        If the lock was already held on entry, it is left held on exit.
        """
        was_locked = self.locked
        self.acquire(timeout)
        try:
            yield self
        finally:
            if not was_locked:
                self.release()

    def __enter__(self) -> LockManager:
        self.acquire()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.release()

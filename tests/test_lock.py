from pathlib import Path
import pytest
import threading
import time
from unittest import mock

from etcutils.errors import LockError
from etcutils.lock import LockManager

from .utils import file_mode


@pytest.fixture
def lock_path(tmp_path: Path) -> Path:
    return tmp_path / ".pwd.lock"


class TestLockManager:
    def test_acquire_release(self, lock_path: Path) -> None:
        lm = LockManager(lock_path)
        assert not lm.locked

        lm.acquire(timeout=1)
        assert lm.locked
        assert lock_path.exists()

        lm.release()
        assert not lm.locked

    def test_lock_file_mode(self, lock_path: Path) -> None:
        """The lock file is created readable by its owner only"""
        with LockManager(lock_path):
            assert file_mode(lock_path) == 0o600

    def test_acquire_twice(self, lock_path: Path) -> None:
        """Acquiring a lock already held is a no-op"""
        lm = LockManager(lock_path)
        lm.acquire(timeout=1)
        lm.acquire(timeout=1)
        assert lm.locked
        lm.release()
        assert not lm.locked

    def test_release_unlocked(self, lock_path: Path) -> None:
        """Releasing an unheld lock is a no-op"""
        lm = LockManager(lock_path)
        lm.release()
        assert not lm.locked

    def test_exclusive(self, lock_path: Path) -> None:
        """A second holder cannot take the lock, and times out"""
        first = LockManager(lock_path)
        second = LockManager(lock_path, poll_interval=0.01)

        with first:
            with pytest.raises(LockError) as e:
                second.acquire(timeout=0.1)
            assert e.value.timeout == 0.1
            assert e.value.path == lock_path
            assert "timeout: 0.1s" in str(e.value)
            assert not second.locked

        # Free again once the first holder is done
        second.acquire(timeout=0.1)
        assert second.locked
        second.release()

    def test_zero_timeout(self, lock_path: Path) -> None:
        """A zero timeout tries exactly once"""
        lm = LockManager(lock_path)
        lm.acquire(timeout=0)
        assert lm.locked
        lm.release()

    def test_held_releases_on_error(self, lock_path: Path) -> None:
        lm = LockManager(lock_path)
        with pytest.raises(RuntimeError):
            with lm.held(timeout=1):
                assert lm.locked
                raise RuntimeError("boom")
        assert not lm.locked

    def test_held_nested(self, lock_path: Path) -> None:
        """An inner held() leaves a lock taken by an outer one held"""
        lm = LockManager(lock_path)
        with lm.held(timeout=1):
            with lm.held(timeout=1):
                assert lm.locked
            assert lm.locked
        assert not lm.locked

    def test_polls_until_free(self, lock_path: Path) -> None:
        """acquire() retries while the lock is busy"""
        calls = []

        def flock_busy_once(f, op):
            calls.append(op)
            if len(calls) == 1:
                raise BlockingIOError()

        lm = LockManager(lock_path, poll_interval=0)
        with mock.patch("fcntl.flock", side_effect=flock_busy_once):
            lm.acquire(timeout=1)
            assert lm.locked
            assert len(calls) == 2
            lm.release()

    def test_waits_for_release(self, lock_path: Path) -> None:
        """A waiting acquire() succeeds once the holder lets go"""
        first = LockManager(lock_path)
        second = LockManager(lock_path, poll_interval=0.01)

        first.acquire(timeout=1)
        releaser = threading.Timer(0.3, first.release)
        releaser.start()
        try:
            start = time.monotonic()
            second.acquire(timeout=10)
            waited = time.monotonic() - start
        finally:
            releaser.join()

        assert second.locked
        assert not first.locked
        assert waited >= 0.2
        second.release()
        second.release()

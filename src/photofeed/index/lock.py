"""Advisory lock serializing reconciliation passes over one index document."""

from __future__ import annotations

import json
import logging
import os
import threading
import time
import uuid
from pathlib import Path
from types import TracebackType
from typing import Callable, Optional, Type

from photofeed.errors import LockUnavailableError

LOGGER = logging.getLogger(__name__)


def lock_path_for(index_path: Path) -> Path:
    index_path = Path(index_path)
    return index_path.with_name(index_path.name + ".lock")


class IndexLock:
    """Exclusive lock file guarding load, merge and persist of the index.

    The lock file is created with ``O_EXCL`` so separate processes exclude
    each other; a ``threading.Lock`` covers threads sharing this instance.
    A lock file older than ``stale_after`` seconds is assumed abandoned and
    broken. Holders call :meth:`refresh` while working so a long pass is not
    mistaken for an abandoned one.

    Each acquisition writes a random token into the file. :meth:`release`
    only removes a file that still carries our token, so a holder whose lock
    was broken never deletes the lock of the pass that replaced it.
    """

    def __init__(
        self,
        path: Path,
        *,
        timeout: float = 30.0,
        stale_after: float = 300.0,
        poll_interval: float = 0.1,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = Path(path)
        self.timeout = timeout
        self.stale_after = stale_after
        self.poll_interval = poll_interval
        self.clock = clock
        self._thread_lock = threading.Lock()
        self._held = False
        self._token: Optional[str] = None

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        deadline = time.monotonic() + self.timeout
        if not self._thread_lock.acquire(timeout=max(self.timeout, 0)):
            raise LockUnavailableError(f"Timed out waiting for {self.path}")
        try:
            while not self._try_create():
                if self._break_if_stale():
                    continue
                if time.monotonic() >= deadline:
                    raise LockUnavailableError(f"Index lock {self.path} is held by another pass")
                time.sleep(self.poll_interval)
        except BaseException:
            self._thread_lock.release()
            raise
        self._held = True

    def owns(self) -> bool:
        """Return True while the lock file on disk still carries our token."""
        if not self._held or self._token is None:
            return False
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return False
        return isinstance(data, dict) and data.get("token") == self._token

    def refresh(self) -> None:
        """Bump the lock file's mtime; raise if another pass has taken over."""
        if not self.owns():
            raise LockUnavailableError(f"Index lock {self.path} was taken over by another pass")
        os.utime(self.path, None)

    def release(self) -> None:
        if not self._held:
            return
        try:
            if self.owns():
                self.path.unlink(missing_ok=True)
            else:
                LOGGER.warning("Index lock %s no longer ours, leaving it in place", self.path)
        finally:
            self._held = False
            self._token = None
            self._thread_lock.release()

    def _try_create(self) -> bool:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        token = uuid.uuid4().hex
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump({"pid": os.getpid(), "token": token, "acquired_at": self.clock()}, handle)
        self._token = token
        return True

    def _break_if_stale(self) -> bool:
        try:
            age = self.clock() - self.path.stat().st_mtime
        except FileNotFoundError:
            # Released between our create attempt and the stat
            return True
        if age < self.stale_after:
            return False
        LOGGER.warning("Breaking stale index lock %s (age %.0fs)", self.path, age)
        self.path.unlink(missing_ok=True)
        return True

    def __enter__(self) -> "IndexLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.release()

"""Cross-process advisory lock on a sibling lock file.

The lock is an OS-level exclusive lock (``flock`` on POSIX, ``LockFileEx`` on
Windows) taken through portalocker in non-blocking mode. Contenders back off
exponentially (with jitter) until the configured timeout, then give up with
:class:`LockTimeout`.

The OS drops the lock when its holder's file handle closes, including when
the process dies, so a crashed writer never leaves the lock held. The lock
file itself stays on disk after release: unlinking it would let a waiter
that already opened the old file and a newcomer that creates a new one both
hold "the" lock.
"""

from __future__ import annotations

import asyncio
import logging
import os
import random
import time
from pathlib import Path
from typing import IO, Any, Optional

import portalocker

from tokenvault.core.config import LockConfig
from tokenvault.exceptions import FileAccessError, LockTimeout

log = logging.getLogger(__name__)

LOCK_SUFFIX = ".lockfile"


class CrossProcessLock:
    """Async context manager guarding one write against other processes.

    Not re-entrant: acquiring twice from the same instance without releasing
    waits on itself until the timeout.
    """

    def __init__(
        self,
        lock_path: Path,
        config: Optional[LockConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._path = Path(lock_path)
        self._config = config or LockConfig()
        self._log = logger or log
        self._handle: Optional[IO[str]] = None

    @classmethod
    def for_target(
        cls,
        target: Path,
        config: Optional[LockConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> CrossProcessLock:
        return cls(target.with_name(target.name + LOCK_SUFFIX), config, logger)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def held(self) -> bool:
        return self._handle is not None

    async def acquire(self) -> None:
        cfg = self._config
        start = time.monotonic()
        attempt = 0

        while True:
            handle = self._try_lock()
            if handle is not None:
                self._handle = handle
                if attempt:
                    self._log.debug("Acquired %s after %d retries", self._path, attempt)
                return

            elapsed = time.monotonic() - start
            if elapsed >= cfg.timeout_seconds:
                raise LockTimeout(
                    f"Could not acquire {self._path} within {cfg.timeout_seconds}s",
                    lock_path=str(self._path),
                    waited=elapsed,
                )

            base_wait = min(cfg.initial_delay_seconds * 2 ** attempt, cfg.max_delay_seconds)
            wait = base_wait + random.uniform(0, base_wait * cfg.jitter_factor)
            wait = min(wait, cfg.timeout_seconds - elapsed)
            attempt += 1
            self._log.debug("Lock %s busy, retry %d in %.3fs", self._path, attempt, wait)
            await asyncio.sleep(wait)

    def release(self) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        try:
            portalocker.unlock(handle)
        finally:
            handle.close()

    async def __aenter__(self) -> CrossProcessLock:
        await self.acquire()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        self.release()

    def _try_lock(self) -> Optional[IO[str]]:
        """Open the lock file and try to lock it once; None if someone holds it."""
        try:
            fd = os.open(self._path, os.O_RDWR | os.O_CREAT, 0o600)
        except OSError as e:
            raise FileAccessError(f"Cannot open lock file {self._path}: {e}") from e
        handle = os.fdopen(fd, "r+", encoding="ascii")
        try:
            portalocker.lock(handle, portalocker.LOCK_EX | portalocker.LOCK_NB)
        except portalocker.AlreadyLocked:
            handle.close()
            return None
        except portalocker.LockException as e:
            handle.close()
            raise FileAccessError(f"Cannot lock {self._path}: {e}") from e
        except BaseException:
            handle.close()
            raise
        # Holder pid for diagnostics only; the OS lock is what excludes others
        try:
            handle.seek(0)
            handle.truncate()
            handle.write(f"{os.getpid()} {time.time():.6f}\n")
            handle.flush()
        except OSError as e:
            portalocker.unlock(handle)
            handle.close()
            raise FileAccessError(f"Cannot write lock file {self._path}: {e}") from e
        return handle

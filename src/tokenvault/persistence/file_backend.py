"""File-based persistence backend — one token cache blob at one path.

Writes go to a temp file in the target directory and are moved into place
with ``os.replace``, so readers see either the old blob or the new one and
never a partial write. Writers serialize through a :class:`CrossProcessLock`.
Readers take no lock.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from tokenvault.core.config import LockConfig
from tokenvault.core.types import PersistenceIdentity
from tokenvault.exceptions import FileAccessError
from tokenvault.persistence.lock import CrossProcessLock

log = logging.getLogger(__name__)

VALIDATION_SUFFIX = ".validation"


class FilePersistence:
    """Stores the cache blob as a plain file on the local filesystem."""

    def __init__(
        self,
        location: Path,
        lock_config: Optional[LockConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._identity = PersistenceIdentity(location=Path(location))
        self._lock_config = lock_config or LockConfig()
        self._log = logger or log

    @classmethod
    async def create(
        cls,
        location: Path | str,
        *,
        lock_config: Optional[LockConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> FilePersistence:
        """Build an instance, creating the parent directory if needed.

        Raises:
            FileAccessError: If the directory cannot be created or written.
        """
        path = Path(location).expanduser().absolute()
        _ensure_writable_dir(path.parent)
        return cls(path, lock_config=lock_config, logger=logger)

    @property
    def identity(self) -> PersistenceIdentity:
        return self._identity

    @property
    def location(self) -> Path:
        return self._identity.location

    @property
    def logger(self) -> logging.Logger:
        return self._log

    @property
    def lock_config(self) -> LockConfig:
        return self._lock_config

    def lock(self) -> CrossProcessLock:
        """A fresh write lock for this path, usable as ``async with``."""
        return CrossProcessLock.for_target(self.location, self._lock_config, self._log)

    async def save(self, contents: str) -> None:
        async with self.lock():
            self._write(contents)

    async def load(self) -> Optional[str]:
        return self._read()

    async def load_or_create(self, contents: str) -> Optional[str]:
        async with self.lock():
            existing = self._read()
            if existing is None:
                self._write(contents)
            return existing

    async def delete(self) -> bool:
        async with self.lock():
            try:
                self.location.unlink()
            except FileNotFoundError:
                self._log.debug("Nothing to delete at %s", self.location)
                return False
            except OSError as e:
                raise FileAccessError(f"Cannot delete {self.location}: {e}") from e
        self._log.debug("Deleted %s", self.location)
        return True

    async def reload_necessary(self, last_sync: float) -> bool:
        modified = self.last_modified()
        if modified is None:
            return False
        return modified > last_sync

    def last_modified(self) -> Optional[float]:
        """The backing file's mtime in POSIX seconds, or None if absent."""
        try:
            return self.location.stat().st_mtime
        except FileNotFoundError:
            return None
        except OSError as e:
            raise FileAccessError(f"Cannot stat {self.location}: {e}") from e

    async def create_for_persistence_validation(self) -> FilePersistence:
        probe = self.location.with_name(self.location.name + VALIDATION_SUFFIX)
        return await FilePersistence.create(
            probe, lock_config=self._lock_config, logger=self._log
        )

    def _read(self) -> Optional[str]:
        try:
            # Bytes, not text mode: universal newlines would rewrite \r and \r\n
            return self.location.read_bytes().decode("utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise FileAccessError(f"Cannot read {self.location}: {e}") from e

    def _write(self, contents: str) -> None:
        target = self.location
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
            )
        except OSError as e:
            raise FileAccessError(f"Cannot create temp file next to {target}: {e}") from e

        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
                f.write(contents)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, target)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise FileAccessError(f"Cannot write {target}: {e}") from e
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
        self._log.debug("Saved %d chars to %s", len(contents), target)


def _ensure_writable_dir(directory: Path) -> None:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileAccessError(f"Cannot create directory {directory}: {e}") from e
    if not os.access(directory, os.W_OK | os.X_OK):
        raise FileAccessError(f"Directory {directory} is not writable")

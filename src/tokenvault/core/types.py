"""Shared type aliases and value objects for the persistence layer."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Opaque serialized token cache, owned by the calling auth library
CacheBlob = str

# POSIX seconds, compared against a resource's st_mtime
Timestamp = float


@dataclass(frozen=True)
class PersistenceIdentity:
    """Which physical resources a backend instance addresses."""

    location: Path
    service_name: Optional[str] = None
    account_name: Optional[str] = None

    @property
    def uses_secret_store(self) -> bool:
        return self.service_name is not None and self.account_name is not None

    def describe(self) -> str:
        if self.uses_secret_store:
            return f"{self.service_name}/{self.account_name} (shadow: {self.location})"
        return str(self.location)

"""In-memory keyring backends for tests — no OS secret store needed."""

from __future__ import annotations

from typing import Optional

from keyring.backend import KeyringBackend
from keyring.errors import KeyringLocked, PasswordDeleteError


class FakeKeyring(KeyringBackend):
    """Dict-backed keyring keyed by (service, account)."""

    priority = 1  # type: ignore[assignment]

    def __init__(self) -> None:
        super().__init__()
        self.entries: dict[tuple[str, str], str] = {}
        self.calls: list[tuple[str, str, str]] = []

    def get_password(self, service: str, username: str) -> Optional[str]:
        self.calls.append(("get", service, username))
        return self.entries.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self.calls.append(("set", service, username))
        self.entries[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        self.calls.append(("delete", service, username))
        try:
            del self.entries[(service, username)]
        except KeyError:
            raise PasswordDeleteError("Password not found") from None


class LockedKeyring(FakeKeyring):
    """Every call fails the way a locked login keychain does."""

    def get_password(self, service: str, username: str) -> Optional[str]:
        raise KeyringLocked("Keyring is locked")

    def set_password(self, service: str, username: str, password: str) -> None:
        raise KeyringLocked("Keyring is locked")

    def delete_password(self, service: str, username: str) -> None:
        raise KeyringLocked("Keyring is locked")


class DeleteRefusedKeyring(FakeKeyring):
    """Reads and writes work; deletes are refused while the entry stays."""

    def delete_password(self, service: str, username: str) -> None:
        self.calls.append(("delete", service, username))
        raise PasswordDeleteError("Access denied")


class BuggyKeyring(FakeKeyring):
    """Raises a non-environment error, as a programming mistake would."""

    def get_password(self, service: str, username: str) -> Optional[str]:
        raise TypeError("unexpected argument")

    def set_password(self, service: str, username: str, password: str) -> None:
        raise TypeError("unexpected argument")


class ReadLockedKeyring(FakeKeyring):
    """Writes and deletes work; reads fail as if the keychain locked meanwhile."""

    def get_password(self, service: str, username: str) -> Optional[str]:
        raise KeyringLocked("Keyring is locked")


class OverwritingKeyring(FakeKeyring):
    """Another writer replaces each entry right after it is set."""

    def __init__(self, replacement: str) -> None:
        super().__init__()
        self.replacement = replacement

    def set_password(self, service: str, username: str, password: str) -> None:
        super().set_password(service, username, password)
        self.entries[(service, username)] = self.replacement

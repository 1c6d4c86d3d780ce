from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Protocol

from rentdesk.core.config import CredentialEntry
from rentdesk.core.errors import AuthenticationError
from rentdesk.core.security import Identity, dummy_verify, verify_password

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class CredentialRecord:
    username: str
    password_hash: str
    display_name: str | None = None


class CredentialStore(Protocol):
    def find_by_username(self, username: str) -> CredentialRecord | None: ...

    def verify_password(self, record: CredentialRecord, password: str) -> bool: ...


class StaticCredentialStore:
    """
    Credential lookup over a fixed list of bcrypt-hashed users.

    Usernames match case-insensitively; the stored spelling is what ends up in
    the Identity, so "moudh" and "Moudh" log in as the same owner.
    """

    def __init__(self, records: Iterable[CredentialRecord]):
        self._by_key: dict[str, CredentialRecord] = {}
        for record in records:
            key = record.username.casefold()
            if key in self._by_key:
                log.warning("duplicate credential for username %r ignored", record.username)
                continue
            self._by_key[key] = record

    @classmethod
    def from_entries(cls, entries: Iterable[CredentialEntry]) -> "StaticCredentialStore":
        return cls(
            CredentialRecord(username=e.username, password_hash=e.password_hash, display_name=e.display_name)
            for e in entries
        )

    def find_by_username(self, username: str) -> CredentialRecord | None:
        return self._by_key.get(username.strip().casefold())

    def verify_password(self, record: CredentialRecord, password: str) -> bool:
        return verify_password(password, record.password_hash)


def authenticate(store: CredentialStore, username: str | None, password: str | None) -> Identity:
    if not username or not username.strip() or not password:
        raise AuthenticationError("Invalid credentials")

    record = store.find_by_username(username)
    if record is None:
        dummy_verify()
        raise AuthenticationError("Invalid credentials")

    if not store.verify_password(record, password):
        raise AuthenticationError("Invalid credentials")

    return Identity(id=record.username, name=record.display_name or record.username)

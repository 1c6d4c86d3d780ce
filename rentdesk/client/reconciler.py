"""
Optimistic listing cache for dashboard front ends.

Every mutation goes through the same cycle: patch the local list right away,
persist it, send the request, then refresh from the server whether the
request worked or not. A refresh that cannot reach the server falls back to
the last known-good snapshot, which rolls back any optimistic change the
server never confirmed. Refreshes are applied in completion order, so the
last one to finish wins; concurrent edits are never merged.
"""
from __future__ import annotations

import copy
import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Protocol

from rentdesk.client.api import ApiError
from rentdesk.client.cache import CacheStore
from rentdesk.core.ids import TEMP_PREFIX, gen_id, is_temporary_id

log = logging.getLogger(__name__)

Record = dict[str, Any]

DESCRIPTIVE_FIELDS = (
    "name",
    "price",
    "rooms",
    "location",
    "city",
    "utilities",
    "parking",
    "petPolicy",
    "available",
    "note",
)


class ListingApi(Protocol):
    async def list_listings(self) -> list[Record]: ...

    async def create_listing(self, fields: Mapping[str, Any]) -> Record: ...

    async def update_listing(self, listing_id: str, fields: Mapping[str, Any]) -> Record: ...

    async def set_status(self, listing_id: str, status: str) -> Record: ...

    async def delete_listing(self, listing_id: str) -> Record: ...


class MutationState(str, enum.Enum):
    IDLE = "idle"
    OPTIMISTIC = "optimistic"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


TRANSITIONS: dict[MutationState, frozenset[MutationState]] = {
    MutationState.IDLE: frozenset({MutationState.OPTIMISTIC}),
    MutationState.OPTIMISTIC: frozenset({MutationState.CONFIRMED, MutationState.FAILED}),
    MutationState.CONFIRMED: frozenset({MutationState.IDLE}),
    MutationState.FAILED: frozenset({MutationState.ROLLED_BACK}),
    MutationState.ROLLED_BACK: frozenset({MutationState.IDLE}),
}


class InvalidTransition(Exception):
    pass


class MutationKind(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"
    SET_STATUS = "set_status"
    DELETE = "delete"


@dataclass
class PendingMutation:
    kind: MutationKind
    listing_id: str | None
    state: MutationState = MutationState.IDLE
    history: list[MutationState] = field(default_factory=lambda: [MutationState.IDLE])
    error: str | None = None

    def advance(self, to: MutationState) -> None:
        if to not in TRANSITIONS[self.state]:
            raise InvalidTransition(f"{self.kind.value}: {self.state.value} -> {to.value}")
        self.state = to
        self.history.append(to)


@dataclass(frozen=True)
class MutationResult:
    ok: bool
    kind: MutationKind
    listing_id: str | None
    history: tuple[MutationState, ...]
    error: str | None = None
    record: Record | None = None


def _trimmed(fields: Mapping[str, Any]) -> Record:
    out: Record = {}
    for key in DESCRIPTIVE_FIELDS:
        value = fields.get(key)
        out[key] = value.strip() if isinstance(value, str) else ("" if value is None else str(value))
    return out


def _replace(listings: list[Record], listing_id: str, patch: Mapping[str, Any]) -> list[Record]:
    return [{**item, **patch} if item.get("id") == listing_id else item for item in listings]


def _describe(exc: Exception) -> str:
    if isinstance(exc, ApiError):
        return exc.message
    return f"Unexpected error: {type(exc).__name__}: {exc}"


def _remove(listings: list[Record], listing_id: str) -> list[Record]:
    return [item for item in listings if item.get("id") != listing_id]


class Reconciler:
    def __init__(self, api: ListingApi, cache: CacheStore):
        self.api = api
        self.cache = cache
        self.listings: list[Record] = []
        self.last_refresh_error: str | None = None
        self.refresh_count = 0
        self._known_good: list[Record] = []
        self._pending: list[PendingMutation] = []

    @property
    def busy(self) -> bool:
        return any(m.state is MutationState.OPTIMISTIC for m in self._pending)

    @property
    def pending(self) -> tuple[PendingMutation, ...]:
        return tuple(self._pending)

    def load(self) -> list[Record]:
        """Show whatever the cache holds until the first refresh lands."""
        self.listings = self.cache.load()
        self._known_good = copy.deepcopy(self.listings)
        return self.listings

    def _persist(self) -> None:
        self.cache.save(self.listings)

    async def refresh(self) -> bool:
        self.refresh_count += 1
        try:
            fresh = await self.api.list_listings()
            if not isinstance(fresh, list):
                raise ApiError("Malformed response from listing service")
        except Exception as e:
            message = _describe(e)
            log.warning("refresh failed, restoring last known-good list: %s", message)
            self.last_refresh_error = message
            self.listings = copy.deepcopy(self._known_good)
            self._persist()
            return False

        self.last_refresh_error = None
        self._known_good = copy.deepcopy(fresh)
        self.listings = copy.deepcopy(fresh)
        self._persist()
        return True

    def _confirm(self, kind: MutationKind, listing_id: str | None, record: Record | None) -> None:
        # Server accepted the write: fold it into the fallback so a failed refresh keeps it.
        if kind is MutationKind.DELETE:
            self._known_good = _remove(self._known_good, listing_id or "")
        elif kind is MutationKind.CREATE and record:
            self._known_good = [copy.deepcopy(record)] + self._known_good
        elif record and record.get("id"):
            self._known_good = _replace(self._known_good, record["id"], copy.deepcopy(record))

    async def _run(
        self,
        kind: MutationKind,
        listing_id: str | None,
        apply_local: Callable[[list[Record]], list[Record]],
        send: Callable[[], Awaitable[Record]],
    ) -> MutationResult:
        mutation = PendingMutation(kind=kind, listing_id=listing_id)
        self._pending.append(mutation)
        try:
            mutation.advance(MutationState.OPTIMISTIC)
            self.listings = apply_local(copy.deepcopy(self.listings))
            self._persist()

            try:
                record = await send()
            except Exception as e:
                mutation.error = _describe(e)
                mutation.advance(MutationState.FAILED)
                log.info("%s failed for %s: %s", kind.value, listing_id, mutation.error)
                await self.refresh()
                mutation.advance(MutationState.ROLLED_BACK)
                mutation.advance(MutationState.IDLE)
                return MutationResult(
                    ok=False,
                    kind=kind,
                    listing_id=listing_id,
                    history=tuple(mutation.history),
                    error=mutation.error,
                )

            mutation.advance(MutationState.CONFIRMED)
            self._confirm(kind, listing_id, record)
            await self.refresh()
            mutation.advance(MutationState.IDLE)
            return MutationResult(
                ok=True,
                kind=kind,
                listing_id=listing_id,
                history=tuple(mutation.history),
                record=record,
            )
        finally:
            self._pending.remove(mutation)

    async def create(self, fields: Mapping[str, Any]) -> MutationResult:
        optimistic = {"id": gen_id(TEMP_PREFIX), **_trimmed(fields), "status": "Available"}
        return await self._run(
            MutationKind.CREATE,
            None,
            lambda listings: [optimistic] + listings,
            lambda: self.api.create_listing(_trimmed(fields)),
        )

    def _require_saved(self, listing_id: str) -> None:
        # Placeholder ids only live until the create call returns.
        if is_temporary_id(listing_id):
            raise ValueError(f"listing {listing_id} has not been saved yet")

    async def update(self, listing_id: str, fields: Mapping[str, Any]) -> MutationResult:
        self._require_saved(listing_id)
        patch = _trimmed(fields)
        return await self._run(
            MutationKind.UPDATE,
            listing_id,
            lambda listings: _replace(listings, listing_id, patch),
            lambda: self.api.update_listing(listing_id, patch),
        )

    async def set_status(self, listing_id: str, status: str) -> MutationResult:
        self._require_saved(listing_id)
        return await self._run(
            MutationKind.SET_STATUS,
            listing_id,
            lambda listings: _replace(listings, listing_id, {"status": status}),
            lambda: self.api.set_status(listing_id, status),
        )

    async def delete(self, listing_id: str) -> MutationResult:
        self._require_saved(listing_id)
        return await self._run(
            MutationKind.DELETE,
            listing_id,
            lambda listings: _remove(listings, listing_id),
            lambda: self.api.delete_listing(listing_id),
        )

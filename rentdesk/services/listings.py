from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rentdesk.core.errors import NotFoundError, ValidationError
from rentdesk.core.security import Identity
from rentdesk.models.base import utcnow
from rentdesk.models.listing import REQUIRED_FIELDS, Listing, ListingStatus
from rentdesk.schemas.listing import ListingOut


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def normalize_listing_fields_or_raise(fields: Mapping[str, Any]) -> dict[str, str]:
    """
    Trim every descriptive field and check the required ones are present.
    Accepts attribute names (pet_policy) or wire names (petPolicy).
    Raises ValidationError naming every missing field.
    """
    normalized: dict[str, str] = {}
    missing: list[str] = []
    for attr, wire in REQUIRED_FIELDS:
        value = _clean(fields.get(attr, fields.get(wire)))
        if not value:
            missing.append(wire)
        normalized[attr] = value

    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}", fields=missing)

    normalized["note"] = _clean(fields.get("note"))
    return normalized


def _require_id(listing_id: str | None) -> str:
    cleaned = _clean(listing_id)
    if not cleaned:
        raise ValidationError("Listing id is required", fields=["id"])
    return cleaned


def _parse_status(status: str | None) -> ListingStatus:
    try:
        return ListingStatus(status)
    except ValueError:
        raise ValidationError("Status must be either 'Available' or 'Rented'", fields=["status"])


def _advance(previous: datetime | None) -> datetime:
    # updated_at must move forward even when two writes share a clock tick
    now = utcnow()
    if previous is None:
        return now
    if previous.tzinfo is None:
        previous = previous.replace(tzinfo=timezone.utc)
    return max(now, previous + timedelta(microseconds=1))


async def _get_owned_or_raise(db: AsyncSession, identity: Identity, listing_id: str) -> Listing:
    # Existence and ownership in one query: a foreign id looks exactly like a missing one.
    stmt = select(Listing).where(Listing.id == listing_id, Listing.user_id == identity.id)
    listing = (await db.execute(stmt)).scalar_one_or_none()
    if listing is None:
        raise NotFoundError("Listing not found")
    return listing


def to_listing_out(listing: Listing) -> ListingOut:
    return ListingOut(
        id=listing.id,
        user_id=listing.user_id,
        name=listing.name,
        price=listing.price,
        rooms=listing.rooms,
        location=listing.location,
        city=listing.city,
        utilities=listing.utilities,
        parking=listing.parking,
        pet_policy=listing.pet_policy,
        available=listing.available,
        note=listing.note,
        status=listing.status,
        created_at=listing.created_at,
        updated_at=listing.updated_at,
    )


async def create_listing(*, db: AsyncSession, identity: Identity, fields: Mapping[str, Any]) -> Listing:
    """
    Validate + insert a new listing owned by the caller, status Available.

    Note: the caller commits; the mirror runs only after that commit.
    """
    normalized = normalize_listing_fields_or_raise(fields)
    now = utcnow()
    listing = Listing(
        user_id=identity.id,
        status=ListingStatus.AVAILABLE.value,
        created_at=now,
        updated_at=now,
        created_by=identity.id,
        updated_by=identity.id,
        **normalized,
    )
    db.add(listing)
    await db.flush()
    return listing


async def list_listings(*, db: AsyncSession, identity: Identity) -> list[Listing]:
    stmt = (
        select(Listing)
        .where(Listing.user_id == identity.id)
        .order_by(Listing.created_at.desc(), Listing.id.desc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def update_listing(
    *,
    db: AsyncSession,
    identity: Identity,
    listing_id: str | None,
    fields: Mapping[str, Any],
) -> Listing:
    listing_id = _require_id(listing_id)
    normalized = normalize_listing_fields_or_raise(fields)
    listing = await _get_owned_or_raise(db, identity, listing_id)

    # id, owner and status are never touched by a full update
    for attr, value in normalized.items():
        setattr(listing, attr, value)
    listing.updated_at = _advance(listing.updated_at)
    listing.updated_by = identity.id

    await db.flush()
    return listing


async def set_listing_status(
    *,
    db: AsyncSession,
    identity: Identity,
    listing_id: str | None,
    status: str | None,
) -> Listing:
    listing_id = _require_id(listing_id)
    new_status = _parse_status(status)
    listing = await _get_owned_or_raise(db, identity, listing_id)

    listing.status = new_status.value
    listing.updated_at = _advance(listing.updated_at)
    listing.updated_by = identity.id

    await db.flush()
    return listing


async def delete_listing(*, db: AsyncSession, identity: Identity, listing_id: str | None) -> Listing:
    """Hard delete. A repeated delete of the same id raises NotFoundError."""
    listing_id = _require_id(listing_id)
    listing = await _get_owned_or_raise(db, identity, listing_id)
    await db.delete(listing)
    await db.flush()
    return listing

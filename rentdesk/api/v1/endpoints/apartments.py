import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from rentdesk.core.db import get_db
from rentdesk.core.security import Identity
from rentdesk.schemas.listing import (
    ListingDelete,
    ListingDeleteOut,
    ListingFields,
    ListingOut,
    ListingStatusUpdate,
    ListingUpdate,
)
from rentdesk.services.auth import get_identity
from rentdesk.services.listings import (
    create_listing,
    delete_listing,
    list_listings,
    set_listing_status,
    to_listing_out,
    update_listing,
)
from rentdesk.services.mirror import MirrorEvent, WebhookMirror, get_mirror

log = logging.getLogger(__name__)
router = APIRouter()


@router.get("/apartments", response_model=list[ListingOut])
async def get_apartments(
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> list[ListingOut]:
    rows = await list_listings(db=db, identity=identity)
    return [to_listing_out(r) for r in rows]


@router.post("/apartments/create", response_model=ListingOut, status_code=status.HTTP_201_CREATED)
async def create_apartment(
    payload: ListingFields,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    mirror: WebhookMirror = Depends(get_mirror),
) -> ListingOut:
    listing = await create_listing(db=db, identity=identity, fields=payload.model_dump())
    out = to_listing_out(listing)
    await db.commit()
    log.info("listing created id=%s user=%s", out.id, identity.id)

    # committed: mirror outcome can no longer change the response
    await mirror.mirror(MirrorEvent.CREATED, out)
    return out


@router.post("/apartments/update", response_model=ListingOut)
async def update_apartment(
    payload: ListingUpdate,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    mirror: WebhookMirror = Depends(get_mirror),
) -> ListingOut:
    listing = await update_listing(
        db=db,
        identity=identity,
        listing_id=payload.id,
        fields=payload.model_dump(exclude={"id"}),
    )
    out = to_listing_out(listing)
    await db.commit()
    log.info("listing updated id=%s user=%s", out.id, identity.id)

    await mirror.mirror(MirrorEvent.UPDATED, out)
    return out


@router.post("/apartments/update-status", response_model=ListingOut)
async def update_apartment_status(
    payload: ListingStatusUpdate,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    mirror: WebhookMirror = Depends(get_mirror),
) -> ListingOut:
    listing = await set_listing_status(db=db, identity=identity, listing_id=payload.id, status=payload.status)
    out = to_listing_out(listing)
    await db.commit()
    log.info("listing status id=%s status=%s user=%s", out.id, out.status, identity.id)

    await mirror.mirror(MirrorEvent.STATUS_CHANGED, out)
    return out


@router.post("/apartments/delete", response_model=ListingDeleteOut)
async def delete_apartment(
    payload: ListingDelete,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
    mirror: WebhookMirror = Depends(get_mirror),
) -> ListingDeleteOut:
    listing = await delete_listing(db=db, identity=identity, listing_id=payload.id)
    out = to_listing_out(listing)
    await db.commit()
    log.info("listing deleted id=%s user=%s", out.id, identity.id)

    await mirror.mirror(MirrorEvent.DELETED, out)
    return ListingDeleteOut(success=True, id=out.id)

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ListingFields(_CamelModel):
    # Presence is checked by the service layer so missing fields come back as one 400 naming all of them.
    name: str | None = None
    price: str | None = None
    rooms: str | None = None
    location: str | None = None
    city: str | None = None
    utilities: str | None = None
    parking: str | None = None
    pet_policy: str | None = None
    available: str | None = None
    note: str | None = None


class ListingUpdate(ListingFields):
    id: str | None = None


class ListingStatusUpdate(_CamelModel):
    id: str | None = None
    status: str | None = None


class ListingDelete(_CamelModel):
    id: str | None = None


class ListingOut(_CamelModel):
    id: str
    user_id: str
    name: str
    price: str
    rooms: str
    location: str
    city: str
    utilities: str
    parking: str
    pet_policy: str
    available: str
    note: str
    status: str
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # SQLite hands back naive datetimes; everything is stored as UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class ListingDeleteOut(_CamelModel):
    success: bool = True
    id: str

import enum

from sqlalchemy import CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from rentdesk.core.ids import LISTING_PREFIX, gen_id
from rentdesk.models.base import AuditMixin, Base


class ListingStatus(str, enum.Enum):
    AVAILABLE = "Available"
    RENTED = "Rented"


# (attribute, wire name) for the descriptive fields that must be non-empty
REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("name", "name"),
    ("price", "price"),
    ("rooms", "rooms"),
    ("location", "location"),
    ("city", "city"),
    ("utilities", "utilities"),
    ("parking", "parking"),
    ("pet_policy", "petPolicy"),
    ("available", "available"),
)


class Listing(AuditMixin, Base):
    __tablename__ = "listings"
    __table_args__ = (
        CheckConstraint("status IN ('Available', 'Rented')", name="ck_listings_status"),
        Index("ix_listings_user_created", "user_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id(LISTING_PREFIX))

    # owning Identity.id; every query filters on it
    user_id: Mapped[str] = mapped_column(String(120), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    price: Mapped[str] = mapped_column(String(120), nullable=False)
    rooms: Mapped[str] = mapped_column(String(120), nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    city: Mapped[str] = mapped_column(String(120), nullable=False)
    utilities: Mapped[str] = mapped_column(String(200), nullable=False)
    parking: Mapped[str] = mapped_column(String(200), nullable=False)
    pet_policy: Mapped[str] = mapped_column(String(200), nullable=False)
    available: Mapped[str] = mapped_column(String(200), nullable=False)
    note: Mapped[str] = mapped_column(Text, nullable=False, default="")

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ListingStatus.AVAILABLE.value)

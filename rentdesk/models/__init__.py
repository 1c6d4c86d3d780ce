from rentdesk.models.base import Base  # noqa: F401

from rentdesk.models.listing import Listing  # noqa: F401

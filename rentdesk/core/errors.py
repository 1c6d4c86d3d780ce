"""Error taxonomy shared by the service layer and the HTTP surface."""

from __future__ import annotations


class RentDeskError(Exception):
    """Base exception for the listing service."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, *, fields: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.fields = list(fields or [])


class ValidationError(RentDeskError):
    """A required field is missing or a value is outside its allowed set."""

    status_code = 400
    code = "validation_error"


class AuthenticationError(RentDeskError):
    """Credentials did not verify. Never says which part was wrong."""

    status_code = 401
    code = "invalid_credentials"


class NotAuthenticatedError(RentDeskError):
    """Missing, expired or tampered session token."""

    status_code = 401
    code = "unauthorized"


class NotFoundError(RentDeskError):
    """Listing id does not resolve to a listing owned by the caller.

    Non-owners get this same error as a non-existent id so listing ids are not
    leaked across identities. Do not split it into a 403.
    """

    status_code = 404
    code = "not_found"


class InfrastructureError(RentDeskError):
    """Datastore unreachable or failing. Message is a hint, never connection details."""

    status_code = 500
    code = "infrastructure_error"


class MirrorError(RentDeskError):
    """Webhook delivery failed. Caught inside the mirror, never reaches a caller."""

    status_code = 502
    code = "mirror_error"

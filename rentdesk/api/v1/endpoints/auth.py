import logging

from fastapi import APIRouter, Depends

from rentdesk.core.config import settings
from rentdesk.core.errors import AuthenticationError
from rentdesk.core.security import Identity, issue_session_token
from rentdesk.schemas.auth import IdentityOut, LoginIn, TokenOut
from rentdesk.services.auth import get_credential_store, get_identity
from rentdesk.services.credentials import CredentialStore, authenticate

log = logging.getLogger(__name__)
router = APIRouter()


@router.post("/auth/login", response_model=TokenOut)
def login(payload: LoginIn, store: CredentialStore = Depends(get_credential_store)) -> TokenOut:
    # sync handler: bcrypt verification runs in the threadpool, off the event loop
    try:
        identity = authenticate(store, payload.username, payload.password)
    except AuthenticationError:
        log.info("login rejected")
        raise

    log.info("login ok user=%s", identity.id)
    return TokenOut(
        access_token=issue_session_token(identity),
        expires_in=settings.session_ttl_minutes * 60,
        user=IdentityOut(id=identity.id, name=identity.name),
    )


@router.get("/me", response_model=IdentityOut)
async def me(identity: Identity = Depends(get_identity)) -> IdentityOut:
    return IdentityOut(id=identity.id, name=identity.name)

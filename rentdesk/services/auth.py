from fastapi import Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from rentdesk.core.errors import NotAuthenticatedError
from rentdesk.core.security import Identity, decode_session_token
from rentdesk.services.credentials import CredentialStore

bearer_scheme = HTTPBearer(auto_error=False)


def get_credential_store(request: Request) -> CredentialStore:
    return request.app.state.credential_store


async def get_identity(
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
) -> Identity:
    if credentials is None or not credentials.credentials:
        raise NotAuthenticatedError("Missing session token")
    return decode_session_token(credentials.credentials)

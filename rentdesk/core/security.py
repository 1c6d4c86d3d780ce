from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from rentdesk.core.config import settings
from rentdesk.core.errors import NotAuthenticatedError

SESSION_ALGORITHM = "HS256"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass(frozen=True)
class Identity:
    id: str
    name: str


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # malformed stored hash
        return False


def dummy_verify() -> None:
    # Burn one hash verification so unknown usernames cost the same as bad passwords.
    pwd_context.dummy_verify()


def issue_session_token(identity: Identity, *, ttl_minutes: int | None = None) -> str:
    now = datetime.now(timezone.utc)
    ttl = ttl_minutes if ttl_minutes is not None else settings.session_ttl_minutes
    claims = {
        "sub": identity.id,
        "name": identity.name,
        "iat": now,
        "exp": now + timedelta(minutes=ttl),
    }
    return jwt.encode(claims, settings.session_secret.get_secret_value(), algorithm=SESSION_ALGORITHM)


def decode_session_token(token: str) -> Identity:
    try:
        claims = jwt.decode(
            token,
            settings.session_secret.get_secret_value(),
            algorithms=[SESSION_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise NotAuthenticatedError("Session expired")
    except jwt.PyJWTError:
        raise NotAuthenticatedError("Invalid session token")

    subject = claims.get("sub")
    if not isinstance(subject, str) or not subject:
        raise NotAuthenticatedError("Invalid session token")
    return Identity(id=subject, name=claims.get("name") or subject)

import pytest

from rentdesk.core.errors import AuthenticationError, NotAuthenticatedError
from rentdesk.core.security import Identity, decode_session_token, hash_password, issue_session_token
from rentdesk.services.credentials import CredentialRecord, StaticCredentialStore, authenticate


def test_authenticate_is_case_insensitive_and_keeps_stored_spelling(credential_store, owner):
    identity = authenticate(credential_store, "mOUDH", owner["password"])
    assert identity == Identity(id="Moudh", name="Moudh")


def test_authenticate_uses_display_name(credential_store, other_owner):
    identity = authenticate(credential_store, "LENA", other_owner["password"])
    assert identity.id == "lena"
    assert identity.name == "Lena K."


@pytest.mark.parametrize(
    "username,password",
    [
        ("Moudh", "wrong-password"),
        ("nobody", "Apartments123"),
        ("", "Apartments123"),
        ("Moudh", ""),
        (None, None),
    ],
)
def test_authenticate_failures_look_identical(credential_store, username, password):
    with pytest.raises(AuthenticationError) as exc:
        authenticate(credential_store, username, password)
    assert exc.value.message == "Invalid credentials"


def test_store_ignores_duplicate_usernames():
    store = StaticCredentialStore(
        [
            CredentialRecord(username="Sam", password_hash=hash_password("first")),
            CredentialRecord(username="sam", password_hash=hash_password("second")),
        ]
    )
    record = store.find_by_username("SAM")
    assert record is not None
    assert record.username == "Sam"
    assert store.verify_password(record, "first")
    assert not store.verify_password(record, "second")


def test_malformed_stored_hash_never_verifies():
    store = StaticCredentialStore([CredentialRecord(username="x", password_hash="not-a-bcrypt-hash")])
    with pytest.raises(AuthenticationError):
        authenticate(store, "x", "anything")


def test_session_token_round_trip():
    token = issue_session_token(Identity(id="Moudh", name="Moudh"))
    assert decode_session_token(token) == Identity(id="Moudh", name="Moudh")


def test_expired_token_is_rejected():
    token = issue_session_token(Identity(id="Moudh", name="Moudh"), ttl_minutes=-5)
    with pytest.raises(NotAuthenticatedError) as exc:
        decode_session_token(token)
    assert exc.value.message == "Session expired"


def test_tampered_token_is_rejected():
    token = issue_session_token(Identity(id="Moudh", name="Moudh"))
    header, payload, signature = token.split(".")
    forged = ".".join([header, payload, signature[:-4] + ("AAAA" if not signature.endswith("AAAA") else "BBBB")])
    with pytest.raises(NotAuthenticatedError):
        decode_session_token(forged)


@pytest.mark.asyncio
async def test_login_returns_bearer_token_and_me(client, owner):
    r = await client.post("/v1/auth/login", json={"username": "moudh", "password": owner["password"]})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["token_type"] == "bearer"
    assert body["user"] == {"id": "Moudh", "name": "Moudh"}
    assert body["expires_in"] > 0

    r = await client.get("/v1/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert r.status_code == 200
    assert r.json() == {"id": "Moudh", "name": "Moudh"}


@pytest.mark.asyncio
async def test_login_failure_has_no_detail(client, owner):
    bad_password = await client.post("/v1/auth/login", json={"username": "Moudh", "password": "nope"})
    unknown_user = await client.post("/v1/auth/login", json={"username": "ghost", "password": owner["password"]})

    assert bad_password.status_code == unknown_user.status_code == 401
    assert bad_password.json() == unknown_user.json()
    assert bad_password.json()["code"] == "invalid_credentials"


@pytest.mark.asyncio
async def test_me_requires_session(client):
    r = await client.get("/v1/me")
    assert r.status_code == 401
    assert r.headers["www-authenticate"] == "Bearer"

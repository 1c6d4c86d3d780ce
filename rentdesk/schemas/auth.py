from pydantic import BaseModel


class LoginIn(BaseModel):
    username: str | None = None
    password: str | None = None


class IdentityOut(BaseModel):
    id: str
    name: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: IdentityOut

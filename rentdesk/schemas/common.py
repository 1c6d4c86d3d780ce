from pydantic import BaseModel, Field


class HealthOut(BaseModel):
    status: str = "ok"
    service: str


class ErrorResponse(BaseModel):
    code: str
    message: str
    details: list[dict] = Field(default_factory=list)

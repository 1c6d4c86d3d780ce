from fastapi import APIRouter

from rentdesk.core.config import settings
from rentdesk.schemas.common import HealthOut

router = APIRouter()


@router.get("/health", response_model=HealthOut)
async def health() -> HealthOut:
    return HealthOut(status="ok", service=settings.service_name)

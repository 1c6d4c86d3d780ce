from fastapi import APIRouter

from rentdesk.api.v1.endpoints.health import router as health_router
from rentdesk.api.v1.endpoints.auth import router as auth_router
from rentdesk.api.v1.endpoints.apartments import router as apartments_router


router = APIRouter(prefix="/v1")
router.include_router(health_router, tags=["health"])
router.include_router(auth_router, tags=["auth"])
router.include_router(apartments_router, tags=["apartments"])

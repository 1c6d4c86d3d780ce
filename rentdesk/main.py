import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from rentdesk.api.errors import register_error_handlers
from rentdesk.api.v1.router import router as v1_router
from rentdesk.core.config import settings
from rentdesk.core.db import build_engine, build_sessionmaker
from rentdesk.core.telemetry import instrument_engine, setup_telemetry
from rentdesk.services.credentials import StaticCredentialStore
from rentdesk.services.mirror import WebhookMirror

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=settings.log_level)

    # Pool and webhook client live exactly as long as the process serves requests.
    engine = build_engine(settings.database_url)
    instrument_engine(engine)
    app.state.engine = engine
    app.state.sessionmaker = build_sessionmaker(engine)
    app.state.mirror = WebhookMirror(
        base_url=settings.mirror_base_url,
        timeout_seconds=settings.mirror_timeout_seconds,
        dispatch=settings.mirror_dispatch,
    )
    if not app.state.mirror.enabled:
        log.info("mirror: MIRROR_BASE_URL not set, webhook mirroring disabled")
    log.info("startup: %s (%s)", settings.service_name, settings.env)
    try:
        yield
    finally:
        await app.state.mirror.aclose()
        await engine.dispose()
        log.info("shutdown: pool disposed")


app = FastAPI(title="RentDesk API", version="0.1.0", lifespan=lifespan)
app.state.credential_store = StaticCredentialStore.from_entries(settings.credentials)

setup_telemetry(app)
register_error_handlers(app)
app.include_router(v1_router)

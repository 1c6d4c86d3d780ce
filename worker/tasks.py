import asyncio
import logging
from typing import Any

from rentdesk.core.config import settings
from rentdesk.core.errors import MirrorError
from rentdesk.services.mirror import MIRROR_TASK_NAME, MirrorEvent, WebhookMirror, record_dead_letter
from worker.celery_app import celery

log = logging.getLogger(__name__)


async def _deliver_mirror_event(event: str, payload: dict[str, Any], *, mirror: WebhookMirror | None = None) -> bool:
    try:
        ev = MirrorEvent(event)
    except ValueError:
        log.error("mirror task: unknown event %r dropped", event)
        return False

    owned = mirror is None
    if mirror is None:
        mirror = WebhookMirror(base_url=settings.mirror_base_url, timeout_seconds=settings.mirror_timeout_seconds)

    try:
        if not mirror.enabled:
            log.info("mirror task: MIRROR_BASE_URL not set, dropping event=%s", ev.value)
            return False
        await mirror.deliver(ev, payload)
        return True
    except MirrorError as e:
        log.warning("mirror task failed event=%s: %s", ev.value, e.message)
        record_dead_letter(ev, payload, e.message)
        return False
    except Exception as e:
        log.exception("mirror task crashed event=%s", ev.value)
        record_dead_letter(ev, payload, f"{type(e).__name__}: {e}")
        return False
    finally:
        if owned:
            await mirror.aclose()


# No retries: a failed delivery goes to the dead-letter log and is dropped.
@celery.task(name=MIRROR_TASK_NAME, bind=True, max_retries=0)
def mirror_listing_event(self, event: str, payload: dict[str, Any]) -> bool:
    return asyncio.run(_deliver_mirror_event(event, payload))

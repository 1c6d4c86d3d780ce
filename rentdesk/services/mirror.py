"""
Best-effort replication of committed listing writes to the automation webhook.

The listing table is the only source of truth. The webhook side may drift
(duplicates, missed deletes) and nothing here tries to reconcile it: each
event is sent at most once, failures are logged to the dead-letter logger and
swallowed so the caller's committed write always reports success.
"""
from __future__ import annotations

import asyncio
import enum
import json
import logging
from typing import Any

from fastapi import Request

from rentdesk.core.errors import MirrorError
from rentdesk.schemas.listing import ListingOut
from rentdesk.services.http_client import HttpResult, WebhookHttpClient

log = logging.getLogger(__name__)
dead_letter_log = logging.getLogger("rentdesk.mirror.dead_letter")

MIRROR_TASK_NAME = "worker.tasks.mirror_listing_event"
MIRROR_QUEUE = "mirror"


class MirrorEvent(str, enum.Enum):
    CREATED = "listing.created"
    UPDATED = "listing.updated"
    STATUS_CHANGED = "listing.status_changed"
    DELETED = "listing.deleted"


# Webhook paths exposed by the automation workflow
EVENT_PATHS: dict[MirrorEvent, str] = {
    MirrorEvent.CREATED: "/add-apartment",
    MirrorEvent.UPDATED: "/update-apartments",
    MirrorEvent.STATUS_CHANGED: "/update-status",
    MirrorEvent.DELETED: "/delete-apartments",
}


def mirror_url(base_url: str, event: MirrorEvent) -> str:
    return base_url.rstrip("/") + EVENT_PATHS[event]


def build_mirror_payload(event: MirrorEvent, listing: ListingOut) -> dict[str, Any]:
    if event is MirrorEvent.DELETED:
        return {"event": event.value, "id": listing.id, "name": listing.name}
    body = listing.model_dump(mode="json", by_alias=True)
    body["event"] = event.value
    return body


def record_dead_letter(event: MirrorEvent, payload: dict[str, Any], reason: str) -> None:
    dead_letter_log.error(
        "mirror dead-letter: %s",
        json.dumps({"event": event.value, "reason": reason, "payload": payload}, default=str),
    )


class WebhookMirror:
    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float = 5.0,
        dispatch: str = "inline",
        http: WebhookHttpClient | None = None,
    ):
        self.base_url = base_url.strip()
        self.timeout_seconds = timeout_seconds
        self.dispatch = dispatch
        self._http = http
        self._owns_http = False

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    def _client(self) -> WebhookHttpClient:
        if self._http is None:
            self._http = WebhookHttpClient(timeout_seconds=self.timeout_seconds)
            self._owns_http = True
        return self._http

    async def aclose(self) -> None:
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None

    async def deliver(self, event: MirrorEvent, payload: dict[str, Any]) -> HttpResult:
        """Send one event. Raises MirrorError on any failure, including the outer timeout."""
        url = mirror_url(self.base_url, event)
        try:
            result = await asyncio.wait_for(
                self._client().post_json(url=url, json_body=payload),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            raise MirrorError(f"timed out after {self.timeout_seconds}s posting to {url}")

        if not result.ok:
            raise MirrorError(f"{result.error_code}: {result.error_message}")

        log.info("mirror delivered event=%s status=%s elapsed_ms=%s", event.value, result.status_code, result.elapsed_ms)
        return result

    def _enqueue(self, event: MirrorEvent, payload: dict[str, Any]) -> None:
        from worker.celery_app import celery

        celery.send_task(MIRROR_TASK_NAME, args=[event.value, payload], queue=MIRROR_QUEUE)

    async def mirror(self, event: MirrorEvent, listing: ListingOut) -> None:
        """Replicate a committed write. Never raises."""
        if not self.enabled:
            log.debug("mirror disabled, skipping event=%s listing=%s", event.value, listing.id)
            return

        payload = build_mirror_payload(event, listing)

        if self.dispatch == "worker":
            try:
                self._enqueue(event, payload)
            except Exception as e:
                log.warning("mirror enqueue failed event=%s listing=%s: %s", event.value, listing.id, e)
                record_dead_letter(event, payload, f"enqueue failed: {type(e).__name__}: {e}")
            return

        try:
            await self.deliver(event, payload)
        except MirrorError as e:
            log.warning("mirror failed event=%s listing=%s: %s", event.value, listing.id, e.message)
            record_dead_letter(event, payload, e.message)
        except Exception as e:
            log.exception("mirror crashed event=%s listing=%s", event.value, listing.id)
            record_dead_letter(event, payload, f"{type(e).__name__}: {e}")


def get_mirror(request: Request) -> WebhookMirror:
    return request.app.state.mirror

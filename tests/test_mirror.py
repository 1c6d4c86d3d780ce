import asyncio
import json
import logging

import httpx
import pytest

from rentdesk.models.base import utcnow
from rentdesk.schemas.listing import ListingOut
from rentdesk.services.http_client import WebhookHttpClient
from rentdesk.services.mirror import MIRROR_TASK_NAME, MirrorEvent, WebhookMirror, mirror_url

from fixtures_seed import MAPLE_FLAT

HOOK_BASE = "https://hooks.example.test/webhook/"


class Recorder:
    def __init__(self, respond=None):
        self.requests: list[httpx.Request] = []
        self._respond = respond or (lambda request: httpx.Response(200, json={"ok": True}))

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        return self._respond(request)

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def mirror(recorder):
    http = WebhookHttpClient(transport=httpx.MockTransport(recorder))
    return WebhookMirror(base_url=HOOK_BASE, timeout_seconds=2.0, http=http)


def test_mirror_url_joins_base_and_event_path():
    assert mirror_url(HOOK_BASE, MirrorEvent.CREATED) == "https://hooks.example.test/webhook/add-apartment"
    assert mirror_url("https://h.test", MirrorEvent.DELETED) == "https://h.test/delete-apartments"


@pytest.mark.asyncio
async def test_every_write_is_mirrored_once(client, owner_headers, recorder):
    created = (await client.post("/v1/apartments/create", json=MAPLE_FLAT, headers=owner_headers)).json()
    listing_id = created["id"]
    await client.post("/v1/apartments/update", json={**MAPLE_FLAT, "id": listing_id, "note": "x"}, headers=owner_headers)
    await client.post(
        "/v1/apartments/update-status", json={"id": listing_id, "status": "Rented"}, headers=owner_headers
    )
    await client.post("/v1/apartments/delete", json={"id": listing_id}, headers=owner_headers)
    await client.get("/v1/apartments", headers=owner_headers)

    assert recorder.paths == [
        "/webhook/add-apartment",
        "/webhook/update-apartments",
        "/webhook/update-status",
        "/webhook/delete-apartments",
    ]
    created_body, updated_body, status_body, deleted_body = recorder.bodies()
    assert created_body["event"] == "listing.created"
    assert created_body["id"] == listing_id
    assert created_body["petPolicy"] == "Cats OK"
    assert updated_body["note"] == "x"
    assert status_body["status"] == "Rented"
    assert deleted_body == {"event": "listing.deleted", "id": listing_id, "name": "Maple Flat"}


@pytest.mark.asyncio
async def test_rejected_writes_are_not_mirrored(client, owner_headers, recorder):
    await client.post("/v1/apartments/create", json={"name": "only a name"}, headers=owner_headers)
    await client.post("/v1/apartments/delete", json={"id": "apt_unknown"}, headers=owner_headers)
    assert recorder.requests == []


def _refuse(request):
    raise httpx.ConnectError("connection refused", request=request)


def _server_error(request):
    return httpx.Response(500, json={"message": "Workflow could not be started", "hint": "activate it"})


def _not_json(request):
    return httpx.Response(200, content=b"{oops", headers={"content-type": "application/json"})


@pytest.mark.asyncio
@pytest.mark.parametrize("respond", [_refuse, _server_error, _not_json])
async def test_mirror_failure_never_fails_the_write(client, owner_headers, recorder, respond, caplog):
    recorder._respond = respond
    caplog.set_level(logging.ERROR, logger="rentdesk.mirror.dead_letter")

    r = await client.post("/v1/apartments/create", json=MAPLE_FLAT, headers=owner_headers)
    assert r.status_code == 201, r.text
    listing_id = r.json()["id"]

    r = await client.get("/v1/apartments", headers=owner_headers)
    assert [a["id"] for a in r.json()] == [listing_id]

    dead = [rec for rec in caplog.records if rec.name == "rentdesk.mirror.dead_letter"]
    assert len(dead) == 1
    assert listing_id in dead[0].getMessage()
    assert "listing.created" in dead[0].getMessage()


@pytest.mark.asyncio
async def test_slow_webhook_is_cut_off(caplog):
    async def _slow(request):
        await asyncio.sleep(1.0)
        return httpx.Response(200, json={})

    slow = WebhookMirror(
        base_url=HOOK_BASE,
        timeout_seconds=0.05,
        http=WebhookHttpClient(transport=httpx.MockTransport(_slow)),
    )
    caplog.set_level(logging.ERROR, logger="rentdesk.mirror.dead_letter")

    now = utcnow()
    listing = ListingOut(
        id="apt_slow", userId="Moudh", status="Available", note="", createdAt=now, updatedAt=now, **MAPLE_FLAT
    )
    await slow.mirror(MirrorEvent.STATUS_CHANGED, listing)

    dead = [rec for rec in caplog.records if rec.name == "rentdesk.mirror.dead_letter"]
    assert len(dead) == 1
    assert "timed out" in dead[0].getMessage()


@pytest.mark.asyncio
async def test_disabled_mirror_sends_nothing(client, owner_headers, mirror, recorder):
    mirror.base_url = ""
    assert mirror.enabled is False

    r = await client.post("/v1/apartments/create", json=MAPLE_FLAT, headers=owner_headers)
    assert r.status_code == 201
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_worker_dispatch_enqueues_instead_of_posting(client, owner_headers, mirror, recorder, monkeypatch):
    from worker.celery_app import celery

    sent = []
    monkeypatch.setattr(celery, "send_task", lambda name, args, queue: sent.append((name, args, queue)))
    mirror.dispatch = "worker"

    r = await client.post("/v1/apartments/create", json=MAPLE_FLAT, headers=owner_headers)
    assert r.status_code == 201

    assert recorder.requests == []
    assert len(sent) == 1
    name, (event, payload), queue = sent[0]
    assert name == MIRROR_TASK_NAME
    assert queue == "mirror"
    assert event == "listing.created"
    assert payload["id"] == r.json()["id"]


@pytest.mark.asyncio
async def test_broker_outage_is_swallowed(client, owner_headers, mirror, monkeypatch, caplog):
    from worker.celery_app import celery

    def _down(*args, **kwargs):
        raise ConnectionError("broker unreachable")

    monkeypatch.setattr(celery, "send_task", _down)
    mirror.dispatch = "worker"
    caplog.set_level(logging.ERROR, logger="rentdesk.mirror.dead_letter")

    r = await client.post("/v1/apartments/create", json=MAPLE_FLAT, headers=owner_headers)
    assert r.status_code == 201
    assert any("enqueue failed" in rec.getMessage() for rec in caplog.records)


@pytest.mark.asyncio
async def test_worker_task_delivers_and_dead_letters(recorder, mirror, caplog):
    from worker.tasks import _deliver_mirror_event

    payload = {"event": "listing.deleted", "id": "apt_1", "name": "Maple Flat"}
    assert await _deliver_mirror_event("listing.deleted", payload, mirror=mirror) is True
    assert recorder.paths == ["/webhook/delete-apartments"]

    recorder._respond = _server_error
    caplog.set_level(logging.ERROR, logger="rentdesk.mirror.dead_letter")
    assert await _deliver_mirror_event("listing.deleted", payload, mirror=mirror) is False
    assert any("HTTP_500" in rec.getMessage() for rec in caplog.records)

    assert await _deliver_mirror_event("listing.exploded", payload, mirror=mirror) is False
    assert len(recorder.requests) == 2


@pytest.mark.asyncio
async def test_http_result_classification():
    def respond(request):
        if request.url.path == "/ok":
            return httpx.Response(200, json=[1, 2])
        if request.url.path == "/text":
            return httpx.Response(503, text="upstream down")
        if request.url.path == "/hint":
            return httpx.Response(404, json={"message": "Webhook not registered", "hint": "Open the workflow"})
        raise httpx.ReadTimeout("slow", request=request)

    http = WebhookHttpClient(transport=httpx.MockTransport(respond))
    try:
        ok = await http.post_json(url="https://h.test/ok", json_body={})
        assert ok.ok and ok.detail == {"data": [1, 2]}

        down = await http.post_json(url="https://h.test/text", json_body={})
        assert not down.ok
        assert down.error_code == "HTTP_503"
        assert down.retryable is True
        assert down.detail["raw"] == "upstream down"

        hint = await http.post_json(url="https://h.test/hint", json_body={})
        assert hint.error_code == "HTTP_404"
        assert hint.error_message == "Webhook not registered. Open the workflow"
        assert hint.retryable is False

        timeout = await http.post_json(url="https://h.test/slow", json_body={})
        assert timeout.error_code == "TIMEOUT"
        assert timeout.status_code is None
    finally:
        await http.aclose()


@pytest.mark.asyncio
async def test_webhook_request_is_plain_json(client, owner_headers, recorder):
    await client.post("/v1/apartments/create", json=MAPLE_FLAT, headers=owner_headers)

    (request,) = recorder.requests
    assert request.method == "POST"
    assert request.headers["content-type"] == "application/json"
    assert "x-request-id" not in request.headers


@pytest.mark.asyncio
async def test_worker_task_dead_letters_unexpected_errors(recorder, mirror, caplog):
    from worker.tasks import _deliver_mirror_event

    def _explode(request):
        raise RuntimeError("webhook url could not be used")

    recorder._respond = _explode
    caplog.set_level(logging.ERROR, logger="rentdesk.mirror.dead_letter")

    payload = {"event": "listing.deleted", "id": "apt_9", "name": "Maple Flat"}
    assert await _deliver_mirror_event("listing.deleted", payload, mirror=mirror) is False

    dead = [rec for rec in caplog.records if rec.name == "rentdesk.mirror.dead_letter"]
    assert len(dead) == 1
    assert "RuntimeError" in dead[0].getMessage()
    assert "apt_9" in dead[0].getMessage()

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx


@dataclass(frozen=True)
class HttpResult:
    ok: bool
    status_code: int | None
    detail: dict[str, Any]

    error_code: str | None = None
    error_message: str | None = None
    retryable: bool = False

    elapsed_ms: int | None = None


def _is_json_response(resp: httpx.Response) -> bool:
    ct = (resp.headers.get("content-type") or "").lower()
    return "application/json" in ct or ct.endswith("+json")


def _cap_text(s: str, *, max_chars: int) -> str:
    if len(s) <= max_chars:
        return s
    return s[:max_chars] + f"...(truncated, {len(s)} chars)"


def _error_message(detail: dict[str, Any], status_code: int) -> str:
    # Automation endpoints answer {"message": ..., "hint": ...} on failure
    message = detail.get("message")
    if isinstance(message, str) and message:
        hint = detail.get("hint")
        return f"{message}. {hint}" if isinstance(hint, str) and hint else message
    return f"HTTP {status_code}"


class WebhookHttpClient:
    """
    Shared HTTP client for the automation webhook.

    - One AsyncClient instance (connection pooling), owned by the app lifespan or a worker task.
    - No retries: the mirror is at-most-once.
    - Never raises for transport or HTTP errors; returns a classified HttpResult.
    """

    def __init__(
        self,
        *,
        timeout_seconds: float = 5.0,
        max_response_body_chars: int = 2_000,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._timeout = httpx.Timeout(timeout_seconds)
        self._max_body = max_response_body_chars
        self._client = httpx.AsyncClient(timeout=self._timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def post_json(
        self,
        *,
        url: str,
        json_body: dict[str, Any],
    ) -> HttpResult:
        try:
            resp = await self._client.post(url, json=json_body)
        except httpx.TimeoutException as e:
            return HttpResult(
                ok=False,
                status_code=None,
                detail={"error": "timeout"},
                error_code="TIMEOUT",
                error_message=str(e) or "timeout",
                retryable=True,
            )
        except httpx.RequestError as e:
            # DNS errors, connection refused, TLS, etc.
            return HttpResult(
                ok=False,
                status_code=None,
                detail={"error": "request_error"},
                error_code="REQUEST_ERROR",
                error_message=str(e) or type(e).__name__,
                retryable=True,
            )

        malformed = False
        detail: dict[str, Any]
        if _is_json_response(resp):
            try:
                parsed = resp.json()
                detail = parsed if isinstance(parsed, dict) else {"data": parsed}
            except ValueError:
                malformed = True
                detail = {"raw": _cap_text(resp.text, max_chars=self._max_body)}
        else:
            detail = {
                "raw": _cap_text(resp.text, max_chars=self._max_body),
                "content_type": resp.headers.get("content-type"),
            }

        try:
            elapsed_ms = int(resp.elapsed.total_seconds() * 1000)
        except RuntimeError:
            # elapsed is only set once the response is closed by a real transport
            elapsed_ms = None

        if 200 <= resp.status_code < 300 and not malformed:
            return HttpResult(ok=True, status_code=resp.status_code, detail=detail, elapsed_ms=elapsed_ms)

        if malformed:
            return HttpResult(
                ok=False,
                status_code=resp.status_code,
                detail=detail,
                error_code="MALFORMED_RESPONSE",
                error_message="response declared JSON but could not be parsed",
                elapsed_ms=elapsed_ms,
            )

        retryable = resp.status_code in (408, 429, 500, 502, 503, 504)
        return HttpResult(
            ok=False,
            status_code=resp.status_code,
            detail=detail,
            error_code=f"HTTP_{resp.status_code}",
            error_message=_error_message(detail, resp.status_code),
            retryable=retryable,
            elapsed_ms=elapsed_ms,
        )

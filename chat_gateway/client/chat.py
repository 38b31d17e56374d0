"""Async client for the chat gateway with timeout, cancellation and retry."""
from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Union

import httpx
from pydantic import BaseModel

from chat_gateway.schemas.chat import (
    ChatPayload,
    ChatResponse,
    FailureResponse,
    HealthResponse,
    Usage,
    chat_response_adapter,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 25_000
DEFAULT_RETRIES = 1

CANCELLED_MESSAGES = {
    "cancelled": "Request was cancelled.",
    "timeout": "Request timed out.",
}
NETWORK_ERROR_MESSAGE = "Network error."


class RequestCancelled(Exception):
    """An attempt was stopped by the caller's event or by the timer."""

    def __init__(self, source: str):
        super().__init__(source)
        self.source = source


def _error_envelope(content: str) -> FailureResponse:
    # Usage is unknown without a successful round trip
    return FailureResponse(status="error", reason="internal_error", usage=Usage.zero(), content=content)


def should_retry(status_code: int, data: Optional[ChatResponse]) -> bool:
    if 500 <= status_code < 600:
        return True
    return bool(
        data is not None
        and data.status == "error"
        and getattr(data, "reason", None) == "internal_error"
    )


class ChatClient:
    """Calls ``POST /api/chat`` and always resolves to an envelope."""

    def __init__(
        self,
        base_url: str,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if not base_url:
            raise ValueError("Chat gateway base URL is not set")
        self.base_url = base_url.rstrip("/")
        self._client = http_client
        self._owns_client = http_client is None
        self._sleep = sleep

    async def __aenter__(self) -> "ChatClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def send(
        self,
        payload: Union[ChatPayload, Dict[str, Any]],
        cancel: Optional[asyncio.Event] = None,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        retries: int = DEFAULT_RETRIES,
    ) -> ChatResponse:
        """Send a conversation, retrying transient failures.

        ``cancel`` and the ``timeout_ms`` timer race the request; whichever
        fires first ends the call with an ``error`` envelope and no retry.
        Transport faults and 5xx / ``internal_error`` replies are retried up
        to ``retries`` extra times with linear backoff plus jitter.
        """
        body = payload.model_dump(mode="json") if isinstance(payload, BaseModel) else payload
        attempt = 0
        while True:
            attempt += 1
            try:
                status_code, data = await self._attempt(body, cancel, timeout_ms)
            except RequestCancelled as exc:
                return _error_envelope(CANCELLED_MESSAGES[exc.source])
            except Exception as e:
                if attempt <= retries:
                    backoff = 600 * attempt + random.randint(0, 249)
                    logger.warning(f"Chat request failed ({e!r}), retrying in {backoff}ms")
                    await self._sleep(backoff / 1000)
                    continue
                logger.error(f"Chat request failed after {attempt} attempts: {e!r}")
                return _error_envelope(NETWORK_ERROR_MESSAGE)

            if status_code >= 400 and attempt <= retries and should_retry(status_code, data):
                backoff = 500 * attempt + random.randint(0, 199)
                logger.warning(f"Chat gateway answered {status_code}, retrying in {backoff}ms")
                await self._sleep(backoff / 1000)
                continue

            return data

    async def health(self, *, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> Optional[HealthResponse]:
        """Fetch ``/api/health``; ``None`` when it cannot be read."""
        try:
            resp = await asyncio.wait_for(
                self._get_client().get(f"{self.base_url}/api/health"),
                timeout=timeout_ms / 1000,
            )
            return HealthResponse.model_validate(resp.json())
        except Exception as e:
            logger.debug(f"Health check failed: {e!r}")
            return None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            # Deadlines are enforced per attempt by _attempt
            self._client = httpx.AsyncClient(timeout=None)
        return self._client

    async def _post(self, body: Dict[str, Any]) -> Tuple[int, ChatResponse]:
        resp = await self._get_client().post(
            f"{self.base_url}/api/chat",
            json=body,
            headers={"Cache-Control": "no-store"},
        )
        # The gateway answers JSON on error paths too
        data = chat_response_adapter.validate_python(resp.json())
        return resp.status_code, data

    async def _attempt(
        self,
        body: Dict[str, Any],
        cancel: Optional[asyncio.Event],
        timeout_ms: int,
    ) -> Tuple[int, ChatResponse]:
        if cancel is not None and cancel.is_set():
            raise RequestCancelled("cancelled")

        request = asyncio.ensure_future(self._post(body))
        waiters = {request}
        cancel_waiter = None
        if cancel is not None:
            cancel_waiter = asyncio.ensure_future(cancel.wait())
            waiters.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(
                waiters,
                timeout=timeout_ms / 1000,
                return_when=asyncio.FIRST_COMPLETED,
            )
            if request in done:
                return request.result()
            raise RequestCancelled("cancelled" if cancel_waiter in done else "timeout")
        finally:
            for waiter in waiters:
                if not waiter.done():
                    waiter.cancel()
            await asyncio.gather(*waiters, return_exceptions=True)

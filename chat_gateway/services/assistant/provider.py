"""Providers that forward the composed conversation to a model backend."""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Literal, Optional

import httpx
from openai import APIStatusError, AsyncOpenAI

from chat_gateway.schemas.chat import ChatMessage

logger = logging.getLogger(__name__)

TEMPERATURE = 0.2

DispatchFailure = Literal["provider_quota", "internal_error"]

_QUOTA_LIKE = re.compile(r"quota|limit|exhaust|rate.?limit|insufficient|credits", re.IGNORECASE)


class ProviderError(Exception):
    """Raised when the upstream model call does not yield usable content."""


class ProviderQuotaError(ProviderError):
    """Upstream refused the call for capacity reasons (HTTP 429/403)."""


class ProviderConfigurationError(ProviderError):
    """Required upstream settings are missing."""


class InferenceBindingError(ProviderError):
    """The direct inference binding reported a failure."""


def classify_failure(exc: BaseException) -> DispatchFailure:
    """Map a dispatch failure onto a reason code.

    Structured quota errors win outright. Everything else is judged by its
    message text, since the direct binding has no other error channel.
    """
    if isinstance(exc, ProviderQuotaError):
        return "provider_quota"
    if _QUOTA_LIKE.search(str(exc)):
        return "provider_quota"
    return "internal_error"


class AssistantProvider:
    """Base provider interface."""

    async def complete(self, messages: Iterable[ChatMessage], *, max_tokens: int) -> str:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


# ---------------------------------------------------------------------------
# Direct binding
# ---------------------------------------------------------------------------
class InferenceBinding:
    """Something that can run a model given an inputs mapping."""

    async def run(self, model: str, inputs: Dict[str, Any]) -> Any:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class WorkersAIBinding(InferenceBinding):
    """Workers AI reached over its REST API."""

    def __init__(
        self,
        *,
        account_id: Optional[str],
        api_token: Optional[str],
        api_base: str = "https://api.cloudflare.com/client/v4",
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.account_id = account_id
        self.api_token = api_token
        self.api_base = api_base.rstrip("/")
        self._client = http_client
        self._owns_client = http_client is None

    async def run(self, model: str, inputs: Dict[str, Any]) -> Any:
        if not self.account_id or not self.api_token:
            raise ProviderConfigurationError("Workers AI binding not configured")

        if self._client is None:
            self._client = httpx.AsyncClient(timeout=None)
        url = f"{self.api_base}/accounts/{self.account_id}/ai/run/{model}"
        resp = await self._client.post(
            url,
            json=inputs,
            headers={"Authorization": f"Bearer {self.api_token}"},
        )

        try:
            payload = resp.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if resp.is_error or payload.get("success") is False:
            errors = payload.get("errors") or []
            messages = [str(err.get("message")) for err in errors if isinstance(err, dict) and err.get("message")]
            logger.warning(f"Workers AI call for {model} failed with status {resp.status_code}")
            raise InferenceBindingError("; ".join(messages) or f"workers_ai_{resp.status_code}")

        return payload.get("result", payload)

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


def extract_binding_text(result: Any) -> str:
    """Pull text out of the shapes a binding may return.

    ``response`` (when a string) wins, then ``result``, then ``text``.
    """
    if not isinstance(result, dict):
        return ""
    response = result.get("response")
    if isinstance(response, str):
        return response
    for key in ("result", "text"):
        value = result.get(key)
        if value is not None:
            return value if isinstance(value, str) else ""
    return ""


class DirectBindingProvider(AssistantProvider):
    """Calls a local inference binding with the composed messages."""

    def __init__(self, binding: InferenceBinding, model: str) -> None:
        self.binding = binding
        self.model = model

    async def complete(self, messages: Iterable[ChatMessage], *, max_tokens: int) -> str:
        result = await self.binding.run(
            self.model,
            {
                "messages": [msg.as_payload() for msg in messages],
                "max_tokens": max_tokens,
                "temperature": TEMPERATURE,
                "stream": False,
            },
        )
        content = extract_binding_text(result)
        if not content:
            raise ProviderError("empty_response")
        return content

    async def aclose(self) -> None:
        await self.binding.aclose()


# ---------------------------------------------------------------------------
# OpenAI-compatible gateway
# ---------------------------------------------------------------------------
class OpenAICompatGatewayProvider(AssistantProvider):
    """OpenAI-style chat completions through an AI Gateway."""

    def __init__(
        self,
        *,
        gateway_url: Optional[str],
        api_key: Optional[str],
        model: str,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.gateway_url = (gateway_url or "").rstrip("/")
        self.api_key = api_key or ""
        self.model = model
        self._http_client = http_client
        self._client: Optional[AsyncOpenAI] = None

    def _get_client(self) -> AsyncOpenAI:
        if not self.gateway_url or not self.api_key:
            raise ProviderConfigurationError("AI Gateway not configured")
        if self._client is None:
            client_kwargs: Dict[str, Any] = {
                "api_key": self.api_key,
                "base_url": f"{self.gateway_url}/v1",
                "max_retries": 0,
            }
            if self._http_client is not None:
                client_kwargs["http_client"] = self._http_client
            self._client = AsyncOpenAI(**client_kwargs)
        return self._client

    async def complete(self, messages: Iterable[ChatMessage], *, max_tokens: int) -> str:
        client = self._get_client()
        payload: List[Dict[str, str]] = [msg.as_payload() for msg in messages]
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=payload,
                temperature=TEMPERATURE,
                max_tokens=max_tokens,
                stream=False,
            )
        except APIStatusError as exc:
            if exc.status_code in (429, 403):
                raise ProviderQuotaError(f"gateway_{exc.status_code}") from exc
            raise ProviderError(f"gateway_{exc.status_code}") from exc

        choices = response.choices or []
        content = (choices[0].message.content if choices and choices[0].message else None) or ""
        if not content:
            raise ProviderError("empty_response")
        return content

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

"""Assistant service running admission control and provider dispatch."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Tuple, Union

from chat_gateway.core.config import settings
from chat_gateway.schemas.chat import FailureResponse, OkResponse, Usage
from chat_gateway.services.usage import FileUsageStore, InMemoryUsageStore, QuotaLedger, UsageStore

from .context import compose_conversation, latest_user_message, normalize_messages
from .envelope import failure_response, ok_response
from .provider import (
    AssistantProvider,
    DirectBindingProvider,
    OpenAICompatGatewayProvider,
    WorkersAIBinding,
    classify_failure,
)
from .topic_gate import classify

logger = logging.getLogger(__name__)

Envelope = Union[OkResponse, FailureResponse]


class AssistantService:
    """High level facade for one chat request: gate, count, dispatch, normalize."""

    def __init__(
        self,
        ledger: QuotaLedger,
        provider: AssistantProvider,
        *,
        system_prompt: str,
        max_tokens: int = 300,
        offtopic_gate: bool = True,
    ) -> None:
        self.ledger = ledger
        self.provider = provider
        self.system_prompt = system_prompt
        self.max_tokens = max_tokens
        self.offtopic_gate = offtopic_gate

    def usage(self) -> Usage:
        return self.ledger.usage()

    async def handle_chat(self, body: Any) -> Tuple[Envelope, int]:
        messages = normalize_messages(body)

        if self.offtopic_gate:
            verdict = classify(latest_user_message(messages))
            if verdict != "allow":
                logger.info(f"Rejected off-topic message (verdict={verdict})")
                return failure_response("off_topic", self.ledger.usage())

        # Counted before the model call, so a cancelled request still uses quota
        over_cap, count = self.ledger.increment_and_check()
        if over_cap:
            return failure_response("daily_cap", Usage(count=count, cap=self.ledger.cap))

        composed = compose_conversation(messages, self.system_prompt)
        try:
            content = await self.provider.complete(composed, max_tokens=self.max_tokens)
        except Exception as e:
            reason = classify_failure(e)
            if reason == "provider_quota":
                logger.warning(f"Provider quota failure: {e}")
            else:
                logger.error(f"Provider dispatch failed: {e}")
            return failure_response(reason, self.ledger.usage())

        return ok_response(content, self.ledger.usage())

    async def aclose(self) -> None:
        await self.provider.aclose()


def _build_store() -> UsageStore:
    if settings.USAGE_STORE_DIR:
        return FileUsageStore(settings.USAGE_STORE_DIR)
    return InMemoryUsageStore()


def _build_provider() -> AssistantProvider:
    if settings.USE_OPENAI_COMPAT:
        return OpenAICompatGatewayProvider(
            gateway_url=settings.GATEWAY_URL,
            api_key=settings.CF_API_TOKEN,
            model=settings.MODEL,
        )

    binding = WorkersAIBinding(
        account_id=settings.ACCOUNT_ID,
        api_token=settings.CF_API_TOKEN,
        api_base=settings.WORKERS_AI_API_BASE,
    )
    return DirectBindingProvider(binding, settings.MODEL)


@lru_cache(maxsize=1)
def get_assistant_service() -> AssistantService:
    ledger = QuotaLedger(
        _build_store(),
        cap=settings.DAILY_CAP,
        timezone_name=settings.TIMEZONE,
    )
    return AssistantService(
        ledger,
        _build_provider(),
        system_prompt=settings.ASSISTANT_SYSTEM_PROMPT,
        max_tokens=settings.MAX_TOKENS,
        offtopic_gate=not settings.ALLOW_OFFTOPIC,
    )

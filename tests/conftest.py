from datetime import datetime, timezone
from typing import List, Optional

import pytest

from chat_gateway.schemas.chat import ChatMessage
from chat_gateway.services.assistant import AssistantService
from chat_gateway.services.assistant.provider import AssistantProvider
from chat_gateway.services.usage import InMemoryUsageStore, QuotaLedger

ALLOWED_ORIGIN = "https://docs.example.com"
SYSTEM_PROMPT = "You are the test assistant."

FIXED_NOW = datetime(2025, 3, 14, 12, 0, tzinfo=timezone.utc)


class FakeProvider(AssistantProvider):
    """Records calls and returns a canned reply or raises a canned error."""

    def __init__(self, reply: str = "Use GET /v1/hlr/{msisdn}.", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[List[ChatMessage]] = []
        self.max_tokens: List[int] = []
        self.closed = False

    async def complete(self, messages, *, max_tokens: int) -> str:
        self.calls.append(list(messages))
        self.max_tokens.append(max_tokens)
        if self.error is not None:
            raise self.error
        return self.reply

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def store():
    return InMemoryUsageStore()


@pytest.fixture
def ledger(store):
    return QuotaLedger(store, cap=3, timezone_name="UTC", clock=lambda: FIXED_NOW)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def service(ledger, provider):
    return AssistantService(ledger, provider, system_prompt=SYSTEM_PROMPT, max_tokens=300)


def user_body(text: str) -> dict:
    return {"messages": [{"role": "user", "content": text}]}

"""Chat history kept by the calling application."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel

from chat_gateway.schemas.chat import ChatMessage, ChatResponse

MAX_HISTORY = 40

REASON_MESSAGES = {
    "off_topic": "I only answer HLR Lookup docs/API questions.",
    "provider_quota": "Provider quota reached. Please try again later.",
}


class HistoryItem(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    latency_ms: Optional[float] = None


class ChatHistory:
    """Ordered transcript capped at ``MAX_HISTORY`` items, oldest dropped first."""

    def __init__(self, items: Optional[List[HistoryItem]] = None, *, limit: int = MAX_HISTORY):
        self.limit = limit
        self.items: List[HistoryItem] = list(items or [])[-limit:]

    def append(self, role: str, content: str, latency_ms: Optional[float] = None) -> HistoryItem:
        item = HistoryItem(role=role, content=content, latency_ms=latency_ms)
        self.items.append(item)
        if len(self.items) > self.limit:
            self.items = self.items[-self.limit:]
        return item

    def last_user_message(self) -> Optional[str]:
        for item in reversed(self.items):
            if item.role == "user":
                return item.content
        return None

    def to_messages(self) -> List[ChatMessage]:
        return [ChatMessage(role=item.role, content=item.content) for item in self.items]


def describe_response(response: ChatResponse) -> str:
    """Text to show the user for an envelope."""
    if response.status == "ok":
        return response.content
    if response.reason == "daily_cap":
        return f"We're closed (daily cap reached). Resets at {response.usage.resetAtUTC} UTC."
    if response.reason in REASON_MESSAGES:
        return REASON_MESSAGES[response.reason]
    return "Service is unavailable right now."

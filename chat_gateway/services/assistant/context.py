"""Utilities for shaping the conversation sent upstream."""
from __future__ import annotations

from typing import Any, List, Optional

from chat_gateway.schemas.chat import ROLES, ChatMessage

MAX_MESSAGES = 24
MAX_CHARS = 4000


def normalize_messages(body: Any) -> List[ChatMessage]:
    """Build the conversation from a request body.

    Accepts ``{"messages": [{role, content}, ...]}`` and the legacy
    ``{"text": "..."}`` shape. Entries with an unknown role or non-string
    content are dropped. Only the most recent ``MAX_MESSAGES`` are kept.
    """
    if not isinstance(body, dict):
        return []

    messages: List[ChatMessage] = []
    raw = body.get("messages")
    if isinstance(raw, list):
        for item in raw:
            if not isinstance(item, dict):
                continue
            role = item.get("role")
            content = item.get("content")
            if role in ROLES and isinstance(content, str):
                messages.append(ChatMessage(role=role, content=content))

    if not messages and isinstance(body.get("text"), str):
        messages.append(ChatMessage(role="user", content=body["text"]))

    return messages[-MAX_MESSAGES:]


def latest_user_message(messages: List[ChatMessage]) -> str:
    for message in reversed(messages):
        if message.role == "user":
            return message.content
    return ""


def truncate_for_budget(messages: List[ChatMessage], max_chars: int = MAX_CHARS) -> List[ChatMessage]:
    """Keep the newest messages that fit in ``max_chars``.

    Walks from the end; the message that straddles the budget keeps only its
    tail and everything older is dropped.
    """
    kept: List[ChatMessage] = []
    budget = max_chars
    for message in reversed(messages):
        text = message.content or ""
        if len(text) <= budget:
            kept.append(message)
            budget -= len(text)
        else:
            kept.append(ChatMessage(role=message.role, content=text[len(text) - budget:]))
            budget = 0
            break
        if budget <= 0:
            break
    kept.reverse()
    return kept


def compose_conversation(
    messages: List[ChatMessage],
    system_prompt: str,
    *,
    max_chars: Optional[int] = None,
) -> List[ChatMessage]:
    """Prepend the scope-describing system message to the trimmed history."""
    trimmed = truncate_for_budget(messages, max_chars if max_chars is not None else MAX_CHARS)
    return [ChatMessage(role="system", content=system_prompt), *trimmed]

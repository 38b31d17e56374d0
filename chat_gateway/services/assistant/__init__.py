"""Assistant service package exports."""

from chat_gateway.schemas.chat import ChatMessage

from .service import AssistantService, get_assistant_service

__all__ = [
    "AssistantService",
    "ChatMessage",
    "get_assistant_service",
]

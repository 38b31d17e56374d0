"""Client package exports."""

from .chat import ChatClient, should_retry
from .history import ChatHistory, HistoryItem, describe_response

__all__ = [
    "ChatClient",
    "ChatHistory",
    "HistoryItem",
    "describe_response",
    "should_retry",
]

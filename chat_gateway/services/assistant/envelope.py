"""Map pipeline outcomes onto the response envelope and its HTTP status."""
from __future__ import annotations

from typing import Dict, Optional, Tuple

from chat_gateway.schemas.chat import FailureReason, FailureResponse, FailureStatus, OkResponse, Usage

FAILURE_STATUS: Dict[str, Tuple[FailureStatus, int]] = {
    "off_topic": ("rejected", 200),
    "daily_cap": ("closed", 429),
    "provider_quota": ("closed", 429),
    "internal_error": ("error", 500),
}


def ok_response(content: str, usage: Usage) -> Tuple[OkResponse, int]:
    return OkResponse(content=content, usage=usage), 200


def failure_response(
    reason: FailureReason,
    usage: Usage,
    content: Optional[str] = None,
) -> Tuple[FailureResponse, int]:
    status, http_status = FAILURE_STATUS[reason]
    return FailureResponse(status=status, reason=reason, usage=usage, content=content), http_status

"""Response envelope and usage schemas shared by the gateway and its client."""
from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

RESET_AT_UTC = "00:00"

ChatRole = Literal["system", "user", "assistant"]

ROLES = ("system", "user", "assistant")

FailureStatus = Literal["closed", "rejected", "error"]
FailureReason = Literal["daily_cap", "provider_quota", "off_topic", "internal_error"]


class ChatMessage(BaseModel):
    """A single message of a conversation."""

    role: ChatRole
    content: str

    def as_payload(self) -> dict:
        return {"role": self.role, "content": self.content}


class ChatPayload(BaseModel):
    """Request body for `POST /api/chat`."""

    messages: List[ChatMessage]


class Usage(BaseModel):
    """Snapshot of the shared daily counter."""

    count: int
    cap: int
    resetAtUTC: Literal["00:00"] = RESET_AT_UTC

    @classmethod
    def zero(cls) -> "Usage":
        return cls(count=0, cap=0)


class OkResponse(BaseModel):
    status: Literal["ok"] = "ok"
    content: str
    usage: Usage


class FailureResponse(BaseModel):
    status: FailureStatus
    reason: FailureReason
    usage: Usage
    content: Optional[str] = None


ChatResponse = Annotated[Union[OkResponse, FailureResponse], Field(discriminator="status")]

chat_response_adapter: TypeAdapter = TypeAdapter(ChatResponse)


class HealthResponse(BaseModel):
    ok: bool
    usage: Usage
    model: str


def dump_envelope(response: Union[OkResponse, FailureResponse]) -> dict:
    """Serialize an envelope, leaving out ``content`` when it was never set."""
    return response.model_dump(mode="json", exclude_none=True)

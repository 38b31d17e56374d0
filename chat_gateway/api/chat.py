"""API routes for the chat endpoint."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from chat_gateway.core.origin import ALLOWED_METHODS, OriginGuard, get_origin_guard
from chat_gateway.schemas.chat import dump_envelope
from chat_gateway.services.assistant import AssistantService, get_assistant_service
from chat_gateway.services.assistant.envelope import failure_response

logger = logging.getLogger(__name__)

router = APIRouter()

NO_STORE = {"Cache-Control": "no-store"}


@router.options("/chat")
async def chat_preflight(
    request: Request,
    guard: OriginGuard = Depends(get_origin_guard),
):
    origin = request.headers.get("origin", "")
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=guard.preflight_headers(origin))


@router.post("/chat")
async def chat(
    request: Request,
    guard: OriginGuard = Depends(get_origin_guard),
    service: AssistantService = Depends(get_assistant_service),
):
    """Admit, dispatch and answer one conversation turn."""
    origin = request.headers.get("origin", "")
    if not guard.allows(origin):
        logger.info(f"Blocked chat request from origin {origin!r}")
        return Response("Forbidden", status_code=status.HTTP_403_FORBIDDEN)

    try:
        body = await request.json()
    except ValueError:
        body = {}

    envelope, status_code = await service.handle_chat(body)
    return JSONResponse(
        dump_envelope(envelope),
        status_code=status_code,
        headers=guard.cors_headers(origin, NO_STORE),
    )


@router.api_route("/chat", methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "TRACE", "CONNECT"])
async def chat_method_not_allowed(
    request: Request,
    guard: OriginGuard = Depends(get_origin_guard),
    service: AssistantService = Depends(get_assistant_service),
):
    envelope, _ = failure_response("internal_error", service.usage())
    return JSONResponse(
        dump_envelope(envelope),
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        headers=guard.cors_headers(request.headers.get("origin", ""), {"Allow": ALLOWED_METHODS, **NO_STORE}),
    )

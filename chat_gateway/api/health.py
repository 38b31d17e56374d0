from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from chat_gateway.core.config import settings
from chat_gateway.schemas.chat import HealthResponse
from chat_gateway.services.assistant import AssistantService, get_assistant_service

router = APIRouter()


@router.get("/health")
async def health_check(service: AssistantService = Depends(get_assistant_service)):
    """Liveness probe reporting today's usage and the configured model"""
    health = HealthResponse(ok=True, usage=service.usage(), model=settings.MODEL)
    return JSONResponse(health.model_dump(mode="json"), headers={"Cache-Control": "no-store"})

import uvicorn
from fastapi import FastAPI
from contextlib import asynccontextmanager
import argparse
import logging

from .core.config import settings
from .api.chat import router as chat_router
from .api.health import router as health_router
from .services.assistant import get_assistant_service

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    mode = "AI Gateway (OpenAI-compatible)" if settings.USE_OPENAI_COMPAT else "Workers AI binding"
    logger.info(f"Starting up {settings.APP_NAME} with model {settings.MODEL} via {mode}")
    logger.info(
        f"Daily cap {settings.DAILY_CAP}, off-topic gate "
        f"{'disabled' if settings.ALLOW_OFFTOPIC else 'enabled'}, timezone {settings.TIMEZONE}"
    )

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME}...")
    if get_assistant_service.cache_info().currsize:
        try:
            await get_assistant_service().aclose()
        except Exception as e:
            logger.error(f"Failed to close provider clients: {e}")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Chat gateway for the HLR Lookup documentation assistant",
    version=settings.APP_VERSION,
    lifespan=lifespan
)

# CORS is decided per request by the origin guard in the chat router
app.include_router(health_router, prefix="/api", tags=["Health"])
app.include_router(chat_router, prefix="/api", tags=["Chat"])


if __name__ == "__main__":
    # Parse command line arguments
    parser = argparse.ArgumentParser(description=settings.APP_NAME)
    parser.add_argument("--port", type=int, default=8000, help="Port to run the server on")
    parser.add_argument("--host", type=str, default="0.0.0.0", help="Host to run the server on")

    args = parser.parse_args()

    # Run the application
    logger.info(f"Starting {settings.APP_NAME} on {args.host}:{args.port}")
    uvicorn.run("chat_gateway.main:app", host=args.host, port=args.port, reload=settings.DEBUG)

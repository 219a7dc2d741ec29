import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

import httpx

from chatstream.config import settings
from chatstream.routes import chat, health, models
from chatstream.streaming.coordinator import StreamingCoordinator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle events"""
    # One shared client for all upstream streams
    client = httpx.AsyncClient(timeout=float(settings.provider_timeout))
    app.state.coordinator = StreamingCoordinator(client)
    logger.info("Streaming coordinator ready")

    yield

    # Shutdown: Cleanup resources
    await client.aclose()


app = FastAPI(
    title="chatstream API",
    description="Multi-provider streaming chat relay with SSE",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware (useful for a local frontend during development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(chat.router, prefix="/api", tags=["chat"])
app.include_router(models.router, prefix="/api", tags=["models"])

"""
Artifact Chat API - FastAPI application entry point
Real-time conversations with identified artifacts over WebSocket and HTTP
"""

import logging

# Configure logging to show INFO level
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s"
)

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from backend.config import settings
from backend.middleware.rate_limiter import setup_rate_limiting
from backend.services.chat_server import ChatServer
from backend.utils.error_handlers import setup_error_handlers
from backend.api import chat, artifacts, voice, realtime

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build (unless injected), start and finally shut down the chat server"""
    server = getattr(app.state, "chat_server", None)
    if server is None:
        server = ChatServer.from_settings()
        app.state.chat_server = server

    await server.start()
    logger.info(f"{settings.APP_NAME} v{settings.APP_VERSION} started")
    logger.info(f"Database: {settings.DATABASE_URL}")
    logger.info(f"API Docs: http://{settings.API_HOST}:{settings.API_PORT}/docs")

    yield

    await server.shutdown()


def create_app(chat_server: Optional[ChatServer] = None) -> FastAPI:
    """
    Create the FastAPI application

    Args:
        chat_server: Prebuilt ChatServer (tests); built from settings at startup otherwise
    """
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Talk to identified artifacts in character",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "artifacts", "description": "Identified artifacts and session bootstrap"},
            {"name": "chat", "description": "Chat sessions over HTTP"},
            {"name": "voice", "description": "Voice call records"},
            {"name": "realtime", "description": "WebSocket room protocol"}
        ]
    )

    if chat_server is not None:
        app.state.chat_server = chat_server

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Anonymous-Session"],
    )

    setup_rate_limiting(app)
    setup_error_handlers(app)

    @app.get("/")
    async def root():
        """Health check endpoint"""
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "healthy"
        }

    @app.get("/health")
    async def health_check():
        """Detailed health check"""
        server = getattr(app.state, "chat_server", None)
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "rooms": server.registry.room_count() if server else 0,
            "activeGenerations": len(server.jobs) if server else 0,
        }

    app.include_router(artifacts.router, prefix="/api/v1")
    app.include_router(chat.router, prefix="/api/v1")
    app.include_router(voice.router, prefix="/api/v1")
    app.include_router(realtime.router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "backend.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.API_RELOAD
    )

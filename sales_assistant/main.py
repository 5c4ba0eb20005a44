"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from sales_assistant.api.v1.chat_router import router as chat_router
from sales_assistant.api.v1.conversation_router import router as conversation_router
from sales_assistant.core.config import settings
from sales_assistant.core.exceptions import (
    AppException,
    app_exception_handler,
    validation_exception_handler,
)
from sales_assistant.core.middleware import SessionMiddleware
from sales_assistant.core.rate_limit import limiter, rate_limit_exceeded_handler
from sales_assistant.core.redis import close_redis
from sales_assistant.schemas.response_schema import ApiResponse, success_response

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log configuration on startup and release the Redis client on shutdown."""
    logger.info(
        "Starting application",
        app_name=settings.app.name,
        environment=settings.app.env,
        llm_provider=settings.llm.provider,
        redis_configured=settings.redis.is_configured,
        max_steps=settings.chat.max_steps,
    )
    yield
    await close_redis()
    logger.info("Shutting down application")


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.app.name,
        description="Sales assistant chat over Salesforce and Aircall data",
        version=settings.app.version,
        lifespan=lifespan,
        debug=settings.app.debug,
    )
    application.state.limiter = limiter

    application.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    application.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]
    application.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]

    # Last added runs first: CORS, then the session check, then rate limiting
    # (which keys on the session email).
    application.add_middleware(SlowAPIMiddleware)
    application.add_middleware(SessionMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.app.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @application.get("/health", response_model=ApiResponse[dict])
    async def health_check() -> dict:
        return success_response(
            {"status": "healthy", "redis_configured": settings.redis.is_configured}
        )

    @application.get("/", response_model=ApiResponse[dict])
    async def root() -> dict:
        return success_response(
            {
                "app": settings.app.name,
                "version": settings.app.version,
                "docs": "/docs",
            }
        )

    application.include_router(chat_router)
    application.include_router(conversation_router)
    return application


app = create_app()


def run() -> None:
    """Serve the application with uvicorn."""
    uvicorn.run(
        "sales_assistant.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.server.reload,
    )

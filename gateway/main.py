"""FastAPI application for the generative AI gateway.

This module provides the FastAPI application with the health endpoint, the
chat/speech/image routes, error envelopes and the static front end.

Run with:
    uvicorn gateway.main:app --reload

Examples:
    >>> # Health check
    >>> curl http://localhost:8080/health

    >>> # Chat
    >>> curl -X POST http://localhost:8080/chat -d '{"message": "Hello"}'

Tests:
    - tests/unit/test_main.py
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from gateway import __version__
from gateway.api import router as api_router
from gateway.config import ProviderType, Settings, get_settings
from gateway.core.base import GatewayError, RateLimited
from gateway.schemas import ErrorResponse, HealthResponse
from gateway.services import GatewayServices, build_services

logger = logging.getLogger(__name__)

CHAT_PATH = "/chat"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def error_response(
    error: str,
    message: str,
    status_code: int,
    request: Request,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build the error envelope.

    Chat failures also carry the message as `reply` so chat front ends can
    render it inline.
    """
    body = ErrorResponse(
        error=error,
        message=message,
        reply=message if request.url.path == CHAT_PATH else None,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
        headers=headers,
    )


def create_app(
    settings: Settings | None = None,
    services: GatewayServices | None = None,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Application settings (defaults to environment settings)
        services: Prebuilt service container (tests pass one with a fake transport)

    Returns:
        Configured FastAPI application.
    """
    settings = settings or get_settings()
    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager.

        Closes the shared upstream HTTP client on shutdown.
        """
        logger.info(f"Starting gateway v{__version__} ({settings.ENVIRONMENT.value})")
        yield
        logger.info("Shutting down gateway")
        await services.close()

    app = FastAPI(
        title="GenAI Gateway",
        description="Chat, speech and image generation behind one small API",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )
    app.state.settings = settings
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        """Map gateway failures onto the error envelope."""
        headers = None
        if isinstance(exc, RateLimited):
            if exc.retry_after is not None:
                headers = {"Retry-After": str(exc.retry_after)}
        else:
            logger.warning(f"{request.url.path} failed with {exc.kind}: {exc}")
        return error_response(exc.kind, exc.message, exc.http_status, request, headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Report malformed request bodies as invalid input."""
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        return error_response(
            "invalid_input", message, status.HTTP_400_BAD_REQUEST, request
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions with consistent response format."""
        return error_response("http_error", str(exc.detail), exc.status_code, request)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.exception(f"Unexpected error: {exc}")

        if settings.DEBUG:
            message = str(exc)
        else:
            message = "Internal server error"

        return error_response(
            "internal_error", message, status.HTTP_500_INTERNAL_SERVER_ERROR, request
        )

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        """Check application health.

        Reports which upstream providers have credentials configured.
        """
        providers = {
            provider.value: settings.has_provider(provider) for provider in ProviderType
        }
        return HealthResponse(
            status="healthy" if all(providers.values()) else "degraded",
            version=__version__,
            providers=providers,
        )

    # Static front end is mounted last so API routes take precedence
    static_dir = Path(settings.STATIC_DIR)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
        logger.info(f"Serving static files from {static_dir}")
    else:

        @app.get("/", tags=["Root"])
        async def root() -> dict[str, str]:
            """Root endpoint with basic info."""
            return {
                "name": "GenAI Gateway",
                "version": __version__,
                "health": "/health",
            }

    return app


configure_logging(get_settings().LOG_LEVEL)

app = create_app()


# Entry point for development
if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "gateway.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )

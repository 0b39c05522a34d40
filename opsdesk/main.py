from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from opsdesk.api.pages import router as pages_router
from opsdesk.api.router import api_router
from opsdesk.config import get_settings
from opsdesk.core.errors import (
    APIError,
    api_error_handler,
    http_exception_handler,
    request_validation_handler,
    unhandled_error_handler,
)
from opsdesk.core.logging import get_logger, setup_logging
from opsdesk.core.rate_limit import limiter, rate_limit_exceeded_handler

logger = get_logger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    setup_logging()

    missing = settings.missing_required()
    if missing:
        logger.bind(missing=",".join(missing)).error("missing_required_env")
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")

    if not settings.cron_sync_secret:
        logger.warning("cron_secret_not_set")
    if not settings.resend_api_key:
        logger.warning("resend_api_key_not_set")

    logger.bind(revision=settings.k_revision or None).info("app_started")
    yield
    logger.info("app_stopped")


app = FastAPI(
    title="Ops Desk",
    description="Publishing operations: work items, magazine, Texas Authors directory",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
)

app.state.limiter = limiter
app.add_exception_handler(APIError, api_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.auth_url] if settings.auth_url else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint for load balancers."""
    return {"status": "healthy"}


# Page catch-all goes last so it never shadows API routes
app.include_router(pages_router)

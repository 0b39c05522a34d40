"""Typed API errors and the JSON envelope they render to.

Every error response has the shape ``{"error": message}``; request
validation failures add ``errors`` keyed by dotted field path.
"""

from collections import defaultdict

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from opsdesk.core.logging import get_logger

logger = get_logger(__name__)


class APIError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def headers(self) -> dict[str, str]:
        return {}

    def to_body(self) -> dict:
        return {"error": self.message}


class Unauthorized(APIError):
    status_code = 401
    default_message = "Unauthorized"


class Forbidden(APIError):
    status_code = 403
    default_message = "Forbidden"


class NotFound(APIError):
    status_code = 404
    default_message = "Not found"


class ValidationFailed(APIError):
    """Input rejected by a business rule; errors maps field path to messages."""

    status_code = 400
    default_message = "Validation failed"

    def __init__(self, message: str | None = None, errors: dict[str, list[str]] | None = None):
        super().__init__(message)
        self.errors = errors or {}

    def to_body(self) -> dict:
        body = super().to_body()
        if self.errors:
            body["errors"] = self.errors
        return body


class RateLimited(APIError):
    status_code = 429

    def __init__(self, retry_after: int, message: str | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(message or f"Rate limited. Try again in {retry_after} seconds.")

    @property
    def headers(self) -> dict[str, str]:
        return {"Retry-After": str(self.retry_after)}

    def to_body(self) -> dict:
        return {"error": self.message, "retryAfter": self.retry_after}


class UpstreamError(APIError):
    """An external service (Sheets, email, webhook) failed."""

    status_code = 502
    default_message = "Upstream service error"


class InternalError(APIError):
    status_code = 500


def error_message(exc: BaseException) -> str:
    """Message recorded for a failed operation, with a fallback for blank errors."""
    return str(exc).strip() or "Unknown error"


def validation_error_map(exc: RequestValidationError) -> dict[str, list[str]]:
    """Group pydantic errors by dotted field path, dropping the body/query prefix."""
    grouped: dict[str, list[str]] = defaultdict(list)
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in ("body", "query", "path", "header", "cookie"):
            loc = loc[1:]
        grouped[".".join(loc) or "_root"].append(err.get("msg", "Invalid value"))
    return dict(grouped)


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.bind(path=request.url.path, error=exc.message).error("api_error")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body(), headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "errors": validation_error_map(exc)},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.bind(path=request.url.path, error=str(exc)).exception("unhandled_error")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework-raised HTTP errors (unknown route, wrong method) in the same envelope."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )

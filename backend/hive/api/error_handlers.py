"""Error Handlers: global exception handlers for the HIVE API.

Invariants:
    - HiveError -> structured JSON with error code, message, severity
    - Rate limit errors also carry Retry-After and X-RateLimit-* headers
    - RequestValidationError -> 400 with field-level details
    - Exception (catch-all) -> 500, never leaks internal details

Design Decisions:
    - Three-layer handler: domain (HiveError), validation (Pydantic), catch-all (Exception)
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from hive.core.errors import ErrorSeverity, HiveError, RateLimitExceededError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_hive_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _error_headers(exc: HiveError) -> dict[str, str]:
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimitExceededError):
        headers.update(exc.headers)
    retry_after = exc.context.retry_after_seconds
    if retry_after:
        headers.setdefault("Retry-After", str(retry_after))
    return headers


def _register_hive_error_handler(app: FastAPI) -> None:

    @app.exception_handler(HiveError)
    async def hive_error_handler(request: Request, exc: HiveError):
        """Handle all HIVE domain/infrastructure errors."""
        log = logger.error if exc.http_status >= 500 else logger.warning
        log(
            f"HiveError: {exc.message}",
            extra={
                "error_code": exc.code,
                "path": request.url.path,
                "request_id": getattr(request.state, "request_id", None),
            },
        )
        exc.context.request_id = getattr(request.state, "request_id", None)
        return JSONResponse(
            status_code=exc.http_status,
            content=exc.to_response(),
            headers=_error_headers(exc),
        )


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=_build_validation_error_response(exc),
        )


def _register_generic_error_handler(app: FastAPI) -> None:

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all: never leaks internal details."""
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": {
                    "code": "INTERNAL_ERROR",
                    "message": "An unexpected error occurred",
                    "category": "internal",
                    "severity": ErrorSeverity.CRITICAL.value,
                },
            },
        )


def _build_validation_error_response(exc: RequestValidationError) -> dict:
    return {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Invalid request data",
            "category": "validation",
            "severity": ErrorSeverity.ERROR.value,
            "details": [
                {
                    "field": ".".join(str(loc) for loc in e["loc"]),
                    "message": e["msg"],
                    "type": e["type"],
                }
                for e in exc.errors()
            ],
        },
    }

import logging
import re
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes.health import router as health_router
from app.api.routes.quotes import router as quotes_router
from app.core.config import AppEnvironment, settings
from app.core.errors import QuotesApiError, get_status_code
from app.core.observability import (
    ObservabilityMiddleware,
    configure_structured_logging,
    extract_request_context,
    metrics_endpoint,
)

if settings.observability_structured_logs:
    configure_structured_logging(settings.app_log_level)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

REDACTED = "[REDACTED]"

# Source paths and SQL statements (IntegrityError text carries both)
_SENSITIVE_DETAIL = re.compile(
    r"[/\\][\w/-]+\.py"
    r"|SELECT\b.*\bFROM"
    r"|INSERT\s+INTO\b.*\bVALUES"
    r"|UPDATE\b.*\bSET"
    r"|DELETE\s+FROM",
    re.IGNORECASE | re.DOTALL,
)


def _sanitize_error_details(details: dict[str, Any]) -> dict[str, Any]:
    """
    Redact file paths and SQL from error details in production.

    Nested dicts are sanitized recursively; other values pass through.
    Outside production the details are returned unchanged.
    """
    if settings.app_env != AppEnvironment.PROD:
        return details

    def _clean(value: Any) -> Any:
        if isinstance(value, dict):
            return {key: _clean(item) for key, item in value.items()}
        if isinstance(value, str) and _SENSITIVE_DETAIL.search(value):
            return REDACTED
        return value

    return _clean(details)


def _error_response(
    status_code: int, error: str, message: Any, details: dict[str, Any] | None = None, **kwargs
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, "details": details or {}},
        **kwargs,
    )


def create_app() -> FastAPI:
    """
    Build the Quotes API application.

    Middleware: request observability (when enabled) and CORS. Every error
    leaves as {"error", "message", "details"}. Routes live under /api/v1;
    Prometheus scrapes /metrics.
    """
    app = FastAPI(
        title="Quotes API",
        description="Quotes resource with include/filter/sort/paginate query parameters",
        version="0.1.0",
    )

    if settings.observability_enabled:
        app.add_middleware(ObservabilityMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ============================================================================
    # Exception Handlers
    # ============================================================================

    @app.exception_handler(QuotesApiError)
    async def quotes_api_error_handler(request: Request, exc: QuotesApiError) -> JSONResponse:
        status_code = get_status_code(exc)
        log = logger.error if status_code >= 500 else logger.warning
        log(
            f"{type(exc).__name__}: {exc.message}",
            extra={"details": exc.details, **extract_request_context(request)},
        )
        return _error_response(
            status_code, type(exc).__name__, exc.message, _sanitize_error_details(exc.details)
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Malformed bodies and path parameters are reported as 400."""
        logger.warning("Request validation failed", extra=extract_request_context(request))
        return _error_response(
            status.HTTP_400_BAD_REQUEST,
            "ValidationError",
            "Request validation failed",
            {"errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                f"HTTP {exc.status_code}: {exc.detail}", extra=extract_request_context(request)
            )
        return _error_response(exc.status_code, "HTTPException", exc.detail, headers=exc.headers)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Log with traceback; the client only learns that something failed."""
        logger.error(
            f"Unhandled exception: {exc}",
            exc_info=True,
            extra=extract_request_context(request),
        )
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "InternalServerError",
            "An unexpected error occurred",
        )

    # ============================================================================
    # Routers
    # ============================================================================

    app.include_router(health_router, prefix=API_PREFIX)
    app.include_router(quotes_router, prefix=API_PREFIX)

    if settings.observability_enabled:
        app.add_route("/metrics", lambda request: metrics_endpoint())

    return app


app = create_app()

"""
Request tracing, JSON logs and Prometheus metrics for the Quotes API.

- request_id / user_id context variables, read by the log formatter
- StructuredFormatter: one JSON object per log line
- Metrics: HTTP and query-builder collectors on a private registry
- ObservabilityMiddleware: tags each request with an id, times it and
  records it
"""

import json
import logging
import time
import uuid
from collections.abc import Callable, Iterable
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

from fastapi import Request, Response
from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match
from starlette.types import ASGIApp

REQUEST_ID_HEADER = "X-Request-ID"

# Route label for requests that match no route (404s)
UNMATCHED_ROUTE = "unmatched"

# ============================================================================
# Request Context
# ============================================================================

_request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")
_user_id_ctx: ContextVar[str] = ContextVar("user_id", default="")


def generate_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str:
    return _request_id_ctx.get()


def set_correlation_id(request_id: str) -> None:
    """Bind a request id to the current context; every log line carries it."""
    _request_id_ctx.set(request_id)


def get_user_id() -> str:
    return _user_id_ctx.get()


def set_user_id(user_id: str) -> None:
    """Bind the token subject of the caller to the current context."""
    _user_id_ctx.set(user_id)


# ============================================================================
# JSON Logging
# ============================================================================

# Every LogRecord has these; anything else was passed through `extra=`
_STANDARD_RECORD_FIELDS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """
    Render log records as single-line JSON.

    Keys: timestamp (UTC ISO 8601), level, logger, message, source location,
    request_id and user_id when bound, exception type/message when present,
    and an "extra" object for fields passed via `extra=`.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.pathname}:{record.lineno}",
            "function": record.funcName,
        }

        for key, value in (("request_id", get_request_id()), ("user_id", get_user_id())):
            if value:
                entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {"type": exc_type.__name__, "message": str(exc_value)}

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _STANDARD_RECORD_FIELDS
        }
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str)


def configure_structured_logging(level: str = "INFO") -> None:
    """Replace the root logger's handlers with a single JSON stream handler."""
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.getLevelNamesMapping().get(level.upper(), logging.INFO))


# ============================================================================
# Prometheus Metrics
# ============================================================================

_LATENCY_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0)
_ROW_BUCKETS = (0, 1, 5, 10, 25, 50, 100, 200)


class Metrics:
    """Application collectors, all on one private registry."""

    def __init__(self, registry: CollectorRegistry) -> None:
        self.registry = registry

        # HTTP
        self.http_requests_total = Counter(
            "http_requests_total",
            "Requests served, by route template and status",
            ["method", "route", "status_code"],
            registry=registry,
        )
        self.http_request_duration_seconds = Histogram(
            "http_request_duration_seconds",
            "Time to produce a response",
            ["method", "route"],
            buckets=_LATENCY_BUCKETS,
            registry=registry,
        )
        self.http_requests_in_progress = Gauge(
            "http_requests_in_progress",
            "Requests being handled right now",
            ["method", "route"],
            registry=registry,
        )
        self.http_errors_total = Counter(
            "http_errors_total",
            "Requests that raised out of the application",
            ["error_type", "method", "route"],
            registry=registry,
        )

        # Query builder
        self.query_builds_total = Counter(
            "query_builds_total",
            "Queries assembled from request parameters",
            ["resource"],
            registry=registry,
        )
        # source: "requested" (named in ?include=) or "required" (implied by
        # a filter or sort on joined data)
        self.query_includes_total = Counter(
            "query_includes_total",
            "Includes applied to assembled queries",
            ["resource", "include", "source"],
            registry=registry,
        )
        self.query_rows_returned = Histogram(
            "query_rows_returned",
            "Rows returned by executed list queries",
            ["resource"],
            buckets=_ROW_BUCKETS,
            registry=registry,
        )


metrics = Metrics(CollectorRegistry())


# ============================================================================
# Middleware
# ============================================================================

_request_logger = logging.getLogger("app.request")


def route_template(request: Request) -> str:
    """
    Path template of the route that will handle the request.

    Metrics are labelled with the template rather than the raw path so that
    /quotes/1 and /quotes/2 share one series. Requests no route matches get
    UNMATCHED_ROUTE.
    """
    partial = None
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match is Match.FULL:
            return getattr(route, "path", UNMATCHED_ROUTE)
        if match is Match.PARTIAL and partial is None:
            partial = getattr(route, "path", None)
    return partial or UNMATCHED_ROUTE


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Per-request id, timing, metrics and an access log line.

    The request id comes from the X-Request-ID header when the caller sends
    one and is echoed back on the response. Paths under skip_paths are
    measured but not logged.
    """

    DEFAULT_SKIP_PATHS = ("/api/v1/health", "/api/v1/readyz", "/metrics")

    def __init__(
        self,
        app: ASGIApp,
        metrics_instance: Metrics | None = None,
        skip_paths: Iterable[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.metrics = metrics_instance or metrics
        self.skip_paths = tuple(skip_paths or self.DEFAULT_SKIP_PATHS)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or generate_request_id()
        set_correlation_id(request_id)
        set_user_id("")

        route = route_template(request)
        method = request.method
        in_progress = self.metrics.http_requests_in_progress.labels(method=method, route=route)
        in_progress.inc()
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed = time.perf_counter() - started
            self._observe(method, route, 500, elapsed)
            self.metrics.http_errors_total.labels(
                error_type=type(e).__name__, method=method, route=route
            ).inc()
            _request_logger.error(
                f"{method} {route} failed: {type(e).__name__}",
                extra=self._log_fields(method, route, 500, elapsed),
                exc_info=True,
            )
            raise
        finally:
            in_progress.dec()

        elapsed = time.perf_counter() - started
        self._observe(method, route, response.status_code, elapsed)
        response.headers[REQUEST_ID_HEADER] = request_id

        if not route.startswith(self.skip_paths):
            _request_logger.info(
                f"{method} {route}",
                extra=self._log_fields(method, route, response.status_code, elapsed),
            )
        return response

    def _observe(self, method: str, route: str, status_code: int, elapsed: float) -> None:
        self.metrics.http_requests_total.labels(
            method=method, route=route, status_code=status_code
        ).inc()
        self.metrics.http_request_duration_seconds.labels(method=method, route=route).observe(
            elapsed
        )

    @staticmethod
    def _log_fields(method: str, route: str, status_code: int, elapsed: float) -> dict[str, Any]:
        return {
            "method": method,
            "route": route,
            "status_code": status_code,
            "latency_ms": round(elapsed * 1000, 2),
        }


# ============================================================================
# Endpoint and helpers
# ============================================================================


def metrics_endpoint() -> Response:
    """Prometheus text exposition of the application registry."""
    return Response(
        content=generate_latest(metrics.registry),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )


def extract_request_context(request: Request) -> dict[str, Any]:
    """Fields identifying the current request, for `extra=` on error logs."""
    return {
        "request_id": get_request_id(),
        "user_id": get_user_id() or "anonymous",
        "path": request.url.path,
    }

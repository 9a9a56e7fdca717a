"""Request id and trace propagation for the HTTP API."""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from coursestream.core.context import clear_context, set_request_id, set_trace_id
from coursestream.core.logging import get_logger


logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def trace_id_from(headers: Headers) -> str | None:
    """Trace id from ``X-Trace-ID`` or the trace-id field of ``traceparent``."""
    explicit = headers.get("X-Trace-ID")
    if explicit:
        return explicit
    fields = headers.get("traceparent", "").split("-")
    return fields[1] if len(fields) == 4 and fields[1] else None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Binds request and trace ids for one request and logs its outcome.

    Paths under ``exclude_paths`` get no access log. Unhandled errors are
    logged by the application's exception handler.
    """

    def __init__(
        self,
        app: ASGIApp,
        log_requests: bool = True,
        exclude_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.log_requests = log_requests
        self.exclude_paths = tuple(exclude_paths or ["/health"])

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        started = time.perf_counter()
        request_id = set_request_id(request.headers.get(REQUEST_ID_HEADER))
        trace_id = trace_id_from(request.headers)
        if trace_id:
            set_trace_id(trace_id)
        request.state.request_id = request_id

        try:
            response = await call_next(request)
            if self.log_requests and not request.url.path.startswith(self.exclude_paths):
                log = logger.warning if response.status_code >= 400 else logger.info
                log(
                    "request_completed",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round((time.perf_counter() - started) * 1000, 2),
                )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_context()

"""
Trace Middleware

Opens an OpenTelemetry server span per request and assigns the trace_id used
for log correlation and error bodies.
"""

import contextvars
from typing import Callable
from uuid import uuid4

from fastapi import Request, Response
from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware

from ....core.observability import create_span
from ....core.observability import get_trace_id as get_otel_trace_id


trace_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("trace_id", default="")


def get_trace_id() -> str:
    """
    Get the current trace ID.

    Returns the trace ID from the current request context,
    or generates a new one if not set.
    """
    return trace_id_var.get() or str(uuid4())


def request_trace_id(request: Request) -> str:
    """Trace ID stored on the request by TraceMiddleware, or a fresh one."""
    return getattr(request.state, "trace_id", None) or get_trace_id()


class TraceMiddleware(BaseHTTPMiddleware):
    """
    Middleware that extracts or generates the request trace ID.

    Headers:
    - X-Trace-ID: Unique ID for this request. When absent, the id of the
      OpenTelemetry request span is used (a random id if tracing is off).
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        with create_span(
            f"{request.method} {request.url.path}",
            {
                "http.method": request.method,
                "http.route": request.url.path,
                "http.user_agent": request.headers.get("user-agent", ""),
            },
            kind=trace.SpanKind.SERVER,
        ) as span:
            trace_id = request.headers.get("X-Trace-ID") or get_otel_trace_id() or str(uuid4())
            trace_id_var.set(trace_id)
            request.state.trace_id = trace_id

            response = await call_next(request)

            span.set_attribute("http.status_code", response.status_code)
            response.headers["X-Trace-ID"] = trace_id
            return response

"""
Observability Module

Provides tracing spans and structured logging.
"""

from .tracing import (
    init_tracing,
    get_tracer,
    get_current_span,
    get_trace_id,
    create_span,
)
from .logging import StructuredFormatter, configure_logging

__all__ = [
    # Tracing
    "init_tracing",
    "get_tracer",
    "get_current_span",
    "get_trace_id",
    "create_span",
    # Logging
    "StructuredFormatter",
    "configure_logging",
]

"""
Project utility layer: reusable infrastructure primitives shared across the agent chain runtime.

This package depends only on the Python standard library and vetted third-party libraries (Rich for
console output, structlog for structured telemetry) so higher layers can import helpers without
pulling in orchestration logic.
"""

from __future__ import annotations

from .clock import ensure_utc, utc_iso, utc_now
from .context import ContextBridge
from .logging import SessionContextFilter, configure_logging
from .tracing import TraceSpan, trace_span

__all__ = [
    "ContextBridge",
    "SessionContextFilter",
    "TraceSpan",
    "configure_logging",
    "ensure_utc",
    "trace_span",
    "utc_iso",
    "utc_now",
]

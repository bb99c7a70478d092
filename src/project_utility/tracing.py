"""
Async trace spans around orchestration work.

Each span gets a short id and reports `trace.start` on entry and `trace.end` on exit through
telemetry, with elapsed milliseconds and `outcome` (`ok` unless the block raised or the caller set
one explicitly).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Dict, Optional
from uuid import uuid4

from project_utility.telemetry import emit as telemetry_emit


@dataclass(slots=True)
class TraceSpan:
    name: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    span_id: str = field(default_factory=lambda: uuid4().hex[:12])
    duration_ms: Optional[float] = None
    _started_at: float = field(default=0.0, init=False, repr=False)

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    async def __aenter__(self) -> "TraceSpan":
        self._started_at = perf_counter()
        telemetry_emit("trace.start", level="debug", span=self.name, span_id=self.span_id, payload=dict(self.attributes))
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.duration_ms = round((perf_counter() - self._started_at) * 1000, 3)
        payload = {**self.attributes, "duration_ms": self.duration_ms}
        if exc is not None:
            payload["outcome"] = "error"
            payload["error"] = f"{type(exc).__name__}: {exc}"
        else:
            payload.setdefault("outcome", "ok")
        telemetry_emit(
            "trace.end",
            level="debug",
            span=self.name,
            span_id=self.span_id,
            payload=payload,
            sensitive=["error"],
        )


def trace_span(name: str, **attributes: Any) -> TraceSpan:
    """
    Usage:
        async with trace_span("agent_chain.phase", phase_id="kb_development") as span:
            span.set_attribute("outcome", "completed")
    """

    return TraceSpan(name=name, attributes=dict(attributes))


__all__ = ["TraceSpan", "trace_span"]

"""
Context utilities for session-id propagation across async boundaries.

The orchestrator binds its session id while a chain runs so log records and telemetry emitted from
nested awaits (adapters, step callbacks) can be attributed without threading the id through every
call.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Optional

_session_id: contextvars.ContextVar[str] = contextvars.ContextVar("session_id", default="")


@dataclass(slots=True)
class ContextBridge:
    """ContextVar-backed helper exposing the session currently executing in this task."""

    @staticmethod
    def session_id() -> str:
        return _session_id.get()

    @staticmethod
    def bind_session(value: str) -> contextvars.Token[str]:
        return _session_id.set(value)

    @staticmethod
    def reset(token: Optional[contextvars.Token[str]] = None) -> None:
        if token is not None:
            _session_id.reset(token)
        else:
            _session_id.set("")


__all__ = ["ContextBridge"]

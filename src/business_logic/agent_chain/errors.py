from __future__ import annotations

"""Agent chain error taxonomy."""

from typing import Literal, Optional

__all__ = [
    "AgentChainError",
    "ChainCancelledError",
    "ChainDefinitionError",
    "ChainExecutionError",
    "FailureReason",
    "SessionNotFoundError",
]

FailureReason = Literal["input_validation", "phase_execution", "mapping", "cancelled"]

CANCELLED_MESSAGE = "Workflow execution cancelled by user"


class AgentChainError(Exception):
    """Base class for orchestration failures."""


class ChainDefinitionError(AgentChainError, ValueError):
    """Raised before a session exists when the chain itself is unusable."""


class ChainExecutionError(AgentChainError, RuntimeError):
    """A session ended in `failed`; the session state and error event already reflect it."""

    def __init__(self, message: str, *, session_id: str, reason: FailureReason, phase_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.session_id = session_id
        self.reason = reason
        self.phase_id = phase_id


class ChainCancelledError(ChainExecutionError):
    def __init__(self, *, session_id: str, phase_id: Optional[str] = None) -> None:
        super().__init__(CANCELLED_MESSAGE, session_id=session_id, reason="cancelled", phase_id=phase_id)


class SessionNotFoundError(AgentChainError, KeyError):
    def __init__(self, session_id: str) -> None:
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"no active session '{self.session_id}'"

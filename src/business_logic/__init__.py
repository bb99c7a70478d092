from __future__ import annotations

"""Business Logic layer entrypoints."""

from business_logic.agent_chain import (
    AgentChainOrchestrator,
    AgentChainService,
    ChainExecutionError,
    SessionNotFoundError,
    SessionRegistry,
)

__all__ = [
    "AgentChainOrchestrator",
    "AgentChainService",
    "ChainExecutionError",
    "SessionNotFoundError",
    "SessionRegistry",
]

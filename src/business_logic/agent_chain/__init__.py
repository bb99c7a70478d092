from __future__ import annotations

from business_logic.agent_chain.errors import (
    AgentChainError,
    ChainCancelledError,
    ChainDefinitionError,
    ChainExecutionError,
    SessionNotFoundError,
)
from business_logic.agent_chain.events import (
    CHAIN_EVENT_CHANNELS,
    ChainEventType,
    ErrorEvent,
    PhaseCompleteEvent,
    StatusChangeEvent,
    WorkflowCompleteEvent,
)
from business_logic.agent_chain.models import OrchestrationSession, StepStatus, WorkflowRunStatus
from business_logic.agent_chain.orchestrator import AgentChainOrchestrator, phase_progress, session_progress
from business_logic.agent_chain.registry import SessionRegistry
from business_logic.agent_chain.service import AgentChainService, ChainRunHandle

__all__ = [
    "AgentChainError",
    "AgentChainOrchestrator",
    "AgentChainService",
    "CHAIN_EVENT_CHANNELS",
    "ChainCancelledError",
    "ChainDefinitionError",
    "ChainEventType",
    "ChainExecutionError",
    "ChainRunHandle",
    "ErrorEvent",
    "OrchestrationSession",
    "PhaseCompleteEvent",
    "SessionNotFoundError",
    "SessionRegistry",
    "StatusChangeEvent",
    "StepStatus",
    "WorkflowCompleteEvent",
    "WorkflowRunStatus",
    "phase_progress",
    "session_progress",
]

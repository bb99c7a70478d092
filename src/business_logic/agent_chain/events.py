from __future__ import annotations

"""Lifecycle events published by the orchestrator, one bus channel per event type."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, MutableMapping, Optional

from business_logic.agent_chain.errors import FailureReason
from business_logic.agent_chain.models import OrchestrationSession
from foundational_service.contracts.variables import ChainVariable
from foundational_service.telemetry.event_bus import ChainEventBus
from project_utility.clock import utc_iso

__all__ = [
    "CHAIN_EVENT_CHANNELS",
    "ChainEvent",
    "ChainEventType",
    "ErrorEvent",
    "PhaseCompleteEvent",
    "StatusChangeEvent",
    "WorkflowCompleteEvent",
    "new_event_bus",
]


class ChainEventType:
    STATUS_CHANGE = "status_change"
    PHASE_COMPLETE = "phase_complete"
    WORKFLOW_COMPLETE = "workflow_complete"
    ERROR = "error"


CHAIN_EVENT_CHANNELS = (
    ChainEventType.STATUS_CHANGE,
    ChainEventType.PHASE_COMPLETE,
    ChainEventType.WORKFLOW_COMPLETE,
    ChainEventType.ERROR,
)


def new_event_bus() -> ChainEventBus:
    return ChainEventBus(CHAIN_EVENT_CHANNELS)


@dataclass(frozen=True, slots=True)
class StatusChangeEvent:
    session_id: str
    status: OrchestrationSession
    timestamp: str = field(default_factory=utc_iso)
    type: str = field(default=ChainEventType.STATUS_CHANGE, init=False)

    def to_payload(self) -> MutableMapping[str, Any]:
        return {"type": self.type, "sessionId": self.session_id, "timestamp": self.timestamp, "status": self.status.to_payload()}


@dataclass(frozen=True, slots=True)
class PhaseCompleteEvent:
    """`outputs` are keyed by chain variable name, after mapping."""

    session_id: str
    phase_id: str
    outputs: Dict[str, Any]
    timestamp: str = field(default_factory=utc_iso)
    type: str = field(default=ChainEventType.PHASE_COMPLETE, init=False)

    def to_payload(self) -> MutableMapping[str, Any]:
        return {
            "type": self.type,
            "sessionId": self.session_id,
            "timestamp": self.timestamp,
            "phaseId": self.phase_id,
            "outputs": dict(self.outputs),
        }


@dataclass(frozen=True, slots=True)
class WorkflowCompleteEvent:
    session_id: str
    final_state: List[ChainVariable]
    final_outputs: Dict[str, Any]
    timestamp: str = field(default_factory=utc_iso)
    type: str = field(default=ChainEventType.WORKFLOW_COMPLETE, init=False)

    def to_payload(self) -> MutableMapping[str, Any]:
        return {
            "type": self.type,
            "sessionId": self.session_id,
            "timestamp": self.timestamp,
            "finalState": [variable.to_document() for variable in self.final_state],
            "finalOutputs": dict(self.final_outputs),
        }


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    session_id: str
    error: str
    reason: FailureReason
    phase_id: Optional[str] = None
    timestamp: str = field(default_factory=utc_iso)
    type: str = field(default=ChainEventType.ERROR, init=False)

    def to_payload(self) -> MutableMapping[str, Any]:
        return {
            "type": self.type,
            "sessionId": self.session_id,
            "timestamp": self.timestamp,
            "error": self.error,
            "reason": self.reason,
            "phaseId": self.phase_id,
        }


ChainEvent = StatusChangeEvent | PhaseCompleteEvent | WorkflowCompleteEvent | ErrorEvent

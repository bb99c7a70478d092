from __future__ import annotations

"""Session state models owned by the agent chain orchestrator."""

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, MutableMapping, Optional

from business_logic.agent_chain.errors import FailureReason
from foundational_service.contracts.workflow_exec import StepState
from project_utility.clock import utc_iso

__all__ = [
    "COMPLETED",
    "FAILED",
    "OrchestrationSession",
    "StepStatus",
    "WorkflowRunStatus",
]

COMPLETED = "completed"
FAILED = "failed"


@dataclass(slots=True)
class StepStatus:
    step_id: str
    step_index: int
    status: StepState = "pending"
    progress: float = 0.0
    result: Any = None
    message: Optional[str] = None


@dataclass(slots=True)
class WorkflowRunStatus:
    """Transient view of the phase currently executing."""

    phase_id: str
    job_id: Optional[str] = None
    workflow_id: Optional[str] = None
    workflow_name: Optional[str] = None
    state: StepState = "pending"
    progress: int = 0
    current_step_id: Optional[str] = None
    steps: List[StepStatus] = field(default_factory=list)


@dataclass(slots=True)
class OrchestrationSession:
    session_id: str
    chain_id: str
    current_phase: str
    start_time: datetime
    total_phases: int
    progress: int = 0
    completed_phases: int = 0
    end_time: Optional[datetime] = None
    error: Optional[str] = None
    failure_reason: Optional[FailureReason] = None
    results: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    current_workflow_status: Optional[WorkflowRunStatus] = None

    @property
    def is_terminal(self) -> bool:
        return self.current_phase in (COMPLETED, FAILED)

    @property
    def succeeded(self) -> bool:
        return self.current_phase == COMPLETED

    def snapshot(self) -> "OrchestrationSession":
        """Detached copy handed to listeners and status queries."""

        return copy.deepcopy(self)

    def to_payload(self) -> MutableMapping[str, Any]:
        status = self.current_workflow_status
        payload: Dict[str, Any] = {
            "sessionId": self.session_id,
            "chainId": self.chain_id,
            "currentPhase": self.current_phase,
            "progress": self.progress,
            "startTime": utc_iso(self.start_time),
            "endTime": utc_iso(self.end_time) if self.end_time else None,
            "results": copy.deepcopy(self.results),
            "currentWorkflowStatus": None,
        }
        if self.error is not None:
            payload["error"] = self.error
            payload["failureReason"] = self.failure_reason
        if status is not None:
            payload["currentWorkflowStatus"] = {
                "phaseId": status.phase_id,
                "jobId": status.job_id,
                "workflowId": status.workflow_id,
                "state": status.state,
                "progress": status.progress,
                "currentStepId": status.current_step_id,
                "stepStatus": [
                    {
                        "stepId": step.step_id,
                        "stepIndex": step.step_index,
                        "status": step.status,
                        "progress": step.progress,
                        "message": step.message,
                    }
                    for step in status.steps
                ],
            }
        return payload

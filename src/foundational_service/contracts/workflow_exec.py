"""Neutral workflow execution contracts shared by the orchestrator and execution adapters."""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Literal, Mapping, Optional, Protocol
from uuid import uuid4

from foundational_service.contracts.variables import ChainVariable

__all__ = [
    "AgentWorkflowType",
    "JobResult",
    "StepState",
    "StepStatusCallback",
    "StepStatusUpdate",
    "Workflow",
    "WorkflowExecutionAdapter",
    "WorkflowFactory",
    "WorkflowJob",
    "WorkflowStep",
    "static_workflow",
]

StepState = Literal["pending", "running", "completed", "failed"]
StepType = Literal["ACTION", "INPUT", "EVALUATION"]


class AgentWorkflowType:
    """Well-known workflow types; config overrides are keyed by these strings."""

    QUESTION_DEVELOPMENT = "QUESTION_DEVELOPMENT"
    KNOWLEDGE_BASE_DEVELOPMENT = "KNOWLEDGE_BASE_DEVELOPMENT"
    ANSWER_GENERATION = "ANSWER_GENERATION"
    COMPLETE_AGENT_WORKFLOW = "COMPLETE_AGENT_WORKFLOW"


@dataclass(slots=True)
class WorkflowStep:
    step_id: str
    label: str
    description: str = ""
    step_type: StepType = "ACTION"
    tool_id: Optional[str] = None
    parameter_mappings: Dict[str, str] = field(default_factory=dict)
    output_mappings: Dict[str, str] = field(default_factory=dict)
    prompt_template_id: Optional[str] = None
    sequence_number: int = 0


@dataclass(slots=True)
class Workflow:
    workflow_id: str
    name: str
    workflow_type: str
    steps: List[WorkflowStep] = field(default_factory=list)
    state: List[ChainVariable] = field(default_factory=list)
    description: str = ""
    max_iterations: Optional[int] = None
    confidence_threshold: Optional[float] = None

    def variable(self, name: str) -> Optional[ChainVariable]:
        for variable in self.state:
            if variable.name == name:
                return variable
        return None

    def inputs(self) -> List[ChainVariable]:
        return [variable for variable in self.state if variable.io_type == "input"]

    def outputs(self) -> List[ChainVariable]:
        return [variable for variable in self.state if variable.io_type == "output"]


WorkflowFactory = Callable[[], Awaitable[Workflow]]


def static_workflow(workflow: Workflow) -> WorkflowFactory:
    """Wrap a prebuilt workflow in an async factory handing out a fresh copy per call."""

    async def _factory() -> Workflow:
        return copy.deepcopy(workflow)

    _factory.__qualname__ = f"static_workflow[{workflow.name}]"
    return _factory


@dataclass(slots=True)
class WorkflowJob:
    workflow: Workflow
    inputs: Mapping[str, Any]
    job_id: str = field(default_factory=lambda: str(uuid4()))


@dataclass(slots=True)
class StepStatusUpdate:
    """Point-in-time report for one step of a running job."""

    job_id: str
    step_index: int
    step_id: str
    status: StepState
    progress: float = 0.0
    result: Any = None
    message: Optional[str] = None


@dataclass(slots=True)
class JobResult:
    """Outcome of one job: success with outputs, or failure with an error, never both."""

    job_id: str
    success: bool
    outputs: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @classmethod
    def succeeded(cls, job_id: str, outputs: Mapping[str, Any]) -> "JobResult":
        return cls(job_id=job_id, success=True, outputs=dict(outputs))

    @classmethod
    def failed(cls, job_id: str, error: str) -> "JobResult":
        return cls(job_id=job_id, success=False, error=error)


StepStatusCallback = Callable[[StepStatusUpdate], None]


class WorkflowExecutionAdapter(Protocol):
    """Runs a single workflow; implemented outside the orchestration layer."""

    async def run_job(self, job: WorkflowJob, on_step_status: StepStatusCallback) -> JobResult:
        ...

    async def cancel_job(self, job_id: str) -> bool:
        ...

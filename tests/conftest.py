from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

import pytest

SRC_PATH = Path(__file__).resolve().parents[1] / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

# Keep telemetry and rotating logs out of the working tree.
os.environ.setdefault("AGENT_CHAIN_LOG_ROOT", tempfile.mkdtemp(prefix="agent-chain-logs-"))
os.environ.setdefault("TELEMETRY_CONSOLE_LEVEL", "critical")

from foundational_service.contracts.variables import ChainVariable, VariableSchema  # noqa: E402
from foundational_service.contracts.workflow_exec import (  # noqa: E402
    JobResult,
    StepStatusCallback,
    StepStatusUpdate,
    Workflow,
    WorkflowJob,
    WorkflowStep,
)

Behavior = Callable[[WorkflowJob], JobResult]


class ScriptedAdapter:
    """Adapter double: reports running/completed per step, then returns what the script says."""

    def __init__(self, behaviors: Optional[Mapping[str, Behavior]] = None) -> None:
        self.behaviors: Dict[str, Behavior] = dict(behaviors or {})
        self.jobs: List[WorkflowJob] = []
        self.cancelled: List[str] = []

    async def run_job(self, job: WorkflowJob, on_step_status: StepStatusCallback) -> JobResult:
        self.jobs.append(job)
        for index, step in enumerate(job.workflow.steps):
            on_step_status(StepStatusUpdate(job_id=job.job_id, step_index=index, step_id=step.step_id, status="running"))
            on_step_status(
                StepStatusUpdate(
                    job_id=job.job_id,
                    step_index=index,
                    step_id=step.step_id,
                    status="completed",
                    progress=100.0,
                )
            )
        behavior = self.behaviors.get(job.workflow.name)
        if behavior is None:
            return JobResult.succeeded(job.job_id, {})
        return behavior(job)

    async def cancel_job(self, job_id: str) -> bool:
        self.cancelled.append(job_id)
        return True


def string_var(name: str, *, value: Any = None, io_type: str = "input", required: bool = False, role: Optional[str] = None) -> ChainVariable:
    return ChainVariable(
        name=name,
        schema=VariableSchema(type="string"),
        value=value,
        io_type=io_type,
        required=required,
        variable_role=role,
    )


def make_workflow(
    name: str,
    *,
    inputs: Mapping[str, bool],
    outputs: List[str],
    step_count: int = 2,
    workflow_type: str = "CUSTOM",
) -> Workflow:
    """`inputs` maps each declared input name to its `required` flag."""

    state = [string_var(input_name, required=required) for input_name, required in inputs.items()]
    state.extend(string_var(output_name, io_type="output") for output_name in outputs)
    steps = [WorkflowStep(step_id=f"{name}-step-{index}", label=f"Step {index}") for index in range(step_count)]
    return Workflow(workflow_id=f"wf-{name}", name=name, workflow_type=workflow_type, steps=steps, state=state)


class CountingFactory:
    def __init__(self, workflow: Workflow) -> None:
        self.workflow = workflow
        self.calls = 0

    async def __call__(self) -> Workflow:
        self.calls += 1
        return Workflow(
            workflow_id=self.workflow.workflow_id,
            name=self.workflow.name,
            workflow_type=self.workflow.workflow_type,
            steps=list(self.workflow.steps),
            state=[variable.copy() for variable in self.workflow.state],
            max_iterations=self.workflow.max_iterations,
            confidence_threshold=self.workflow.confidence_threshold,
        )


@pytest.fixture
def adapter() -> ScriptedAdapter:
    return ScriptedAdapter()

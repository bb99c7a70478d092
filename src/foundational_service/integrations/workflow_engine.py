from __future__ import annotations

"""In-process workflow execution adapter that runs a workflow's steps one after another.

Each step is dispatched to a handler registered under the step's `tool_id`. Handlers receive the
step and its resolved tool parameters and return a mapping of tool outputs; `output_mappings`
routes those outputs (dotted paths allowed, e.g. `response.improvedQuestion`) back into the
workflow's variables.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Mapping, MutableMapping, Optional

from foundational_service.contracts.variables import ChainVariable, VariableTypeError, infer_schema
from foundational_service.contracts.workflow_exec import (
    JobResult,
    StepStatusCallback,
    StepStatusUpdate,
    WorkflowJob,
    WorkflowStep,
)

__all__ = ["SequentialWorkflowEngine", "StepHandler"]

StepHandler = Callable[[WorkflowStep, Mapping[str, Any]], Awaitable[Mapping[str, Any]]]

log = logging.getLogger("foundational_service.integrations.workflow_engine")

_MISSING = object()


def _lookup_path(payload: Mapping[str, Any], path: str) -> Any:
    current: Any = payload
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


class SequentialWorkflowEngine:
    def __init__(self, handlers: Optional[Mapping[str, StepHandler]] = None) -> None:
        self._handlers: Dict[str, StepHandler] = dict(handlers or {})
        self._jobs: Dict[str, str] = {}

    def register_handler(self, tool_id: str, handler: StepHandler) -> None:
        self._handlers[tool_id] = handler

    def job_status(self, job_id: str) -> Optional[str]:
        return self._jobs.get(job_id)

    async def run_job(self, job: WorkflowJob, on_step_status: StepStatusCallback) -> JobResult:
        job_id = job.job_id
        workflow = job.workflow
        self._jobs[job_id] = "running"
        state: MutableMapping[str, ChainVariable] = {variable.name: variable.copy() for variable in workflow.state}

        for name, value in job.inputs.items():
            variable = state.get(name)
            if variable is None:
                log.warning("workflow.input_undeclared", extra={"job_id": job_id, "variable": name})
                continue
            try:
                variable.assign(value)
            except VariableTypeError as exc:
                return self._finish_failed(job_id, str(exc))

        missing = [variable.name for variable in state.values() if variable.io_type == "input" and not variable.is_satisfied]
        if missing:
            return self._finish_failed(job_id, f"required inputs missing: {', '.join(missing)}")

        total = len(workflow.steps)
        for index, step in enumerate(workflow.steps):
            if self._jobs.get(job_id) == "cancelled":
                return self._finish_failed(job_id, "job cancelled", status="cancelled")
            on_step_status(StepStatusUpdate(job_id=job_id, step_index=index, step_id=step.step_id, status="running"))
            try:
                result = await self._execute_step(step, state)
            except Exception as exc:
                log.warning(
                    "workflow.step_failed",
                    extra={"job_id": job_id, "step_index": index, "error": str(exc)},
                )
                on_step_status(
                    StepStatusUpdate(
                        job_id=job_id,
                        step_index=index,
                        step_id=step.step_id,
                        status="failed",
                        message=str(exc),
                    )
                )
                return self._finish_failed(job_id, f"step '{step.label or step.step_id}' failed: {exc}")
            on_step_status(
                StepStatusUpdate(
                    job_id=job_id,
                    step_index=index,
                    step_id=step.step_id,
                    status="completed",
                    progress=100.0,
                    result=result,
                )
            )
            log.debug("workflow.step_completed", extra={"job_id": job_id, "step_index": index, "progress": f"{index + 1}/{total}"})

        if self._jobs.get(job_id) == "cancelled":
            return self._finish_failed(job_id, "job cancelled", status="cancelled")
        outputs = {
            variable.name: variable.value
            for variable in state.values()
            if variable.io_type == "output" and variable.value is not None
        }
        self._jobs[job_id] = "completed"
        return JobResult.succeeded(job_id, outputs)

    async def cancel_job(self, job_id: str) -> bool:
        if self._jobs.get(job_id) != "running":
            return False
        self._jobs[job_id] = "cancelled"
        return True

    async def _execute_step(self, step: WorkflowStep, state: MutableMapping[str, ChainVariable]) -> Dict[str, Any]:
        handler = self._handlers.get(step.tool_id or "")
        if handler is None:
            raise LookupError(f"no handler registered for tool '{step.tool_id}'")
        parameters = {
            parameter: state[variable_name].value if variable_name in state else None
            for parameter, variable_name in step.parameter_mappings.items()
        }
        outputs = dict(await handler(step, parameters))
        for output_path, variable_name in step.output_mappings.items():
            value = _lookup_path(outputs, output_path)
            if value is _MISSING:
                continue
            target = state.get(variable_name)
            if target is None:
                target = ChainVariable(name=variable_name, schema=infer_schema(value), io_type="output")
                state[variable_name] = target
            target.assign(value)
        return outputs

    def _finish_failed(self, job_id: str, error: str, *, status: str = "failed") -> JobResult:
        self._jobs[job_id] = status
        return JobResult.failed(job_id, error)

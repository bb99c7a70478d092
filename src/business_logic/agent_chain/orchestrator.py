from __future__ import annotations

"""Agent chain orchestrator: runs a chain's phases in order against a workflow execution adapter.

One orchestrator drives exactly one session. `start()` validates the chain, copies its variable
state and publishes the first status change; `run()` walks the phases, mapping chain variables into
each workflow and mapping workflow outputs back. The first failure ends the session (no retries).
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union
from uuid import uuid4

from business_logic.agent_chain.errors import (
    CANCELLED_MESSAGE,
    ChainCancelledError,
    ChainDefinitionError,
    ChainExecutionError,
    FailureReason,
)
from business_logic.agent_chain.events import (
    ChainEventType,
    ErrorEvent,
    PhaseCompleteEvent,
    StatusChangeEvent,
    WorkflowCompleteEvent,
    new_event_bus,
)
from business_logic.agent_chain.models import (
    COMPLETED,
    FAILED,
    OrchestrationSession,
    StepStatus,
    WorkflowRunStatus,
)
from business_service.agent_chain import (
    AgentWorkflowChain,
    MappingConfigurationError,
    PhaseDefinition,
    apply_outputs,
    copy_state,
    final_outputs,
    merge_inputs,
    missing_required_inputs,
    resolve_inputs,
)
from foundational_service.contracts.payloads import normalize_variables
from foundational_service.contracts.variables import ChainVariable, VariableTypeError, is_empty_value
from foundational_service.contracts.workflow_exec import (
    StepStatusCallback,
    StepStatusUpdate,
    Workflow,
    WorkflowExecutionAdapter,
    WorkflowJob,
)
from foundational_service.policy.orchestration import OrchestrationConfig
from foundational_service.telemetry.event_bus import ChainEventBus, EventListener
from project_utility.clock import utc_now
from project_utility.context import ContextBridge
from project_utility.telemetry import emit as telemetry_emit
from project_utility.tracing import trace_span

__all__ = [
    "AgentChainOrchestrator",
    "ConfigLike",
    "InitialInputs",
    "phase_progress",
    "session_progress",
]

log = logging.getLogger("business_logic.agent_chain.orchestrator")

InitialInputs = Union[Mapping[str, Any], Iterable[Union[ChainVariable, Mapping[str, Any]]]]
ConfigLike = Union[OrchestrationConfig, Mapping[str, Any], None]


def phase_progress(step_index: int, step_progress: float, step_count: int) -> int:
    """Equal 1/N share per step; `step_progress` (0..100) fills the current step's share."""

    if step_count <= 0:
        return 0
    index = min(max(step_index, 0), step_count - 1)
    fraction = min(max(step_progress, 0.0), 100.0)
    value = round(index * 100 / step_count + fraction / step_count)
    return min(max(value, 0), 100)


def session_progress(completed_phases: int, current_phase_progress: int, total_phases: int) -> int:
    if total_phases <= 0:
        return 0
    value = round((completed_phases * 100 + current_phase_progress) / total_phases)
    return min(max(value, 0), 100)


class AgentChainOrchestrator:
    def __init__(
        self,
        adapter: WorkflowExecutionAdapter,
        *,
        bus: Optional[ChainEventBus] = None,
        config: ConfigLike = None,
        on_step_status: Optional[StepStatusCallback] = None,
        session_id: Optional[str] = None,
    ) -> None:
        self._adapter = adapter
        self._bus = bus if bus is not None else new_event_bus()
        self._config = OrchestrationConfig.coerce(config)
        self._step_listeners: List[StepStatusCallback] = [on_step_status] if on_step_status else []
        self._session_id = session_id or str(uuid4())
        self._session: Optional[OrchestrationSession] = None
        self._chain: Optional[AgentWorkflowChain] = None
        self._state: List[ChainVariable] = []
        self._input_error: Optional[str] = None
        self._active_job_id: Optional[str] = None
        self._run_started = False

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def session(self) -> Optional[OrchestrationSession]:
        return self._session

    # ------------------------------------------------------------------ subscriptions
    def on_status_change(self, listener: EventListener) -> None:
        self._bus.subscribe(ChainEventType.STATUS_CHANGE, listener)

    def off_status_change(self, listener: EventListener) -> None:
        self._bus.unsubscribe(ChainEventType.STATUS_CHANGE, listener)

    def on_phase_complete(self, listener: EventListener) -> None:
        self._bus.subscribe(ChainEventType.PHASE_COMPLETE, listener)

    def off_phase_complete(self, listener: EventListener) -> None:
        self._bus.unsubscribe(ChainEventType.PHASE_COMPLETE, listener)

    def on_workflow_complete(self, listener: EventListener) -> None:
        self._bus.subscribe(ChainEventType.WORKFLOW_COMPLETE, listener)

    def off_workflow_complete(self, listener: EventListener) -> None:
        self._bus.unsubscribe(ChainEventType.WORKFLOW_COMPLETE, listener)

    def on_error(self, listener: EventListener) -> None:
        self._bus.subscribe(ChainEventType.ERROR, listener)

    def off_error(self, listener: EventListener) -> None:
        self._bus.unsubscribe(ChainEventType.ERROR, listener)

    def add_step_listener(self, listener: StepStatusCallback) -> None:
        if listener not in self._step_listeners:
            self._step_listeners.append(listener)

    def remove_step_listener(self, listener: StepStatusCallback) -> None:
        if listener in self._step_listeners:
            self._step_listeners.remove(listener)

    # ------------------------------------------------------------------ lifecycle
    async def execute_chain(
        self,
        initial_inputs: InitialInputs,
        chain: AgentWorkflowChain,
        config: ConfigLike = None,
    ) -> List[ChainVariable]:
        self.start(initial_inputs, chain, config)
        return await self.run()

    def start(
        self,
        initial_inputs: InitialInputs,
        chain: AgentWorkflowChain,
        config: ConfigLike = None,
    ) -> OrchestrationSession:
        if self._session is not None:
            raise RuntimeError(f"session '{self._session_id}' already started")
        _validate_chain(chain)
        if config is not None:
            self._config = OrchestrationConfig.coerce(config)

        state = copy_state(chain.state)
        try:
            values = initial_inputs if isinstance(initial_inputs, Mapping) else normalize_variables(initial_inputs)
            merge_inputs(state, values)
        except VariableTypeError as exc:
            self._input_error = str(exc)

        self._chain = chain
        self._state = state
        self._session = OrchestrationSession(
            session_id=self._session_id,
            chain_id=chain.id,
            current_phase=chain.phases[0].id,
            start_time=utc_now(),
            total_phases=len(chain.phases),
        )
        log.info(
            "agent_chain.session.started",
            extra={"session_id": self._session_id, "chain_id": chain.id, "phase_count": len(chain.phases)},
        )
        telemetry_emit(
            "agent_chain.session.started",
            session_id=self._session_id,
            payload={"chain_id": chain.id, "phases": chain.phase_ids()},
        )
        self._publish_status()
        return self._session.snapshot()

    async def run(self) -> List[ChainVariable]:
        session = self._require_session()
        if self._run_started:
            raise RuntimeError(f"session '{self._session_id}' is already running")
        self._run_started = True
        chain = self._chain
        assert chain is not None
        token = ContextBridge.bind_session(self._session_id)
        try:
            if session.is_terminal:
                raise self._terminal_error(None)
            if self._input_error is not None:
                raise self._fail(self._input_error, "input_validation")
            missing = missing_required_inputs(self._state)
            if missing:
                raise self._fail(f"Missing required inputs: {', '.join(missing)}", "input_validation")

            for index, phase in enumerate(chain.phases):
                await self._run_phase(index, phase)

            self._complete()
            return copy_state(self._state)
        finally:
            ContextBridge.reset(token)

    def get_status(self) -> OrchestrationSession:
        return self._require_session().snapshot()

    def chain_state(self) -> List[ChainVariable]:
        return copy_state(self._state)

    async def cancel(self) -> bool:
        """Fail the session with a cancellation error; `False` when it had already finished."""

        session = self._session
        if session is None or session.is_terminal:
            return False
        # Session is terminal before the adapter await; the phase loop re-checks after each await.
        job_id = self._active_job_id
        self._fail(CANCELLED_MESSAGE, "cancelled", session.current_phase)
        if job_id is not None:
            try:
                accepted = await self._adapter.cancel_job(job_id)
            except Exception:
                log.exception("agent_chain.cancel_job_failed", extra={"session_id": self._session_id, "job_id": job_id})
                accepted = False
            log.info(
                "agent_chain.cancel_requested",
                extra={"session_id": self._session_id, "job_id": job_id, "accepted": accepted},
            )
        return True

    # ------------------------------------------------------------------ phases
    async def _run_phase(self, index: int, phase: PhaseDefinition) -> None:
        session = self._require_session()
        session.current_phase = phase.id
        session.current_workflow_status = WorkflowRunStatus(phase_id=phase.id, state="running")
        telemetry_emit(
            "agent_chain.phase.started",
            session_id=self._session_id,
            payload={"phase_id": phase.id, "phase_index": index, "label": phase.display_name},
        )
        if index > 0:
            self._publish_status()

        async with trace_span("agent_chain.phase", session_id=self._session_id, phase_id=phase.id) as span:
            try:
                workflow = await phase.workflow_factory()
            except Exception as exc:
                if session.is_terminal:
                    raise self._terminal_error(phase.id) from exc
                raise self._fail(
                    f"Failed to load workflow for phase {phase.id}: {exc}", "phase_execution", phase.id
                ) from exc
            if session.is_terminal:
                raise self._terminal_error(phase.id)

            self._apply_overrides(workflow)
            try:
                _check_mappings(phase, workflow)
                inputs = self._build_inputs(phase, workflow)
            except (MappingConfigurationError, VariableTypeError) as exc:
                raise self._fail(str(exc), "mapping", phase.id) from exc
            missing = [
                variable.name
                for variable in workflow.inputs()
                if variable.required and is_empty_value(inputs.get(variable.name))
            ]
            if missing:
                raise self._fail(
                    f"Required workflow inputs empty in phase {phase.id}: {', '.join(missing)}",
                    "phase_execution",
                    phase.id,
                )

            job = WorkflowJob(workflow=workflow, inputs=inputs, job_id=f"{self._session_id}:{phase.id}")
            session.current_workflow_status = WorkflowRunStatus(
                phase_id=phase.id,
                job_id=job.job_id,
                workflow_id=workflow.workflow_id,
                workflow_name=workflow.name,
                state="running",
                steps=[StepStatus(step_id=step.step_id, step_index=i) for i, step in enumerate(workflow.steps)],
            )
            self._active_job_id = job.job_id
            try:
                result = await self._adapter.run_job(job, self._step_callback(job.job_id, len(workflow.steps)))
            except Exception as exc:
                if session.is_terminal:
                    raise self._terminal_error(phase.id) from exc
                log.exception(
                    "agent_chain.adapter_failed",
                    extra={"session_id": self._session_id, "phase_id": phase.id, "job_id": job.job_id},
                )
                raise self._fail(
                    str(exc) or f"Unknown error in phase {phase.id}", "phase_execution", phase.id
                ) from exc
            finally:
                self._active_job_id = None

            if session.is_terminal:
                raise self._terminal_error(phase.id)
            if not result.success or result.outputs is None:
                raise self._fail(result.error or f"Unknown error in phase {phase.id}", "phase_execution", phase.id)

            try:
                mapped = apply_outputs(self._state, result.outputs, phase.output_mappings)
            except VariableTypeError as exc:
                raise self._fail(str(exc), "mapping", phase.id) from exc
            span.set_attribute("outcome", "completed")

        session.results[phase.id] = dict(result.outputs)
        session.completed_phases += 1
        session.progress = max(
            session.progress,
            session_progress(session.completed_phases, 0, session.total_phases),
        )
        status = session.current_workflow_status
        if status is not None:
            status.state = "completed"
            status.progress = 100
        log.info(
            "agent_chain.phase.completed",
            extra={"session_id": self._session_id, "phase_id": phase.id, "progress": session.progress},
        )
        telemetry_emit(
            "agent_chain.phase.completed",
            session_id=self._session_id,
            payload={
                "phase_id": phase.id,
                "label": phase.display_name,
                "outputs": sorted(mapped),
                "progress": session.progress,
            },
        )
        self._bus.publish(PhaseCompleteEvent(session_id=self._session_id, phase_id=phase.id, outputs=mapped))
        self._publish_status()

    def _apply_overrides(self, workflow: Workflow) -> None:
        iterations = self._config.max_iterations_per_phase.get(workflow.workflow_type)
        if iterations is not None:
            workflow.max_iterations = iterations
        threshold = self._config.confidence_thresholds.get(workflow.workflow_type)
        if threshold is not None:
            workflow.confidence_threshold = threshold

    def _build_inputs(self, phase: PhaseDefinition, workflow: Workflow) -> Dict[str, Any]:
        resolved = resolve_inputs(self._state, phase.input_mappings)
        inputs: Dict[str, Any] = {}
        for variable in workflow.inputs():
            value = resolved.get(variable.name)
            variable.check(value)
            inputs[variable.name] = value
        return inputs

    def _step_callback(self, job_id: str, step_count: int) -> StepStatusCallback:
        def _on_step_status(update: StepStatusUpdate) -> None:
            session = self._session
            if session is None or session.is_terminal or self._active_job_id != job_id:
                return
            status = session.current_workflow_status
            if status is None:
                return
            current = phase_progress(update.step_index, update.progress, step_count)
            steps = list(status.steps)
            entry = StepStatus(
                step_id=update.step_id,
                step_index=update.step_index,
                status=update.status,
                progress=update.progress,
                result=update.result,
                message=update.message,
            )
            # Indices outside the declared steps still count toward progress (clamped) but get no entry.
            if 0 <= update.step_index < len(steps):
                steps[update.step_index] = entry
            session.current_workflow_status = WorkflowRunStatus(
                phase_id=status.phase_id,
                job_id=status.job_id,
                workflow_id=status.workflow_id,
                workflow_name=status.workflow_name,
                state="running",
                progress=current,
                current_step_id=update.step_id,
                steps=steps,
            )
            session.progress = max(
                session.progress,
                session_progress(session.completed_phases, current, session.total_phases),
            )
            for listener in list(self._step_listeners):
                try:
                    listener(update)
                except Exception:
                    log.exception("step status listener failed", extra={"session_id": self._session_id, "job_id": job_id})
            self._publish_status()

        return _on_step_status

    # ------------------------------------------------------------------ terminal transitions
    def _complete(self) -> None:
        session = self._require_session()
        session.current_phase = COMPLETED
        session.progress = 100
        session.end_time = utc_now()
        log.info("agent_chain.session.completed", extra={"session_id": self._session_id, "chain_id": session.chain_id})
        outputs = final_outputs(self._state)
        telemetry_emit(
            "agent_chain.session.completed",
            session_id=self._session_id,
            payload={"chain_id": session.chain_id, "final_outputs": sorted(outputs)},
        )
        self._publish_status()
        self._bus.publish(
            WorkflowCompleteEvent(
                session_id=self._session_id,
                final_state=copy_state(self._state),
                final_outputs=outputs,
            )
        )

    def _fail(self, message: str, reason: FailureReason, phase_id: Optional[str] = None) -> ChainExecutionError:
        """Move the session to `failed` and publish; returns the error for the caller to raise."""

        session = self._require_session()
        if session.is_terminal:
            return self._terminal_error(phase_id)
        session.current_phase = FAILED
        session.error = message
        session.failure_reason = reason
        session.end_time = utc_now()
        if session.current_workflow_status is not None:
            session.current_workflow_status.state = "failed"
        log.warning(
            "agent_chain.session.failed",
            extra={"session_id": self._session_id, "phase_id": phase_id, "reason": reason, "error": message},
        )
        telemetry_emit(
            "agent_chain.session.failed",
            level="warning",
            session_id=self._session_id,
            payload={"phase_id": phase_id, "reason": reason, "error": message},
            sensitive=["error"],
        )
        self._publish_status()
        self._bus.publish(ErrorEvent(session_id=self._session_id, error=message, reason=reason, phase_id=phase_id))
        if reason == "cancelled":
            return ChainCancelledError(session_id=self._session_id, phase_id=phase_id)
        return ChainExecutionError(message, session_id=self._session_id, reason=reason, phase_id=phase_id)

    def _terminal_error(self, phase_id: Optional[str]) -> ChainExecutionError:
        session = self._require_session()
        if session.failure_reason == "cancelled":
            return ChainCancelledError(session_id=self._session_id, phase_id=phase_id)
        return ChainExecutionError(
            session.error or "session already finished",
            session_id=self._session_id,
            reason=session.failure_reason or "phase_execution",
            phase_id=phase_id,
        )

    def _publish_status(self) -> None:
        session = self._require_session()
        self._bus.publish(StatusChangeEvent(session_id=self._session_id, status=session.snapshot()))

    def _require_session(self) -> OrchestrationSession:
        if self._session is None:
            raise RuntimeError("orchestrator has not started a session")
        return self._session


def _validate_chain(chain: AgentWorkflowChain) -> None:
    if not chain.phases:
        raise ChainDefinitionError(f"chain '{chain.id}' declares no phases")
    seen: set[str] = set()
    for phase in chain.phases:
        if phase.id in seen:
            raise ChainDefinitionError(f"chain '{chain.id}' declares phase '{phase.id}' more than once")
        seen.add(phase.id)


def _check_mappings(phase: PhaseDefinition, workflow: Workflow) -> None:
    for direction, mappings in (("input", phase.input_mappings), ("output", phase.output_mappings)):
        for workflow_name in mappings:
            if workflow.variable(workflow_name) is None:
                raise MappingConfigurationError(
                    f"phase '{phase.id}' maps {direction} '{workflow_name}' which workflow "
                    f"'{workflow.name}' does not declare"
                )

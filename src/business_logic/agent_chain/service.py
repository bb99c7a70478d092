from __future__ import annotations

"""Multi-session facade over the orchestrator.

The service owns one event bus shared by every session it starts, so a listener subscribed here
sees all sessions; events carry `session_id` for filtering. Sessions are looked up through the
registry and evicted a grace period after they finish.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from business_logic.agent_chain.errors import ChainExecutionError
from business_logic.agent_chain.events import ChainEventType, new_event_bus
from business_logic.agent_chain.models import OrchestrationSession
from business_logic.agent_chain.orchestrator import AgentChainOrchestrator, ConfigLike, InitialInputs
from business_logic.agent_chain.registry import SessionRegistry
from business_service.agent_chain import AgentWorkflowChain
from foundational_service.contracts.variables import ChainVariable
from foundational_service.contracts.workflow_exec import StepStatusCallback, WorkflowExecutionAdapter
from foundational_service.policy.orchestration import OrchestrationConfig, load_orchestration_policy
from foundational_service.telemetry.event_bus import ChainEventBus, EventListener

__all__ = ["AgentChainService", "ChainRunHandle"]

log = logging.getLogger("business_logic.agent_chain.service")


@dataclass(slots=True)
class ChainRunHandle:
    session_id: str
    task: "asyncio.Task[List[ChainVariable]]"

    def done(self) -> bool:
        return self.task.done()

    async def wait(self) -> List[ChainVariable]:
        return await self.task


def _collect_outcome(task: "asyncio.Task[List[ChainVariable]]") -> None:
    """Retrieve the run outcome; chain failures already reached listeners as error events."""

    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None and not isinstance(exc, ChainExecutionError):
        log.error("agent_chain.run_crashed", exc_info=exc, extra={"task": task.get_name()})


class AgentChainService:
    def __init__(
        self,
        adapter: WorkflowExecutionAdapter,
        *,
        registry: Optional[SessionRegistry] = None,
        bus: Optional[ChainEventBus] = None,
        policy: Optional[Mapping[str, Any]] = None,
        config: ConfigLike = None,
    ) -> None:
        policy = policy if policy is not None else load_orchestration_policy()
        self._adapter = adapter
        self._bus = bus if bus is not None else new_event_bus()
        self._registry = registry or SessionRegistry(
            grace_period_seconds=float(policy["registry"]["session_grace_period_seconds"])
        )
        self._config = OrchestrationConfig.coerce(config) if config is not None else OrchestrationConfig.from_policy(policy)

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    # ------------------------------------------------------------------ execution
    def start_chain(
        self,
        initial_inputs: InitialInputs,
        chain: AgentWorkflowChain,
        config: ConfigLike = None,
        *,
        on_step_status: Optional[StepStatusCallback] = None,
    ) -> ChainRunHandle:
        """Start a session on the running loop and return without waiting for it to finish."""

        loop = asyncio.get_running_loop()
        orchestrator = AgentChainOrchestrator(
            self._adapter,
            bus=self._bus,
            config=config if config is not None else self._config,
            on_step_status=on_step_status,
        )
        self._registry.register(orchestrator)
        try:
            orchestrator.start(initial_inputs, chain)
        except Exception:
            self._registry.evict(orchestrator.session_id)
            raise
        task = loop.create_task(self._run(orchestrator), name=f"agent-chain:{orchestrator.session_id}")
        task.add_done_callback(_collect_outcome)
        return ChainRunHandle(session_id=orchestrator.session_id, task=task)

    async def execute_chain(
        self,
        initial_inputs: InitialInputs,
        chain: AgentWorkflowChain,
        config: ConfigLike = None,
        *,
        on_step_status: Optional[StepStatusCallback] = None,
    ) -> List[ChainVariable]:
        handle = self.start_chain(initial_inputs, chain, config, on_step_status=on_step_status)
        return await handle.wait()

    async def _run(self, orchestrator: AgentChainOrchestrator) -> List[ChainVariable]:
        try:
            return await orchestrator.run()
        finally:
            self._registry.release(orchestrator.session_id)

    # ------------------------------------------------------------------ queries and control
    def get_status(self, session_id: str) -> OrchestrationSession:
        return self._registry.get(session_id).get_status()

    async def cancel(self, session_id: str) -> bool:
        orchestrator = self._registry.get(session_id)
        cancelled = await orchestrator.cancel()
        log.info("agent_chain.cancel", extra={"session_id": session_id, "accepted": cancelled})
        return cancelled

    def on_step_status(self, session_id: str, listener: StepStatusCallback) -> None:
        self._registry.get(session_id).add_step_listener(listener)

    def off_step_status(self, session_id: str, listener: StepStatusCallback) -> None:
        self._registry.get(session_id).remove_step_listener(listener)

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

    def close(self) -> None:
        self._registry.close()

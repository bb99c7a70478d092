"""Neutral contracts and shared services the agent chain layers build on."""

from __future__ import annotations

from foundational_service.contracts import ChainVariable, JobResult, VariableSchema, Workflow, WorkflowExecutionAdapter
from foundational_service.integrations import SequentialWorkflowEngine
from foundational_service.policy import OrchestrationConfig, load_orchestration_policy
from foundational_service.telemetry import ChainEventBus

__all__ = [
    "ChainEventBus",
    "ChainVariable",
    "JobResult",
    "OrchestrationConfig",
    "SequentialWorkflowEngine",
    "VariableSchema",
    "Workflow",
    "WorkflowExecutionAdapter",
    "load_orchestration_policy",
]

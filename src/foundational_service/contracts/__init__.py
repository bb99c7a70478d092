from __future__ import annotations

from foundational_service.contracts.payloads import ChainVariablePayload, VariableSchemaPayload, normalize_variables
from foundational_service.contracts.variables import (
    ChainVariable,
    VariableSchema,
    VariableTypeError,
    infer_schema,
    is_empty_value,
)
from foundational_service.contracts.workflow_exec import (
    AgentWorkflowType,
    JobResult,
    StepStatusCallback,
    StepStatusUpdate,
    Workflow,
    WorkflowExecutionAdapter,
    WorkflowFactory,
    WorkflowJob,
    WorkflowStep,
    static_workflow,
)

__all__ = [
    "AgentWorkflowType",
    "ChainVariable",
    "ChainVariablePayload",
    "JobResult",
    "StepStatusCallback",
    "StepStatusUpdate",
    "VariableSchema",
    "VariableSchemaPayload",
    "VariableTypeError",
    "Workflow",
    "WorkflowExecutionAdapter",
    "WorkflowFactory",
    "WorkflowJob",
    "WorkflowStep",
    "infer_schema",
    "is_empty_value",
    "normalize_variables",
    "static_workflow",
]

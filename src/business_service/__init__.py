from __future__ import annotations

"""Business Service layer entrypoints."""

from business_service.agent_chain import (
    AgentWorkflowChain,
    MappingConfigurationError,
    PhaseDefinition,
    apply_outputs,
    build_default_chain,
    merge_inputs,
)

__all__ = [
    "AgentWorkflowChain",
    "MappingConfigurationError",
    "PhaseDefinition",
    "apply_outputs",
    "build_default_chain",
    "merge_inputs",
]

from __future__ import annotations

from .definitions import (
    DEFAULT_CHAIN_ID,
    build_default_chain,
    create_answer_generation_workflow,
    create_knowledge_base_workflow,
    create_question_development_workflow,
)
from .models import AgentWorkflowChain, PhaseDefinition
from .variable_store import (
    MappingConfigurationError,
    apply_outputs,
    copy_state,
    final_outputs,
    find_variable,
    identity_mapping,
    merge_inputs,
    missing_required_inputs,
    resolve_inputs,
    variables_to_record,
)

__all__ = [
    "AgentWorkflowChain",
    "DEFAULT_CHAIN_ID",
    "MappingConfigurationError",
    "PhaseDefinition",
    "apply_outputs",
    "build_default_chain",
    "copy_state",
    "create_answer_generation_workflow",
    "create_knowledge_base_workflow",
    "create_question_development_workflow",
    "final_outputs",
    "find_variable",
    "identity_mapping",
    "merge_inputs",
    "missing_required_inputs",
    "resolve_inputs",
    "variables_to_record",
]

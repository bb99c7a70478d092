from __future__ import annotations

"""Agent chain domain models."""

from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Sequence

from foundational_service.contracts.variables import ChainVariable
from foundational_service.contracts.workflow_exec import WorkflowFactory

__all__ = [
    "AgentWorkflowChain",
    "PhaseDefinition",
]


@dataclass(slots=True)
class PhaseDefinition:
    """One stage of a chain.

    `input_mappings` maps workflow-local input name -> chain variable name supplying it.
    `output_mappings` maps workflow-local output name -> chain variable name receiving it.
    """

    id: str
    workflow_factory: WorkflowFactory
    label: str = ""
    description: str = ""
    input_mappings: Mapping[str, str] = field(default_factory=dict)
    output_mappings: Mapping[str, str] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.label or self.id


@dataclass(slots=True)
class AgentWorkflowChain:
    """Reusable chain template; sessions copy `state` and never write back into it."""

    id: str
    name: str
    phases: Sequence[PhaseDefinition]
    state: List[ChainVariable] = field(default_factory=list)
    description: str = ""

    def phase(self, phase_id: str) -> Optional[PhaseDefinition]:
        for phase in self.phases:
            if phase.id == phase_id:
                return phase
        return None

    def phase_ids(self) -> List[str]:
        return [phase.id for phase in self.phases]

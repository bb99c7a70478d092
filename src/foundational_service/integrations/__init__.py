from __future__ import annotations

from foundational_service.integrations.workflow_engine import SequentialWorkflowEngine, StepHandler

__all__ = ["SequentialWorkflowEngine", "StepHandler"]

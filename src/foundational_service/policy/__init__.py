from __future__ import annotations

from foundational_service.policy.orchestration import (
    DEFAULT_ORCHESTRATION_POLICY,
    OrchestrationConfig,
    OrchestrationPolicyError,
    load_orchestration_policy,
)

__all__ = [
    "DEFAULT_ORCHESTRATION_POLICY",
    "OrchestrationConfig",
    "OrchestrationPolicyError",
    "load_orchestration_policy",
]

"""Orchestration policy loading utilities."""

from __future__ import annotations

import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from project_utility.config.paths import get_config_root

__all__ = [
    "DEFAULT_ORCHESTRATION_POLICY",
    "OrchestrationConfig",
    "OrchestrationPolicyError",
    "load_orchestration_policy",
]

DEFAULT_ORCHESTRATION_POLICY: Dict[str, Any] = {
    "registry": {
        "session_grace_period_seconds": 5.0,
    },
    "overrides": {},
}


class OrchestrationPolicyError(RuntimeError):
    """Raised when the orchestration policy file cannot be loaded or parsed."""


class OrchestrationConfig(BaseModel):
    """Per-workflow-type overrides applied to each phase's resolved workflow."""

    max_iterations_per_phase: Dict[str, int] = Field(default_factory=dict, alias="maxIterationsPerPhase")
    confidence_thresholds: Dict[str, float] = Field(default_factory=dict, alias="confidenceThresholds")

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    @field_validator("max_iterations_per_phase")
    @classmethod
    def _positive_iterations(cls, value: Dict[str, int]) -> Dict[str, int]:
        for workflow_type, iterations in value.items():
            if iterations < 1:
                raise ValueError(f"max iterations for {workflow_type} must be >= 1")
        return value

    @field_validator("confidence_thresholds")
    @classmethod
    def _bounded_thresholds(cls, value: Dict[str, float]) -> Dict[str, float]:
        for workflow_type, threshold in value.items():
            if not 0.0 <= threshold <= 1.0:
                raise ValueError(f"confidence threshold for {workflow_type} must be within 0..1")
        return value

    @classmethod
    def coerce(cls, config: "OrchestrationConfig | Mapping[str, Any] | None") -> "OrchestrationConfig":
        if config is None:
            return cls()
        if isinstance(config, OrchestrationConfig):
            return config
        try:
            return cls.model_validate(dict(config))
        except ValidationError as exc:
            raise OrchestrationPolicyError(f"orchestration_config_invalid: {exc}") from exc

    @classmethod
    def from_policy(cls, policy: Mapping[str, Any]) -> "OrchestrationConfig":
        return cls.coerce(policy.get("overrides") or {})


def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _resolve_policy_path(policy_path: Optional[Path | str]) -> Optional[Path]:
    if policy_path is not None:
        return Path(policy_path)
    override = os.getenv("AGENT_CHAIN_POLICY_PATH")
    if override:
        return Path(override).expanduser()
    default_path = get_config_root() / "orchestration.yaml"
    return default_path if default_path.exists() else None


def load_orchestration_policy(policy_path: Optional[Path | str] = None) -> Dict[str, Any]:
    """Load the orchestration policy, merging YAML overrides onto the defaults."""

    path = _resolve_policy_path(policy_path)
    if path is None:
        return deepcopy(DEFAULT_ORCHESTRATION_POLICY)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise OrchestrationPolicyError(str(exc)) from exc
    try:
        loaded = yaml.safe_load(raw) or {}
    except yaml.YAMLError as exc:
        raise OrchestrationPolicyError(f"orchestration_policy_invalid_yaml: {exc}") from exc
    if not isinstance(loaded, Mapping):
        raise OrchestrationPolicyError("orchestration_policy_invalid: top-level mapping required")
    policy = _deep_merge(deepcopy(DEFAULT_ORCHESTRATION_POLICY), loaded)
    grace = policy["registry"].get("session_grace_period_seconds")
    if not isinstance(grace, (int, float)) or isinstance(grace, bool) or grace < 0:
        raise OrchestrationPolicyError("orchestration_policy_invalid: session_grace_period_seconds must be >= 0")
    return policy

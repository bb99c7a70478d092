"""
Filesystem locations used by the agent chain runtime.

`AGENT_CHAIN_LOG_ROOT` and `AGENT_CHAIN_CONFIG_ROOT` override the defaults, which live under the
repository root (the first ancestor holding both `src/` and `pyproject.toml`).
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path


def _env_path(variable: str) -> Path | None:
    value = os.getenv(variable)
    return Path(value).expanduser().resolve() if value else None


@lru_cache(maxsize=1)
def get_repo_root() -> Path:
    here = Path(__file__).resolve()
    for candidate in here.parents:
        if (candidate / "src").is_dir() and (candidate / "pyproject.toml").is_file():
            return candidate
    # src/project_utility/config/paths.py -> repository root
    return here.parents[3]


def get_log_root() -> Path:
    return _env_path("AGENT_CHAIN_LOG_ROOT") or get_repo_root() / "var" / "logs"


def get_config_root() -> Path:
    return _env_path("AGENT_CHAIN_CONFIG_ROOT") or get_repo_root() / "config"


__all__ = ["get_config_root", "get_log_root", "get_repo_root"]

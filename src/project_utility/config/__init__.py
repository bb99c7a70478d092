"""Filesystem locations for logs, telemetry and YAML policy files."""

from __future__ import annotations

from .paths import get_config_root, get_log_root, get_repo_root

__all__ = ["get_config_root", "get_log_root", "get_repo_root"]

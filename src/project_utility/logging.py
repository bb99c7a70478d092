"""
Logging setup for the agent chain runtime.

Console output goes through Rich: routine records render as one line with their structured extras
(`phase_id`, `progress`, ...), and repeated warnings collapse into a counter inside a short window.
Two rotating files under the log root split routine records from warnings and errors. Every record
carries the session id bound in `project_utility.context`.
"""

from __future__ import annotations

import logging
import time
import traceback
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from rich.console import Console
from rich.text import Text

from project_utility.config.paths import get_log_root
from project_utility.context import ContextBridge
from project_utility.telemetry import setup_telemetry

INFO_LOG_FILENAME = "agent-chain-info.log"
ERROR_LOG_FILENAME = "agent-chain-error.log"

_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s [%(session_id)s] :: %(message)s"
_EXTRA_KEYS = ("chain_id", "phase_id", "job_id", "step_index", "progress", "reason", "accepted", "error")
_REPEAT_WINDOW_SECONDS = 60.0
_LEVEL_STYLES = {
    logging.DEBUG: "dim",
    logging.INFO: "cyan",
    logging.WARNING: "bold yellow",
    logging.ERROR: "bold red",
    logging.CRITICAL: "bold white on red",
}


class SessionContextFilter(logging.Filter):
    """Copy the session id bound to the current task onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "session_id", None):
            record.session_id = ContextBridge.session_id() or "-"
        return True


class _UpToLevel(logging.Filter):
    def __init__(self, ceiling: int) -> None:
        super().__init__()
        self._ceiling = ceiling

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno <= self._ceiling


def _record_extras(record: logging.LogRecord, keys: Iterable[str]) -> List[Tuple[str, str]]:
    pairs: List[Tuple[str, str]] = []
    for key in keys:
        value = getattr(record, key, None)
        if value is None or value == "":
            continue
        pairs.append((key, str(value)))
    return pairs


class _ChainConsoleHandler(logging.Handler):
    """One Rich line per record; identical warnings within the window are counted, not reprinted."""

    def __init__(self, console: Console, *, repeat_window: float = _REPEAT_WINDOW_SECONDS) -> None:
        super().__init__(level=logging.INFO)
        self._console = console
        self._repeat_window = repeat_window
        self._recent: Dict[str, Tuple[float, int]] = {}

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = record.getMessage()
            if record.levelno >= logging.WARNING:
                repeats = self._track_repeat(f"{record.name}|{message}")
                if repeats is None:
                    return
                if repeats:
                    message = f"{message} (+{repeats} repeated)"
            line = Text()
            line.append(datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3], style="dim")
            line.append(f" {record.levelname:<8}", style=_LEVEL_STYLES.get(record.levelno, "white"))
            session_id = getattr(record, "session_id", "-")
            if session_id and session_id != "-":
                line.append(f" <{session_id}>", style="magenta")
            line.append(f" {record.name}", style="bold")
            line.append(f" {message}")
            extras = _record_extras(record, _EXTRA_KEYS)
            if extras:
                line.append("  " + " ".join(f"{key}={value}" for key, value in extras), style="dim")
            if record.exc_info:
                line.append("\n" + "".join(traceback.format_exception(*record.exc_info)).rstrip(), style="red")
            self._console.print(line)
        except Exception:
            self.handleError(record)

    def _track_repeat(self, key: str) -> Optional[int]:
        now = time.monotonic()
        first_seen, count = self._recent.get(key, (0.0, -1))
        if count >= 0 and now - first_seen < self._repeat_window:
            self._recent[key] = (first_seen, count + 1)
            return None
        self._recent[key] = (now, 0)
        return max(count, 0)


def _rotating_file(path: Path, *, level: int, ceiling: Optional[int] = None) -> logging.Handler:
    handler = RotatingFileHandler(path, maxBytes=2 * 1024 * 1024, backupCount=5, encoding="utf-8")
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, "%Y-%m-%d %H:%M:%S"))
    handler.setLevel(level)
    if ceiling is not None:
        handler.addFilter(_UpToLevel(ceiling))
    return handler


def configure_logging(
    *,
    log_root: Optional[Path] = None,
    level: int = logging.INFO,
    console: bool = True,
    logger_levels: Optional[Dict[str, int]] = None,
) -> Path:
    """
    Install console and file handlers on the root logger and point telemetry at the same root.

    Returns the resolved log directory. `logger_levels` adjusts individual loggers, e.g.
    `{"business_logic.agent_chain": logging.DEBUG}`.
    """

    logging.captureWarnings(True)
    root = (log_root or get_log_root()).resolve()
    root.mkdir(parents=True, exist_ok=True)
    setup_telemetry(log_root=root)

    handlers: List[logging.Handler] = [
        _rotating_file(root / INFO_LOG_FILENAME, level=logging.DEBUG, ceiling=logging.INFO),
        _rotating_file(root / ERROR_LOG_FILENAME, level=logging.WARNING),
    ]
    if console:
        handlers.append(_ChainConsoleHandler(Console(stderr=True)))
    session_filter = SessionContextFilter()
    for handler in handlers:
        handler.addFilter(session_filter)
    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name, logger_level in (logger_levels or {}).items():
        logging.getLogger(name).setLevel(logger_level)
    return root


__all__ = ["ERROR_LOG_FILENAME", "INFO_LOG_FILENAME", "SessionContextFilter", "configure_logging"]

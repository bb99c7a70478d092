from __future__ import annotations

"""Structured telemetry for agent chain sessions.

Events are JSON lines written through a structlog `WriteLogger` into `<log root>/telemetry.jsonl`,
optionally echoed to stderr with Rich, and handed to in-process listeners. Each event carries the
session id bound in `project_utility.context` unless the caller passes one explicitly.
"""

import copy
import logging
import os
import threading
from pathlib import Path
from typing import IO, Any, Callable, Dict, List, Mapping, Optional, Sequence

import structlog
from rich.console import Console
from rich.text import Text

from project_utility.clock import utc_iso
from project_utility.config.paths import get_log_root
from project_utility.context import ContextBridge

__all__ = [
    "TelemetryEmitter",
    "TelemetryListener",
    "emit",
    "get_telemetry",
    "register_listener",
    "setup_telemetry",
    "unregister_listener",
]

TelemetryListener = Callable[[Mapping[str, Any]], None]

_LEVELS = {"debug": 10, "info": 20, "warning": 30, "error": 40, "critical": 50}
_MASK_LENGTH = 160
_SUMMARY_KEYS = ("phase_id", "reason", "progress", "duration_ms", "outcome")

log = logging.getLogger("project_utility.telemetry")


def _threshold(variable: str, default: str) -> int:
    return _LEVELS.get(os.getenv(variable, default).lower(), _LEVELS[default])


def _mask(payload: Mapping[str, Any], sensitive: Sequence[str]) -> Dict[str, Any]:
    masked = dict(payload)
    for key in sensitive:
        value = masked.get(key)
        if value is None:
            continue
        text = str(value)
        masked[key] = text if len(text) <= _MASK_LENGTH else text[: _MASK_LENGTH - 3] + "..."
    return masked


class _ConsoleEcho:
    _STYLES = {"debug": "dim", "info": "cyan", "warning": "yellow", "error": "bold red", "critical": "bold white on red"}

    def __init__(self) -> None:
        self._console = Console(stderr=True)

    def write(self, event: Mapping[str, Any]) -> None:
        level = event["level"]
        line = Text()
        line.append(f"{level.upper():<8}", style=self._STYLES.get(level, "white"))
        line.append(f" {event['event_type']}", style="bold")
        if event.get("session_id"):
            line.append(f" session={event['session_id']}", style="dim")
        payload = event.get("payload") or {}
        details = [f"{key}={payload[key]}" for key in _SUMMARY_KEYS if payload.get(key) is not None]
        if details:
            line.append(" " + " ".join(details))
        if payload.get("error"):
            line.append(f" error={payload['error']}", style="red")
        self._console.print(line)


class TelemetryEmitter:
    """Fan telemetry events out to the JSONL file, the console echo and registered listeners."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handle: Optional[IO[str]] = None
        self._path: Optional[Path] = None
        self._writer: Any = None
        self._echo = _ConsoleEcho()
        self._listeners: List[TelemetryListener] = []

    def configure(self, *, log_root: Optional[Path] = None) -> Path:
        root = (log_root or get_log_root()).resolve()
        root.mkdir(parents=True, exist_ok=True)
        path = root / "telemetry.jsonl"
        with self._lock:
            if self._handle is not None:
                self._handle.close()
            self._handle = path.open("a", encoding="utf-8")
            self._path = path
            self._writer = structlog.wrap_logger(
                structlog.WriteLogger(self._handle),
                processors=[
                    structlog.processors.EventRenamer("event_type"),
                    structlog.processors.JSONRenderer(ensure_ascii=False, default=str),
                ],
            )
        return path

    @property
    def jsonl_path(self) -> Optional[Path]:
        return self._path

    def emit(
        self,
        event_type: str,
        *,
        level: str = "info",
        payload: Optional[Mapping[str, Any]] = None,
        sensitive: Optional[Sequence[str]] = None,
        **fields: Any,
    ) -> None:
        level = level.lower()
        fields.setdefault("session_id", ContextBridge.session_id() or None)
        event: Dict[str, Any] = {
            "event_type": event_type,
            "level": level,
            "timestamp": utc_iso(),
            **fields,
            "payload": dict(payload or {}),
        }
        rank = _LEVELS.get(level, _LEVELS["info"])
        if rank >= _threshold("TELEMETRY_FILE_LEVEL", "debug"):
            self._write(event)
        if rank >= _threshold("TELEMETRY_CONSOLE_LEVEL", "warning"):
            self._echo.write({**event, "payload": _mask(event["payload"], sensitive or ())})
        self._notify(event)

    def add_listener(self, listener: TelemetryListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_listener(self, listener: TelemetryListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _write(self, event: Mapping[str, Any]) -> None:
        if self._writer is None:
            self.configure()
        fields = {key: value for key, value in event.items() if key != "event_type"}
        with self._lock:
            self._writer.info(event["event_type"], **fields)

    def _notify(self, event: Mapping[str, Any]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(copy.deepcopy(event))
            except Exception:
                log.exception("telemetry listener failed", extra={"event_type": event["event_type"]})


_EMITTER: Optional[TelemetryEmitter] = None
_EMITTER_LOCK = threading.Lock()


def get_telemetry() -> TelemetryEmitter:
    global _EMITTER
    with _EMITTER_LOCK:
        if _EMITTER is None:
            _EMITTER = TelemetryEmitter()
        return _EMITTER


def setup_telemetry(log_root: Optional[Path] = None) -> Path:
    return get_telemetry().configure(log_root=log_root)


def emit(event_type: str, **kwargs: Any) -> None:
    get_telemetry().emit(event_type, **kwargs)


def register_listener(listener: TelemetryListener) -> None:
    get_telemetry().add_listener(listener)


def unregister_listener(listener: TelemetryListener) -> None:
    get_telemetry().remove_listener(listener)

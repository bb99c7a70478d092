from __future__ import annotations

"""Typed event bus that fans out lifecycle events to local subscribers, one channel per event type."""

import logging
from typing import Any, Callable, Dict, List, Protocol

log = logging.getLogger("foundational_service.telemetry.event_bus")


class BusEvent(Protocol):
    @property
    def type(self) -> str:
        ...


EventListener = Callable[[Any], None]


class ChainEventBus:
    """Synchronous fan-out bus.

    Listeners are kept per channel in subscription order and invoked inline by `publish`, so every
    listener sees every event in emission order before `publish` returns. Unsubscribing takes the
    same callable that was subscribed. A failing listener is logged and does not stop delivery to
    the others.
    """

    def __init__(self, channels: tuple[str, ...] = ()) -> None:
        self._channels = frozenset(channels)
        self._listeners: Dict[str, List[EventListener]] = {}

    # ------------------------------------------------------------------ subscription API
    def subscribe(self, channel: str, listener: EventListener) -> None:
        self._check_channel(channel)
        listeners = self._listeners.setdefault(channel, [])
        if listener not in listeners:
            listeners.append(listener)

    def unsubscribe(self, channel: str, listener: EventListener) -> None:
        self._check_channel(channel)
        listeners = self._listeners.get(channel)
        if not listeners or listener not in listeners:
            return
        listeners.remove(listener)
        if not listeners:
            del self._listeners[channel]

    def listener_count(self, channel: str) -> int:
        return len(self._listeners.get(channel, ()))

    # ------------------------------------------------------------------ dispatch
    def publish(self, event: BusEvent) -> None:
        channel = str(event.type)
        self._check_channel(channel)
        for listener in list(self._listeners.get(channel, ())):
            try:
                listener(event)
            except Exception:
                log.exception(
                    "event listener failed",
                    extra={"event_type": channel, "session_id": getattr(event, "session_id", "")},
                )

    def _check_channel(self, channel: str) -> None:
        if self._channels and channel not in self._channels:
            raise ValueError(f"unknown event channel '{channel}'")


__all__ = ["BusEvent", "ChainEventBus", "EventListener"]

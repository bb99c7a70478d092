from __future__ import annotations

from foundational_service.telemetry.event_bus import ChainEventBus, EventListener

__all__ = ["ChainEventBus", "EventListener"]

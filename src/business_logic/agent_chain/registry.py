from __future__ import annotations

"""Session registry: live orchestrators by session id, evicted a grace period after they finish."""

import asyncio
import logging
from typing import Dict, List, Optional

from business_logic.agent_chain.errors import SessionNotFoundError
from business_logic.agent_chain.orchestrator import AgentChainOrchestrator

__all__ = ["DEFAULT_GRACE_PERIOD_SECONDS", "SessionRegistry"]

DEFAULT_GRACE_PERIOD_SECONDS = 5.0

log = logging.getLogger("business_logic.agent_chain.registry")


class SessionRegistry:
    """Finished sessions stay queryable for `grace_period_seconds` so late status reads still resolve."""

    def __init__(self, *, grace_period_seconds: float = DEFAULT_GRACE_PERIOD_SECONDS) -> None:
        if grace_period_seconds < 0:
            raise ValueError("grace_period_seconds must be >= 0")
        self._grace_period = grace_period_seconds
        self._sessions: Dict[str, AgentChainOrchestrator] = {}
        self._evictions: Dict[str, asyncio.TimerHandle] = {}

    @property
    def grace_period_seconds(self) -> float:
        return self._grace_period

    def register(self, orchestrator: AgentChainOrchestrator) -> None:
        session_id = orchestrator.session_id
        if session_id in self._sessions:
            raise ValueError(f"session '{session_id}' is already registered")
        self._sessions[session_id] = orchestrator

    def get(self, session_id: str) -> AgentChainOrchestrator:
        orchestrator = self._sessions.get(session_id)
        if orchestrator is None:
            raise SessionNotFoundError(session_id)
        return orchestrator

    def session_ids(self) -> List[str]:
        return list(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def release(self, session_id: str, *, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Schedule eviction of a finished session after the grace period."""

        if session_id not in self._sessions or session_id in self._evictions:
            return
        if self._grace_period == 0:
            self.evict(session_id)
            return
        target_loop = loop or asyncio.get_running_loop()
        self._evictions[session_id] = target_loop.call_later(self._grace_period, self.evict, session_id)

    def evict(self, session_id: str) -> bool:
        handle = self._evictions.pop(session_id, None)
        if handle is not None:
            handle.cancel()
        removed = self._sessions.pop(session_id, None) is not None
        if removed:
            log.debug("agent_chain.session.evicted", extra={"session_id": session_id})
        return removed

    def close(self) -> None:
        for handle in self._evictions.values():
            handle.cancel()
        self._evictions.clear()
        self._sessions.clear()

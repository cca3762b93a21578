"""
In-memory store for multi-step wager flows (parlay slips, quoted bets).

Nothing here is persisted; a restart drops every open flow. Only the final
confirmation writes to the database.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable


@dataclass
class WagerSession:
    discord_id: int
    flow: str
    data: dict[str, Any] = field(default_factory=dict)
    touched_at: float = 0.0


class WagerSessionStore:
    """
    Sessions keyed by (discord_id, flow), expiring ttl_seconds after their
    last update.
    """

    def __init__(self, ttl_seconds: int = 120, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: dict[tuple[int, str], WagerSession] = {}

    def _expired(self, session: WagerSession, now: float) -> bool:
        return now - session.touched_at > self.ttl_seconds

    def get(self, discord_id: int, flow: str) -> WagerSession | None:
        key = (discord_id, flow)
        session = self._sessions.get(key)
        if session is None:
            return None
        if self._expired(session, self._clock()):
            del self._sessions[key]
            return None
        return session

    def start(self, discord_id: int, flow: str, **data: Any) -> WagerSession:
        """Open a fresh session, replacing any previous one for the same flow."""
        session = WagerSession(discord_id, flow, dict(data), self._clock())
        self._sessions[(discord_id, flow)] = session
        return session

    def get_or_start(self, discord_id: int, flow: str, **data: Any) -> WagerSession:
        return self.get(discord_id, flow) or self.start(discord_id, flow, **data)

    def touch(self, session: WagerSession) -> None:
        session.touched_at = self._clock()

    def pop(self, discord_id: int, flow: str) -> WagerSession | None:
        """Remove and return a live session (None if missing or expired)."""
        session = self.get(discord_id, flow)
        self._sessions.pop((discord_id, flow), None)
        return session

    def sweep(self) -> int:
        """Drop expired sessions. Returns how many were removed."""
        now = self._clock()
        expired = [key for key, s in self._sessions.items() if self._expired(s, now)]
        for key in expired:
            del self._sessions[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)

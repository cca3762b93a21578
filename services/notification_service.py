"""
Collects user-facing notices (title unlocks, settled wagers) for delivery by DM.

Events arrive on whatever thread published them, often a settlement worker
thread. Notices are queued here and drained by the bot's event loop, which
does the actual Discord sends.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass

from domain.models.events import TitleUnlocked, WagerResolved
from domain.models.wager import WagerOutcome
from services.wager_events import WagerEventBus

logger = logging.getLogger("wager_bot.services.notifications")


@dataclass(frozen=True)
class Notice:
    discord_id: int
    message: str


def describe_resolution(event: WagerResolved, discord_id: int) -> str:
    label = {"bet": "Bet", "duel": "Duel", "parlay": "Parlay"}[event.kind.value]
    if event.outcome is WagerOutcome.CANCELLED:
        return f"{label} #{event.wager_id} was cancelled; your {event.amount} points were refunded."
    if discord_id in event.winner_ids:
        return f"{label} #{event.wager_id} won! {event.payout} points credited."
    return f"{label} #{event.wager_id} lost ({event.amount} points)."


class NotificationService:
    def __init__(self, notify_titles: bool = True, notify_settlements: bool = True, max_pending: int = 1000):
        self.notify_titles = notify_titles
        self.notify_settlements = notify_settlements
        self._pending: deque[Notice] = deque(maxlen=max_pending)
        self._lock = threading.Lock()

    def subscribe(self, bus: WagerEventBus) -> None:
        bus.subscribe(TitleUnlocked, self.on_title_unlocked)
        bus.subscribe(WagerResolved, self.on_wager_resolved)

    def _push(self, notice: Notice) -> None:
        with self._lock:
            self._pending.append(notice)

    def on_title_unlocked(self, event: TitleUnlocked) -> None:
        if self.notify_titles:
            self._push(Notice(event.discord_id, f"Nouveau titre débloqué : **{event.title}**"))

    def on_wager_resolved(self, event: WagerResolved) -> None:
        if not self.notify_settlements:
            return
        for discord_id in event.participant_ids:
            self._push(Notice(discord_id, describe_resolution(event, discord_id)))

    def drain(self) -> list[Notice]:
        """Take every queued notice, oldest first."""
        with self._lock:
            notices = list(self._pending)
            self._pending.clear()
        return notices

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

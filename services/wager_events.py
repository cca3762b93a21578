"""
In-process publisher for wager domain events.

The ledger and settlement engine publish after their transaction commits;
titles, the tournament ladder and notifications subscribe. A failing
subscriber is logged and skipped so it can never undo or block a
committed wager.
"""

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger("wager_bot.services.events")

Handler = Callable[[Any], None]


class WagerEventBus:
    def __init__(self):
        self._handlers: dict[type, list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: Handler) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type, handler: Handler) -> None:
        if handler in self._handlers.get(event_type, []):
            self._handlers[event_type].remove(handler)

    def publish(self, event: Any) -> int:
        """
        Deliver an event to every subscriber of its type, in subscription order.

        Returns:
            Number of handlers that raised
        """
        failures = 0
        for handler in list(self._handlers.get(type(event), [])):
            try:
                handler(event)
            except Exception as exc:
                failures += 1
                handler_name = getattr(handler, "__qualname__", repr(handler))
                logger.error(
                    f"Event handler {handler_name} failed for {type(event).__name__}: {exc}",
                    exc_info=True,
                )
        return failures

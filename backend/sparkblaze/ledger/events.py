"""One-way event dispatch between settlement and its downstream sinks."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, List

from ..domain.models import KudoSettled

logger = logging.getLogger(__name__)

Subscriber = Callable[[KudoSettled], Awaitable[None]]


class EventBus:
    """Delivers each event to every subscriber at most once.

    A subscriber that raises is logged and skipped; the publisher never
    sees the exception.
    """

    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    async def publish(self, event: KudoSettled) -> None:
        for subscriber in list(self._subscribers):
            try:
                await subscriber(event)
            except Exception:
                logger.exception(
                    "subscriber %r failed",
                    getattr(subscriber, "__qualname__", subscriber),
                    extra={"kudo_id": event.kudo_id},
                )

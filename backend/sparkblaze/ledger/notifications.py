"""Best-effort notification sinks for settled kudos."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List

import httpx

from ..domain.errors import NotificationNotFound
from ..domain.models import KUDO_RECEIVED, NOTIFICATIONS, KudoSettled, Notification
from ..store import DocumentStore, utcnow

logger = logging.getLogger(__name__)


class NotificationEmitter:
    """Writes in-app notifications for kudo receivers.

    Failures are logged and swallowed; a notification is never worth
    unwinding a settlement for.
    """

    def __init__(
        self, store: DocumentStore, clock: Callable[[], datetime] = utcnow
    ) -> None:
        self.store = store
        self._clock = clock

    async def handle(self, event: KudoSettled) -> None:
        if not event.receiver_credited:
            logger.warning(
                "no notification: receiver %s unknown",
                event.receiver_id,
                extra={"kudo_id": event.kudo_id},
            )
            return
        await self.notify(event.receiver_id, event.sender_name, event.message, event.kudo_id)

    async def notify(
        self, receiver_id: str, sender_name: str, message: str, kudo_ref: str
    ) -> None:
        try:
            await self.store.create(
                NOTIFICATIONS,
                {
                    "user_id": receiver_id,
                    "type": KUDO_RECEIVED,
                    "message": f'You received a kudo from {sender_name}: "{message}"',
                    "read": False,
                    "created_at": self._clock(),
                    "related_id": kudo_ref,
                },
            )
        except Exception:
            logger.exception(
                "failed to create notification for %s",
                receiver_id,
                extra={"kudo_id": kudo_ref},
            )
            return
        logger.info(
            "notification created for %s", receiver_id, extra={"kudo_id": kudo_ref}
        )

    async def list_for(self, user_id: str, unread_only: bool = False) -> List[Notification]:
        where = [("user_id", "==", user_id)]
        if unread_only:
            where.append(("read", "==", False))
        docs = await self.store.query(
            NOTIFICATIONS, where, order_by="created_at", descending=True
        )
        return [Notification.from_document(doc) for doc in docs]

    async def mark_read(self, notification_id: str, user_id: str) -> Notification:
        async def _mark(txn):
            doc = await txn.get(NOTIFICATIONS, notification_id)
            if doc is None or doc.data.get("user_id") != user_id:
                raise NotificationNotFound(notification_id)
            txn.update(NOTIFICATIONS, notification_id, {"read": True})

        await self.store.run_transaction(_mark)
        return Notification.from_document(
            await self.store.get(NOTIFICATIONS, notification_id)
        )


class TeamsWebhookNotifier:
    """Posts a MessageCard to a Microsoft Teams incoming webhook."""

    def __init__(
        self,
        webhook_url: str | None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._transport = transport

    @staticmethod
    def build_card(event: KudoSettled) -> dict:
        receiver_name = event.receiver_name or event.receiver_id
        text = f"**Message**: {event.message or 'No message provided.'}"
        if event.badge:
            text += f"\n\n**Badge**: {event.badge}"
        return {
            "@type": "MessageCard",
            "@context": "http://schema.org/extensions",
            "themeColor": "0076D7",
            "summary": "New Kudos",
            "sections": [
                {
                    "activityTitle": f"👏 {event.sender_name} recognized {receiver_name}!",
                    "text": text,
                }
            ],
        }

    async def handle(self, event: KudoSettled) -> None:
        if not self.webhook_url:
            logger.debug("no Teams webhook configured; skipping")
            return
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                resp = await client.post(self.webhook_url, json=self.build_card(event))
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(
                "error posting kudo to Teams: %s", exc, extra={"kudo_id": event.kudo_id}
            )
            return
        logger.info("kudo posted to Teams", extra={"kudo_id": event.kudo_id})

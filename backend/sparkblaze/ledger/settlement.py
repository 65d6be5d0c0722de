"""Point settlement for admitted kudos."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from ..domain.errors import (
    KudoNotFound,
    SettlementFailed,
    StorageUnavailable,
    TransactionConflict,
)
from ..domain.models import EMPLOYEES, KUDOS, SettlementResult
from ..store import DocumentStore, Transaction, utcnow

logger = logging.getLogger(__name__)

FALLBACK_SENDER_NAME = "Someone"


class Settlement:
    """Credits sender and receiver for one kudo in a single transaction.

    The kudo document is flagged ``settled`` in the same commit as the
    point increments, so re-running settlement for a kudo (for example on
    a redelivered trigger) never credits anyone twice.
    """

    def __init__(
        self,
        store: DocumentStore,
        sender_reward: int = 1,
        receiver_reward: int = 5,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.sender_reward = sender_reward
        self.receiver_reward = receiver_reward
        self._clock = clock

    async def settle(self, kudo_id: str) -> SettlementResult:
        try:
            result = await self.store.run_transaction(
                lambda txn: self._apply(txn, kudo_id)
            )
        except (TransactionConflict, StorageUnavailable) as exc:
            logger.error(
                "settlement failed: %s", exc, extra={"kudo_id": kudo_id}
            )
            raise SettlementFailed(kudo_id) from exc

        if result.already_settled:
            logger.info("kudo already settled", extra={"kudo_id": kudo_id})
        elif not result.receiver_updated:
            logger.warning(
                "receiver not found; no receiver points credited",
                extra={"kudo_id": kudo_id},
            )
        return result

    async def _apply(self, txn: Transaction, kudo_id: str) -> SettlementResult:
        kudo = await txn.get(KUDOS, kudo_id)
        if kudo is None:
            raise KudoNotFound(kudo_id)
        sender_id = kudo.data["sender_id"]
        receiver_id = kudo.data["receiver_id"]
        sender = await txn.get(EMPLOYEES, sender_id)
        receiver = await txn.get(EMPLOYEES, receiver_id)

        sender_name = FALLBACK_SENDER_NAME
        if sender is not None:
            sender_name = sender.data.get("name") or FALLBACK_SENDER_NAME
        receiver_name = receiver.data.get("name") if receiver is not None else None

        if kudo.data.get("settled"):
            return SettlementResult(
                kudo_id=kudo_id,
                sender_name=sender_name,
                receiver_name=receiver_name,
                sender_credited=bool(kudo.data.get("sender_credited")),
                receiver_updated=bool(kudo.data.get("receiver_credited")),
                already_settled=True,
            )

        if sender is not None:
            txn.update(
                EMPLOYEES,
                sender_id,
                {"points": int(sender.data.get("points", 0)) + self.sender_reward},
            )
        if receiver is not None:
            txn.update(
                EMPLOYEES,
                receiver_id,
                {"points": int(receiver.data.get("points", 0)) + self.receiver_reward},
            )
        txn.update(
            KUDOS,
            kudo_id,
            {
                "settled": True,
                "settled_at": self._clock(),
                "sender_credited": sender is not None,
                "receiver_credited": receiver is not None,
            },
        )
        return SettlementResult(
            kudo_id=kudo_id,
            sender_name=sender_name,
            receiver_name=receiver_name,
            sender_credited=sender is not None,
            receiver_updated=receiver is not None,
        )

"""Recognition flow: admit, settle, then notify.

A kudo moves through ``RECEIVED -> QUOTA_CHECKED`` and then either ends
``RETRACTED`` (over quota) or continues ``SETTLING -> SETTLED ->
NOTIFYING -> DONE``. Quota reservation and kudo creation commit
together, so a denied submission never leaves a document behind.
Settlement publishes a :class:`KudoSettled` event; sinks hang off the
event bus and cannot affect the outcome.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, List

from ..domain.errors import (
    KudoNotFound,
    QuotaExceeded,
    SelfRecognition,
    SettlementFailed,
    UnknownEmployee,
)
from ..domain.models import (
    EMPLOYEES,
    KUDOS,
    Employee,
    Kudo,
    KudoSettled,
    QuotaDecision,
    RecognitionOutcome,
    RecognitionState,
    SettlementResult,
)
from ..domain.schemas import EmployeeCreate, KudoCreate
from ..store import DocumentStore, Transaction, utcnow
from .events import EventBus
from .quota import QuotaGuard, as_utc
from .settlement import Settlement

logger = logging.getLogger(__name__)


def _log_state(state: RecognitionState, kudo_id: str | None, **extra) -> None:
    logger.info("kudo %s", state.value, extra={"kudo_id": kudo_id, "state": state.value, **extra})


class EmployeeDirectory:
    """Read access to employee records plus admin creation."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def create(self, payload: EmployeeCreate) -> Employee:
        doc = await self.store.create(
            EMPLOYEES,
            {
                "name": payload.name,
                "department": payload.department,
                "email": payload.email,
                "points": 0,
            },
            doc_id=payload.id,
        )
        logger.info("employee %s created", doc.id)
        return Employee.from_document(doc)

    async def get(self, employee_id: str) -> Employee:
        doc = await self.store.get(EMPLOYEES, employee_id)
        if doc is None:
            raise UnknownEmployee(employee_id)
        return Employee.from_document(doc)


class RecognitionLedger:
    """Runs kudos through quota admission, settlement and notification."""

    def __init__(
        self,
        store: DocumentStore,
        quota: QuotaGuard,
        settlement: Settlement,
        bus: EventBus,
        clock: Callable[[], datetime] = utcnow,
        settle_attempts: int = 3,
        settle_backoff_seconds: float = 0.01,
    ) -> None:
        if settle_attempts < 1:
            raise ValueError("settle_attempts must be >= 1")
        self.store = store
        self.quota = quota
        self.settlement = settlement
        self.bus = bus
        self._clock = clock
        self.settle_attempts = settle_attempts
        self.settle_backoff_seconds = settle_backoff_seconds

    def register_triggers(self) -> None:
        """Process kudo documents written straight to the store."""
        self.store.on_create(KUDOS, self._on_created)

    async def _on_created(self, doc) -> None:
        await self.on_kudo_created(doc.id)

    # ------------------------------------------------------------------
    # Submission path
    # ------------------------------------------------------------------

    async def send_kudo(
        self, sender_id: str, request: KudoCreate, now: datetime | None = None
    ) -> RecognitionOutcome:
        """Admit, settle and announce one kudo from ``sender_id``.

        Raises:
            SelfRecognition: receiver is the sender.
            UnknownEmployee: sender has no employee record.
            QuotaExceeded: the monthly allowance is used up.
            SettlementFailed: points could not be applied after
                ``settle_attempts`` tries. The kudo keeps its quota slot,
                stays out of the feed and is completed by
                ``retry_settlement``; it must not be sent again.
        """
        created_at = as_utc(now or self._clock())
        if request.receiver_id == sender_id:
            raise SelfRecognition(sender_id)
        _log_state(RecognitionState.RECEIVED, None, sender_id=sender_id)

        async def _admit(txn: Transaction):
            decision = await self.quota.check_and_reserve(txn, sender_id, created_at)
            if not decision.allowed:
                return decision, None
            kudo_id = txn.create(
                KUDOS,
                {
                    "sender_id": sender_id,
                    "receiver_id": request.receiver_id,
                    "message": request.message,
                    "badge": request.badge.value if request.badge else None,
                    "created_at": created_at,
                    "likes": 0,
                    "comments": [],
                    "admitted": True,
                    "settled": False,
                },
            )
            return decision, kudo_id

        decision, kudo_id = await self.store.run_transaction(_admit)
        _log_state(
            RecognitionState.QUOTA_CHECKED,
            kudo_id,
            sender_id=sender_id,
        )
        if not decision.sender_known:
            raise UnknownEmployee(sender_id, "sender")
        if not decision.allowed:
            logger.info(
                "monthly limit reached (%d/%d)",
                decision.count,
                decision.limit,
                extra={"sender_id": sender_id},
            )
            raise QuotaExceeded(sender_id, decision.count, decision.limit, decision.resets_at)

        # The reservation counted this kudo; report usage including it.
        decision = QuotaDecision(
            allowed=True,
            sender_known=True,
            count=decision.count + 1,
            limit=decision.limit,
            window_start=decision.window_start,
            resets_at=decision.resets_at,
        )
        return await self._settle_and_publish(kudo_id, decision)

    async def retry_settlement(self, kudo_id: str) -> RecognitionOutcome:
        """Re-run settlement and notification for an admitted kudo."""
        doc = await self.store.get(KUDOS, kudo_id)
        if doc is None:
            raise KudoNotFound(kudo_id)
        if not doc.data.get("admitted"):
            return await self.on_kudo_created(kudo_id)
        return await self._settle_and_publish(kudo_id, None)

    # ------------------------------------------------------------------
    # Trigger path
    # ------------------------------------------------------------------

    async def on_kudo_created(self, kudo_id: str) -> RecognitionOutcome:
        """Authoritative recheck for a kudo created outside ``send_kudo``.

        Over-limit, unknown-sender and self-addressed kudos are deleted in
        the same transaction that checks them. Redelivery of an already
        processed kudo is harmless.
        """
        _log_state(RecognitionState.RECEIVED, kudo_id)

        async def _recheck(txn: Transaction):
            kudo = await txn.get(KUDOS, kudo_id)
            if kudo is None:
                return "missing", None
            if kudo.data.get("admitted"):
                return "admitted", None
            sender_id = kudo.data.get("sender_id")
            if sender_id == kudo.data.get("receiver_id"):
                txn.delete(KUDOS, kudo_id)
                return "retracted", None
            created_at = as_utc(kudo.data.get("created_at") or kudo.create_time)
            decision = await self.quota.check_and_reserve(txn, sender_id, created_at)
            if not decision.allowed:
                txn.delete(KUDOS, kudo_id)
                return "retracted", decision
            txn.update(KUDOS, kudo_id, {"admitted": True, "created_at": created_at})
            return "admitted_now", decision

        verdict, decision = await self.store.run_transaction(_recheck)
        if verdict == "missing":
            logger.warning("kudo vanished before processing", extra={"kudo_id": kudo_id})
            return RecognitionOutcome(RecognitionState.RETRACTED, kudo_id)
        if verdict == "admitted":
            # Admitted by send_kudo, which settles it itself; or a redelivery.
            doc = await self.store.get(KUDOS, kudo_id)
            if doc is not None and doc.data.get("settled"):
                return RecognitionOutcome(RecognitionState.DONE, kudo_id)
            return RecognitionOutcome(RecognitionState.QUOTA_CHECKED, kudo_id)

        _log_state(RecognitionState.QUOTA_CHECKED, kudo_id)
        if verdict == "retracted":
            if decision is None:
                reason = "self-recognition"
            elif not decision.sender_known:
                reason = "unknown sender"
            else:
                reason = f"monthly limit reached ({decision.count}/{decision.limit})"
            logger.warning(
                "kudo retracted: %s",
                reason,
                extra={"kudo_id": kudo_id, "state": RecognitionState.RETRACTED.value},
            )
            return RecognitionOutcome(RecognitionState.RETRACTED, kudo_id, quota=decision)
        return await self._settle_and_publish(kudo_id, decision)

    # ------------------------------------------------------------------

    async def _settle_and_publish(
        self, kudo_id: str, decision: QuotaDecision | None
    ) -> RecognitionOutcome:
        _log_state(RecognitionState.SETTLING, kudo_id)
        result = await self._settle(kudo_id)
        _log_state(RecognitionState.SETTLED, kudo_id)

        if result.already_settled:
            return RecognitionOutcome(RecognitionState.DONE, kudo_id, decision, result)

        kudo = Kudo.from_document(await self.store.get(KUDOS, kudo_id))
        _log_state(RecognitionState.NOTIFYING, kudo_id)
        await self.bus.publish(self._event(kudo, result))
        _log_state(RecognitionState.DONE, kudo_id)
        return RecognitionOutcome(RecognitionState.DONE, kudo_id, decision, result)

    async def _settle(self, kudo_id: str) -> SettlementResult:
        attempt = 1
        while True:
            try:
                return await self.settlement.settle(kudo_id)
            except SettlementFailed:
                if attempt >= self.settle_attempts:
                    logger.error(
                        "settlement failed after %d attempts; kudo left pending",
                        attempt,
                        extra={"kudo_id": kudo_id},
                    )
                    raise
                logger.warning(
                    "settlement attempt %d/%d failed; retrying",
                    attempt,
                    self.settle_attempts,
                    extra={"kudo_id": kudo_id},
                )
                await asyncio.sleep(self.settle_backoff_seconds * 2 ** (attempt - 1))
                attempt += 1

    @staticmethod
    def _event(kudo: Kudo, result: SettlementResult) -> KudoSettled:
        return KudoSettled(
            kudo_id=kudo.id,
            sender_id=kudo.sender_id,
            sender_name=result.sender_name,
            receiver_id=kudo.receiver_id,
            receiver_name=result.receiver_name,
            receiver_credited=result.receiver_updated,
            message=kudo.message,
            badge=kudo.badge,
        )

    # ------------------------------------------------------------------
    # Feed
    # ------------------------------------------------------------------

    async def quota_status(self, sender_id: str, now: datetime | None = None) -> QuotaDecision:
        decision = await self.quota.check(sender_id, as_utc(now or self._clock()))
        if not decision.sender_known:
            raise UnknownEmployee(sender_id, "sender")
        return decision

    async def list_kudos(self, limit: int | None = None) -> List[Kudo]:
        """Settled kudos, newest first. Pending ones appear once settled."""
        docs = await self.store.query(
            KUDOS, [("settled", "==", True)], order_by="created_at", descending=True
        )
        kudos = [Kudo.from_document(doc) for doc in docs]
        return kudos[:limit] if limit is not None else kudos

    async def get_kudo(self, kudo_id: str) -> Kudo:
        doc = await self.store.get(KUDOS, kudo_id)
        if doc is None:
            raise KudoNotFound(kudo_id)
        return Kudo.from_document(doc)

    async def like_kudo(self, kudo_id: str) -> Kudo:
        async def _like(txn: Transaction) -> None:
            doc = await txn.get(KUDOS, kudo_id)
            if doc is None:
                raise KudoNotFound(kudo_id)
            txn.update(KUDOS, kudo_id, {"likes": int(doc.data.get("likes", 0)) + 1})

        await self.store.run_transaction(_like)
        return await self.get_kudo(kudo_id)

    async def add_comment(self, kudo_id: str, commenter_id: str, text: str) -> Kudo:
        async def _comment(txn: Transaction) -> None:
            doc = await txn.get(KUDOS, kudo_id)
            if doc is None:
                raise KudoNotFound(kudo_id)
            comments = list(doc.data.get("comments", []))
            comments.append(
                {"commenter_id": commenter_id, "text": text, "timestamp": self._clock()}
            )
            txn.update(KUDOS, kudo_id, {"comments": comments})

        await self.store.run_transaction(_comment)
        return await self.get_kudo(kudo_id)

"""Monthly kudos allowance per sender.

Windows are calendar months in a fixed reference zone (``QUOTA_TZ``,
UTC by default), so a kudo at 23:59:59 on the last day of a month and one
at 00:00:00 the next day land in different windows everywhere.

Two checks share the same window arithmetic:

* :meth:`QuotaGuard.check` is the advisory, read-only pre-check used to
  show a sender their remaining allowance. It counts kudo documents.
* :meth:`QuotaGuard.check_and_reserve` is authoritative. It runs inside
  the transaction that admits a kudo and bumps a per-sender, per-month
  counter document; two concurrent admissions for the same sender
  conflict on that counter, so only one of them can take the last slot.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Tuple

import pytz

from ..domain.models import EMPLOYEES, KUDO_QUOTAS, KUDOS, QuotaDecision
from ..store import DocumentStore, Transaction

logger = logging.getLogger(__name__)


def as_utc(at: datetime) -> datetime:
    if at.tzinfo is None:
        return pytz.UTC.localize(at)
    return at.astimezone(pytz.UTC)


def month_window(at: datetime, tz_name: str = "UTC") -> Tuple[datetime, datetime]:
    """Return the ``[start, end)`` UTC instants of the month containing ``at``.

    Naive datetimes are taken to be UTC.
    """
    zone = pytz.timezone(tz_name)
    local = as_utc(at).astimezone(zone)
    start = zone.localize(datetime(local.year, local.month, 1))
    if local.month == 12:
        end = zone.localize(datetime(local.year + 1, 1, 1))
    else:
        end = zone.localize(datetime(local.year, local.month + 1, 1))
    return start.astimezone(pytz.UTC), end.astimezone(pytz.UTC)


def month_key(at: datetime, tz_name: str = "UTC") -> str:
    local = as_utc(at).astimezone(pytz.timezone(tz_name))
    return f"{local.year:04d}-{local.month:02d}"


def counter_id(sender_id: str, at: datetime, tz_name: str = "UTC") -> str:
    return f"{sender_id}:{month_key(at, tz_name)}"


class QuotaGuard:
    """Decides whether a sender may send another kudo this month."""

    def __init__(self, store: DocumentStore, limit: int = 3, tz_name: str = "UTC"):
        if limit < 1:
            raise ValueError("monthly limit must be >= 1")
        self.store = store
        self.limit = limit
        self.tz_name = tz_name

    def _decision(
        self, at: datetime, count: int, sender_known: bool
    ) -> QuotaDecision:
        start, end = month_window(at, self.tz_name)
        return QuotaDecision(
            allowed=sender_known and count < self.limit,
            sender_known=sender_known,
            count=count,
            limit=self.limit,
            window_start=start,
            resets_at=end,
        )

    async def check(self, sender_id: str, at: datetime) -> QuotaDecision:
        """Advisory pre-check. Performs no writes."""
        if await self.store.get(EMPLOYEES, sender_id) is None:
            return self._decision(at, 0, sender_known=False)
        start, end = month_window(at, self.tz_name)
        count = await self.store.count(
            KUDOS,
            [
                ("sender_id", "==", sender_id),
                ("created_at", ">=", start),
                ("created_at", "<", end),
            ],
        )
        return self._decision(at, count, sender_known=True)

    async def check_and_reserve(
        self, txn: Transaction, sender_id: str, at: datetime
    ) -> QuotaDecision:
        """Authoritative check; takes a slot in ``txn`` when allowed.

        Must be called before any write is staged on ``txn``.
        """
        sender = await txn.get(EMPLOYEES, sender_id)
        doc_id = counter_id(sender_id, at, self.tz_name)
        counter = await txn.get(KUDO_QUOTAS, doc_id)
        count = int(counter.data.get("count", 0)) if counter else 0
        decision = self._decision(at, count, sender_known=sender is not None)
        if decision.allowed:
            txn.set(
                KUDO_QUOTAS,
                doc_id,
                {
                    "sender_id": sender_id,
                    "month": month_key(at, self.tz_name),
                    "count": count + 1,
                },
            )
        else:
            logger.debug(
                "quota denied (%d/%d)", count, self.limit, extra={"sender_id": sender_id}
            )
        return decision

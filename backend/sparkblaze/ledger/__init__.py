"""Kudos quota, settlement and notification pipeline."""

from ..core.config import Settings
from ..store import DocumentStore
from .events import EventBus
from .notifications import NotificationEmitter, TeamsWebhookNotifier
from .quota import QuotaGuard, month_window
from .service import EmployeeDirectory, RecognitionLedger
from .settlement import Settlement


def build_ledger(
    settings: Settings, store: DocumentStore | None = None
) -> tuple[RecognitionLedger, EmployeeDirectory, NotificationEmitter]:
    """Wire the ledger, its sinks and the kudo trigger from ``settings``."""
    store = store or DocumentStore(
        max_attempts=settings.TXN_MAX_ATTEMPTS,
        backoff_seconds=settings.TXN_BACKOFF_SECONDS,
    )
    bus = EventBus()
    emitter = NotificationEmitter(store)
    bus.subscribe(emitter.handle)
    if settings.TEAMS_WEBHOOK_URL:
        bus.subscribe(TeamsWebhookNotifier(settings.TEAMS_WEBHOOK_URL).handle)

    ledger = RecognitionLedger(
        store,
        QuotaGuard(store, settings.MONTHLY_KUDOS_LIMIT, settings.QUOTA_TZ),
        Settlement(store, settings.SENDER_REWARD, settings.RECEIVER_REWARD),
        bus,
        settle_attempts=settings.SETTLEMENT_ATTEMPTS,
        settle_backoff_seconds=settings.TXN_BACKOFF_SECONDS,
    )
    ledger.register_triggers()
    return ledger, EmployeeDirectory(store), emitter


__all__ = [
    "EmployeeDirectory",
    "EventBus",
    "NotificationEmitter",
    "QuotaGuard",
    "RecognitionLedger",
    "Settlement",
    "TeamsWebhookNotifier",
    "build_ledger",
    "month_window",
]

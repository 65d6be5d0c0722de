"""Tests for notification sinks."""

import asyncio
import json

import httpx
import pytest

from sparkblaze.domain.errors import NotificationNotFound
from sparkblaze.domain.models import NOTIFICATIONS, KudoSettled
from sparkblaze.ledger.events import EventBus
from sparkblaze.ledger.notifications import NotificationEmitter, TeamsWebhookNotifier
from sparkblaze.store import DocumentStore


def _event(**overrides) -> KudoSettled:
    fields = dict(
        kudo_id="k1",
        sender_id="A",
        sender_name="Alice",
        receiver_id="B",
        receiver_name="Bob",
        receiver_credited=True,
        message="Great demo!",
        badge="Innovator",
    )
    fields.update(overrides)
    return KudoSettled(**fields)


def test_emitter_writes_notification_record():
    store = DocumentStore()
    emitter = NotificationEmitter(store)

    asyncio.run(emitter.handle(_event()))

    (note,) = asyncio.run(emitter.list_for("B"))
    assert note.type == "kudo_received"
    assert note.message == 'You received a kudo from Alice: "Great demo!"'
    assert note.related_id == "k1"
    assert note.read is False


def test_emitter_skips_uncredited_receiver():
    store = DocumentStore()
    asyncio.run(NotificationEmitter(store).handle(_event(receiver_credited=False)))
    assert asyncio.run(store.count(NOTIFICATIONS)) == 0


def test_emitter_swallows_store_failures(caplog):
    store = DocumentStore()
    store.fail_next_commits(1)

    asyncio.run(NotificationEmitter(store).notify("B", "Alice", "hi", "k1"))

    assert asyncio.run(store.count(NOTIFICATIONS)) == 0
    assert "failed to create notification" in caplog.text


def test_mark_read_only_for_owner():
    store = DocumentStore()
    emitter = NotificationEmitter(store)
    asyncio.run(emitter.handle(_event()))
    (note,) = asyncio.run(emitter.list_for("B"))

    with pytest.raises(NotificationNotFound):
        asyncio.run(emitter.mark_read(note.id, "A"))

    updated = asyncio.run(emitter.mark_read(note.id, "B"))
    assert updated.read is True
    assert asyncio.run(emitter.list_for("B", unread_only=True)) == []


def test_teams_card_shape():
    card = TeamsWebhookNotifier.build_card(_event())
    assert card["@type"] == "MessageCard"
    section = card["sections"][0]
    assert section["activityTitle"] == "👏 Alice recognized Bob!"
    assert "**Message**: Great demo!" in section["text"]
    assert "**Badge**: Innovator" in section["text"]


def test_teams_card_without_badge_or_receiver_name():
    card = TeamsWebhookNotifier.build_card(_event(badge=None, receiver_name=None))
    section = card["sections"][0]
    assert section["activityTitle"] == "👏 Alice recognized B!"
    assert "Badge" not in section["text"]


def test_teams_notifier_posts_card():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, text="1")

    notifier = TeamsWebhookNotifier(
        "https://example.test/webhook", transport=httpx.MockTransport(handler)
    )
    asyncio.run(notifier.handle(_event()))

    assert len(requests) == 1
    assert requests[0].method == "POST"
    assert json.loads(requests[0].content)["summary"] == "New Kudos"


def test_teams_notifier_logs_http_errors(caplog):
    notifier = TeamsWebhookNotifier(
        "https://example.test/webhook",
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    asyncio.run(notifier.handle(_event()))
    assert "error posting kudo to Teams" in caplog.text


def test_teams_notifier_without_url_is_a_noop():
    asyncio.run(TeamsWebhookNotifier(None).handle(_event()))


def test_event_bus_isolates_subscribers(caplog):
    bus = EventBus()
    received = []

    async def broken(event):
        raise RuntimeError("sink down")

    async def healthy(event):
        received.append(event.kudo_id)

    bus.subscribe(broken)
    bus.subscribe(healthy)
    asyncio.run(bus.publish(_event()))

    assert received == ["k1"]
    assert "sink down" in caplog.text

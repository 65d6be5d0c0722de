"""In-process document store with optimistic transactions.

Documents live in named collections and carry a version number that is
bumped on every write. A :class:`Transaction` records the version of
every document it reads and buffers its writes; the commit re-checks
those versions under a lock and either applies every write or none of
them. :meth:`DocumentStore.run_transaction` retries conflicting attempts
with exponential backoff, which is what keeps concurrent
read-modify-write cycles on the same document from losing updates.

Usage:
    async def credit(txn):
        doc = await txn.get("employees", "emp_1")
        txn.update("employees", "emp_1", {"points": doc.data["points"] + 5})

    await store.run_transaction(credit)
"""

from __future__ import annotations

import asyncio
import copy
import logging
import random
import threading
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable, Sequence, Tuple

from ..domain.errors import DocumentExists, StorageUnavailable, TransactionConflict

logger = logging.getLogger(__name__)

Key = Tuple[str, str]
Filter = Tuple[str, str, Any]
CreateListener = Callable[["Document"], Awaitable[None]]

_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "==": lambda left, right: left == right,
    ">=": lambda left, right: left is not None and left >= right,
    "<": lambda left, right: left is not None and left < right,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Document:
    """Snapshot of a stored document."""

    collection: str
    id: str
    data: dict[str, Any]
    version: int
    create_time: datetime


class _CommitConflict(Exception):
    pass


@dataclass
class _Write:
    kind: str  # "create", "set", "update" or "delete"
    data: dict[str, Any] | None = None


@dataclass
class Transaction:
    """A single optimistic attempt. Obtain one via ``run_transaction``."""

    store: "DocumentStore"
    reads: dict[Key, int] = field(default_factory=dict)
    writes: dict[Key, _Write] = field(default_factory=dict)

    async def get(self, collection: str, doc_id: str) -> Document | None:
        if self.writes:
            raise RuntimeError("transaction reads must precede writes")
        # Yield so concurrent transactions interleave between reads.
        await asyncio.sleep(0)
        doc = self.store._snapshot((collection, doc_id))
        self.reads.setdefault((collection, doc_id), doc.version if doc else 0)
        return doc

    def create(
        self, collection: str, data: dict[str, Any], doc_id: str | None = None
    ) -> str:
        doc_id = doc_id or new_id()
        self.writes[(collection, doc_id)] = _Write("create", copy.deepcopy(data))
        return doc_id

    def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self.writes[(collection, doc_id)] = _Write("set", copy.deepcopy(data))

    def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        pending = self.writes.get((collection, doc_id))
        if pending is not None and pending.kind != "delete":
            pending.data.update(copy.deepcopy(fields))
            return
        self.writes[(collection, doc_id)] = _Write("update", copy.deepcopy(fields))

    def delete(self, collection: str, doc_id: str) -> None:
        self.writes[(collection, doc_id)] = _Write("delete")


class DocumentStore:
    """Versioned collections of JSON-like documents."""

    def __init__(
        self,
        max_attempts: int = 5,
        backoff_seconds: float = 0.01,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self._clock = clock
        self._docs: dict[Key, Document] = {}
        self._lock = threading.RLock()
        self._listeners: dict[str, list[CreateListener]] = defaultdict(list)
        self._failing_commits = 0

    # ------------------------------------------------------------------
    # Plain operations
    # ------------------------------------------------------------------

    async def get(self, collection: str, doc_id: str) -> Document | None:
        return self._snapshot((collection, doc_id))

    async def create(
        self, collection: str, data: dict[str, Any], doc_id: str | None = None
    ) -> Document:
        """Create a document outside a transaction and fire create triggers."""
        txn = Transaction(self)
        doc_id = txn.create(collection, data, doc_id)
        try:
            created = self._commit(txn)
        except _CommitConflict:
            raise DocumentExists(collection, doc_id) from None
        await self._fire_created(created)
        return self._snapshot((collection, doc_id))

    async def delete(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            return self._docs.pop((collection, doc_id), None) is not None

    async def query(
        self,
        collection: str,
        where: Sequence[Filter] = (),
        order_by: str | None = None,
        descending: bool = False,
    ) -> list[Document]:
        for _, op, _ in where:
            if op not in _OPERATORS:
                raise ValueError(f"unsupported operator {op!r}")
        with self._lock:
            docs = [
                copy.deepcopy(doc)
                for (coll, _), doc in self._docs.items()
                if coll == collection and _matches(doc.data, where)
            ]
        if order_by is not None:
            docs.sort(key=lambda doc: doc.data.get(order_by), reverse=descending)
        return docs

    async def count(self, collection: str, where: Sequence[Filter] = ()) -> int:
        return len(await self.query(collection, where))

    def on_create(self, collection: str, listener: CreateListener) -> None:
        """Register a trigger invoked after each document creation."""
        self._listeners[collection].append(listener)

    def fail_next_commits(self, count: int = 1) -> None:
        """Make the next ``count`` commits raise :class:`StorageUnavailable`."""
        with self._lock:
            self._failing_commits = count

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def run_transaction(
        self,
        fn: Callable[[Transaction], Awaitable[Any]],
        max_attempts: int | None = None,
    ) -> Any:
        attempts = max_attempts or self.max_attempts
        for attempt in range(1, attempts + 1):
            txn = Transaction(self)
            result = await fn(txn)
            try:
                created = self._commit(txn)
            except _CommitConflict:
                logger.debug("transaction conflict on attempt %d/%d", attempt, attempts)
                await asyncio.sleep(self._backoff(attempt))
                continue
            await self._fire_created(created)
            return result
        raise TransactionConflict(attempts)

    def _backoff(self, attempt: int) -> float:
        delay = min(self.backoff_seconds * 2 ** (attempt - 1), 1.0)
        return delay * random.uniform(0.5, 1.5)

    def _commit(self, txn: Transaction) -> list[Document]:
        with self._lock:
            if self._failing_commits:
                self._failing_commits -= 1
                raise StorageUnavailable("document store rejected the commit")
            for key, version in txn.reads.items():
                current = self._docs.get(key)
                if (current.version if current else 0) != version:
                    raise _CommitConflict(key)
            for key, write in txn.writes.items():
                exists = key in self._docs
                if write.kind == "create" and exists:
                    raise _CommitConflict(key)
                if write.kind == "update" and not exists:
                    raise KeyError(f"no document {key[0]}/{key[1]} to update")

            now = self._clock()
            created: list[Document] = []
            for key, write in txn.writes.items():
                current = self._docs.get(key)
                if write.kind == "delete":
                    self._docs.pop(key, None)
                    continue
                if write.kind == "update":
                    data = {**current.data, **write.data}
                else:
                    data = dict(write.data)
                if current is None:
                    data["created_at"] = _aware(data.get("created_at") or now)
                doc = Document(
                    collection=key[0],
                    id=key[1],
                    data=data,
                    version=(current.version if current else 0) + 1,
                    create_time=current.create_time if current else now,
                )
                self._docs[key] = doc
                if current is None:
                    created.append(copy.deepcopy(doc))
            return created

    async def _fire_created(self, docs: Iterable[Document]) -> None:
        for doc in docs:
            for listener in self._listeners.get(doc.collection, ()):
                try:
                    await listener(doc)
                except Exception:
                    logger.exception(
                        "create trigger failed for %s/%s", doc.collection, doc.id
                    )

    def _snapshot(self, key: Key) -> Document | None:
        with self._lock:
            doc = self._docs.get(key)
            return copy.deepcopy(doc) if doc is not None else None


def _aware(value: Any) -> Any:
    # Naive creation times are UTC; range queries compare against aware bounds.
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _matches(data: dict[str, Any], where: Sequence[Filter]) -> bool:
    return all(_OPERATORS[op](data.get(name), value) for name, op, value in where)

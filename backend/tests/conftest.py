"""Shared fixtures for ledger and API tests."""

import asyncio
from dataclasses import dataclass
from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))
from sparkblaze.core.config import Settings  # noqa: E402
from sparkblaze.domain.models import EMPLOYEES  # noqa: E402
from sparkblaze.domain.schemas import EmployeeCreate  # noqa: E402
from sparkblaze.ledger import (  # noqa: E402
    EmployeeDirectory,
    NotificationEmitter,
    RecognitionLedger,
    build_ledger,
)
from sparkblaze.store import DocumentStore  # noqa: E402

NAMES = {"A": "Alice", "B": "Bob", "C": "Carol"}


@dataclass
class LedgerEnv:
    store: DocumentStore
    ledger: RecognitionLedger
    directory: EmployeeDirectory
    emitter: NotificationEmitter

    def seed(self, *employee_ids: str) -> None:
        for employee_id in employee_ids:
            name = NAMES.get(employee_id, employee_id)
            asyncio.run(
                self.directory.create(EmployeeCreate(id=employee_id, name=name))
            )

    def points(self, employee_id: str) -> int:
        doc = asyncio.run(self.store.get(EMPLOYEES, employee_id))
        return doc.data["points"]

    def snapshot(self) -> dict:
        return {key: (doc.version, doc.data) for key, doc in self.store._docs.items()}


def make_env(**overrides) -> LedgerEnv:
    settings = Settings(TXN_BACKOFF_SECONDS=0, **overrides)
    store = DocumentStore(max_attempts=50, backoff_seconds=0)
    ledger, directory, emitter = build_ledger(settings, store)
    return LedgerEnv(store, ledger, directory, emitter)


@pytest.fixture
def env() -> LedgerEnv:
    return make_env()


@pytest.fixture
def env_factory():
    return make_env

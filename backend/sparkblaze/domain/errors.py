"""Exceptions raised by the recognition ledger."""

from __future__ import annotations

from datetime import datetime


class RecognitionError(Exception):
    """Base class for recognition flow failures."""


class QuotaExceeded(RecognitionError):
    """Sender has used up the monthly kudos allowance."""

    def __init__(
        self,
        sender_id: str,
        count: int,
        limit: int,
        resets_at: datetime | None = None,
    ) -> None:
        self.sender_id = sender_id
        self.count = count
        self.limit = limit
        self.resets_at = resets_at
        super().__init__(f"You have reached your monthly limit of {limit} kudos")


class UnknownEmployee(RecognitionError):
    """No employee record exists for the given id."""

    def __init__(self, employee_id: str, role: str = "employee") -> None:
        self.employee_id = employee_id
        self.role = role
        super().__init__(f"Unknown {role}: {employee_id}")


class SelfRecognition(RecognitionError):
    """Sender and receiver are the same employee."""

    def __init__(self, employee_id: str) -> None:
        self.employee_id = employee_id
        super().__init__("You cannot send kudos to yourself")


class KudoNotFound(RecognitionError):
    """No kudo exists for the given id."""

    def __init__(self, kudo_id: str) -> None:
        self.kudo_id = kudo_id
        super().__init__(f"Kudo not found: {kudo_id}")


class NotificationNotFound(RecognitionError):
    """No notification exists for the given id."""

    def __init__(self, notification_id: str) -> None:
        self.notification_id = notification_id
        super().__init__(f"Notification not found: {notification_id}")


class TransactionConflict(RecognitionError):
    """Optimistic transaction kept losing to concurrent writers."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"Transaction aborted after {attempts} conflicting attempts")


class StorageUnavailable(RecognitionError):
    """The document store refused a commit."""


class SettlementFailed(RecognitionError):
    """Points for an admitted kudo could not be applied; nothing was credited.

    The kudo keeps its quota slot and stays pending until settled again.
    """

    def __init__(self, kudo_id: str) -> None:
        self.kudo_id = kudo_id
        super().__init__(f"Settlement of kudo {kudo_id} failed; it is pending settlement")


class DocumentExists(RecognitionError):
    """A document with the requested id is already stored."""

    def __init__(self, collection: str, doc_id: str) -> None:
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"{collection}/{doc_id} already exists")

"""Core domain entities represented as immutable dataclasses.

Each model mirrors one stored document and is built from a store
snapshot with ``from_document``. Mutation always goes through the
ledger's transactions, never through these objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Tuple

EMPLOYEES = "employees"
KUDOS = "kudos"
KUDO_QUOTAS = "kudo_quotas"
NOTIFICATIONS = "notifications"

KUDO_RECEIVED = "kudo_received"


class Badge(str, Enum):
    TEAM_PLAYER = "Team Player"
    INNOVATOR = "Innovator"
    LEADERSHIP = "Leadership"
    PROBLEM_SOLVER = "Problem Solver"
    ABOVE_AND_BEYOND = "Above & Beyond"
    CUSTOMER_HERO = "Customer Hero"


class RecognitionState(str, Enum):
    RECEIVED = "received"
    QUOTA_CHECKED = "quota_checked"
    RETRACTED = "retracted"
    SETTLING = "settling"
    SETTLED = "settled"
    NOTIFYING = "notifying"
    DONE = "done"


@dataclass(frozen=True)
class Employee:
    """A recognised person within the organisation.

    Example:
        >>> Employee(id="emp_1", name="Alice", department="Sales", points=0)
    """

    id: str
    name: str
    department: str | None = None
    email: str | None = None
    points: int = 0

    @classmethod
    def from_document(cls, doc) -> "Employee":
        data = doc.data
        return cls(
            id=doc.id,
            name=data.get("name", ""),
            department=data.get("department"),
            email=data.get("email"),
            points=int(data.get("points", 0)),
        )


@dataclass(frozen=True)
class Comment:
    """A comment appended to a kudo.

    Example:
        >>> Comment(
        ...     commenter_id="emp_2",
        ...     text="Well deserved!",
        ...     timestamp=datetime(2024, 1, 1, 9, 0),
        ... )
    """

    commenter_id: str
    text: str
    timestamp: datetime

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Comment":
        return cls(
            commenter_id=data["commenter_id"],
            text=data["text"],
            timestamp=data["timestamp"],
        )


@dataclass(frozen=True)
class Kudo:
    """One recognition event from a sender to a receiver.

    Example:
        >>> Kudo(
        ...     id="kudo_1",
        ...     sender_id="emp_1",
        ...     receiver_id="emp_2",
        ...     message="Thanks for the help!",
        ...     created_at=datetime(2024, 1, 1, 9, 0),
        ... )
    """

    id: str
    sender_id: str
    receiver_id: str
    message: str
    created_at: datetime
    badge: str | None = None
    likes: int = 0
    comments: Tuple[Comment, ...] = ()
    admitted: bool = False
    settled: bool = False

    @classmethod
    def from_document(cls, doc) -> "Kudo":
        data = doc.data
        return cls(
            id=doc.id,
            sender_id=data["sender_id"],
            receiver_id=data["receiver_id"],
            message=data.get("message", ""),
            created_at=data.get("created_at", doc.create_time),
            badge=data.get("badge") or None,
            likes=int(data.get("likes", 0)),
            comments=tuple(Comment.from_dict(c) for c in data.get("comments", [])),
            admitted=bool(data.get("admitted", False)),
            settled=bool(data.get("settled", False)),
        )


@dataclass(frozen=True)
class Notification:
    """In-app notice addressed to one employee.

    Example:
        >>> Notification(
        ...     id="ntf_1",
        ...     user_id="emp_2",
        ...     type="kudo_received",
        ...     message='You received a kudo from Alice: "Thanks!"',
        ...     related_id="kudo_1",
        ...     created_at=datetime(2024, 1, 1, 9, 0),
        ... )
    """

    id: str
    user_id: str
    type: str
    message: str
    related_id: str
    created_at: datetime
    read: bool = False

    @classmethod
    def from_document(cls, doc) -> "Notification":
        data = doc.data
        return cls(
            id=doc.id,
            user_id=data["user_id"],
            type=data["type"],
            message=data["message"],
            related_id=data["related_id"],
            created_at=data.get("created_at", doc.create_time),
            read=bool(data.get("read", False)),
        )


@dataclass(frozen=True)
class QuotaDecision:
    """Verdict of the quota guard for one sender and instant."""

    allowed: bool
    sender_known: bool
    count: int
    limit: int
    window_start: datetime
    resets_at: datetime

    @property
    def remaining(self) -> int:
        return max(self.limit - self.count, 0)


@dataclass(frozen=True)
class SettlementResult:
    kudo_id: str
    sender_name: str
    receiver_name: str | None
    sender_credited: bool
    receiver_updated: bool
    already_settled: bool = False


@dataclass(frozen=True)
class KudoSettled:
    """Event published once a kudo's points have been applied."""

    kudo_id: str
    sender_id: str
    sender_name: str
    receiver_id: str
    receiver_name: str | None
    receiver_credited: bool
    message: str
    badge: str | None = None


@dataclass(frozen=True)
class RecognitionOutcome:
    """Terminal result of processing one kudo."""

    state: RecognitionState
    kudo_id: str | None
    quota: QuotaDecision | None = None
    settlement: SettlementResult | None = None

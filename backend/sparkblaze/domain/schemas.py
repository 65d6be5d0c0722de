"""Pydantic models used for request and response bodies.

These data transfer objects (DTOs) mirror the domain models but add
validation and serialization helpers for the API layer.
"""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, EmailStr, Field, field_validator

from . import models


def _not_blank(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class EmployeeCreate(BaseModel):
    """Employee profile supplied by an administrator.

    Example:
        >>> EmployeeCreate(name="Alice", department="Sales")
    """

    id: str | None = None
    name: str
    department: str | None = None
    email: EmailStr | None = None

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        return _not_blank(value)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Alice",
                "department": "Sales",
                "email": "alice@example.com",
            }
        }


class EmployeeOut(BaseModel):
    id: str
    name: str
    department: str | None = None
    email: str | None = None
    points: int

    class Config:
        frozen = True

    @classmethod
    def from_domain(cls, employee: models.Employee) -> "EmployeeOut":
        return cls(
            id=employee.id,
            name=employee.name,
            department=employee.department,
            email=employee.email,
            points=employee.points,
        )


class KudoCreate(BaseModel):
    """A recognition request submitted by the authenticated sender.

    Example:
        >>> KudoCreate(receiver_id="emp_2", message="Great demo!", badge="Innovator")
    """

    receiver_id: str = Field(..., min_length=1)
    message: str = Field(..., max_length=2000)
    badge: models.Badge | None = None

    @field_validator("message")
    @classmethod
    def _message_not_blank(cls, value: str) -> str:
        return _not_blank(value)

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "receiver_id": "emp_2",
                "message": "Thanks for covering the release!",
                "badge": "Team Player",
            }
        }


class CommentCreate(BaseModel):
    text: str = Field(..., max_length=1000)

    @field_validator("text")
    @classmethod
    def _text_not_blank(cls, value: str) -> str:
        return _not_blank(value)


class CommentOut(BaseModel):
    commenter_id: str
    text: str
    timestamp: datetime


class KudoOut(BaseModel):
    id: str
    sender_id: str
    receiver_id: str
    message: str
    badge: str | None = None
    created_at: datetime
    likes: int
    comments: List[CommentOut] = []
    settled: bool

    @classmethod
    def from_domain(cls, kudo: models.Kudo) -> "KudoOut":
        return cls(
            id=kudo.id,
            sender_id=kudo.sender_id,
            receiver_id=kudo.receiver_id,
            message=kudo.message,
            badge=kudo.badge,
            created_at=kudo.created_at,
            likes=kudo.likes,
            comments=[
                CommentOut(
                    commenter_id=c.commenter_id, text=c.text, timestamp=c.timestamp
                )
                for c in kudo.comments
            ],
            settled=kudo.settled,
        )


class QuotaStatus(BaseModel):
    """Sender's usage of the current quota window."""

    count: int
    limit: int
    remaining: int
    window_start: datetime
    resets_at: datetime

    @classmethod
    def from_domain(cls, decision: models.QuotaDecision) -> "QuotaStatus":
        return cls(
            count=decision.count,
            limit=decision.limit,
            remaining=decision.remaining,
            window_start=decision.window_start,
            resets_at=decision.resets_at,
        )


class SendKudoResponse(BaseModel):
    kudo_id: str
    state: models.RecognitionState
    sender_credited: bool
    receiver_credited: bool
    quota: QuotaStatus


class NotificationOut(BaseModel):
    id: str
    type: str
    message: str
    related_id: str
    read: bool
    created_at: datetime

    @classmethod
    def from_domain(cls, notification: models.Notification) -> "NotificationOut":
        return cls(
            id=notification.id,
            type=notification.type,
            message=notification.message,
            related_id=notification.related_id,
            read=notification.read,
            created_at=notification.created_at,
        )

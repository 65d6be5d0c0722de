"""Smoke tests for domain models and schemas."""

from datetime import datetime, timezone
from pathlib import Path
import sys

import pytest
from pydantic import ValidationError

sys.path.append(str(Path(__file__).resolve().parents[1]))
from sparkblaze.domain import models, schemas  # noqa: E402
from sparkblaze.store import Document  # noqa: E402

NOW = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


def _doc(doc_id: str, data: dict) -> Document:
    return Document(collection="c", id=doc_id, data=data, version=1, create_time=NOW)


def test_models_build_from_documents() -> None:
    """Build domain models from stored documents."""

    employee = models.Employee.from_document(
        _doc("emp_1", {"name": "Alice", "department": "Sales", "points": 4})
    )
    kudo = models.Kudo.from_document(
        _doc(
            "kudo_1",
            {
                "sender_id": "emp_1",
                "receiver_id": "emp_2",
                "message": "Thanks!",
                "badge": "",
                "comments": [
                    {"commenter_id": "emp_2", "text": "Cheers", "timestamp": NOW}
                ],
            },
        )
    )
    notification = models.Notification.from_document(
        _doc(
            "ntf_1",
            {
                "user_id": "emp_2",
                "type": models.KUDO_RECEIVED,
                "message": "You received a kudo",
                "related_id": "kudo_1",
            },
        )
    )

    assert employee.points == 4
    assert kudo.badge is None
    assert kudo.created_at == NOW
    assert kudo.comments[0].text == "Cheers"
    assert not kudo.settled
    assert notification.created_at == NOW
    assert notification.read is False


def test_schemas_validate_requests() -> None:
    request = schemas.KudoCreate(
        receiver_id="emp_2", message="  Great demo!  ", badge="Innovator"
    )
    assert request.message == "Great demo!"
    assert request.badge is models.Badge.INNOVATOR

    with pytest.raises(ValidationError):
        schemas.KudoCreate(receiver_id="emp_2", message="   ")
    with pytest.raises(ValidationError):
        schemas.KudoCreate(receiver_id="emp_2", message="hi", badge="Best Dressed")
    with pytest.raises(ValidationError):
        schemas.EmployeeCreate(name="Alice", email="not-an-email")


def test_quota_status_reports_remaining() -> None:
    decision = models.QuotaDecision(
        allowed=True,
        sender_known=True,
        count=2,
        limit=3,
        window_start=NOW,
        resets_at=datetime(2024, 2, 1, tzinfo=timezone.utc),
    )
    status = schemas.QuotaStatus.from_domain(decision)
    assert status.remaining == 1
    assert status.resets_at.month == 2

"""Request dependencies."""

from fastapi import Header, HTTPException, Request, status

from ..ledger import EmployeeDirectory, NotificationEmitter, RecognitionLedger


def get_ledger(request: Request) -> RecognitionLedger:
    return request.app.state.ledger


def get_directory(request: Request) -> EmployeeDirectory:
    return request.app.state.directory


def get_notifications(request: Request) -> NotificationEmitter:
    return request.app.state.notifications


async def current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Subject id of the caller, as asserted by the identity provider."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="You must be logged in to send kudos.",
        )
    return x_user_id

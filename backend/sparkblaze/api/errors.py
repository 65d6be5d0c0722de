"""Map recognition errors onto HTTP responses."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ..core.logging import request_id_ctx
from ..domain.errors import (
    DocumentExists,
    KudoNotFound,
    NotificationNotFound,
    QuotaExceeded,
    SelfRecognition,
    SettlementFailed,
    StorageUnavailable,
    TransactionConflict,
    UnknownEmployee,
)

logger = logging.getLogger(__name__)

TRY_AGAIN = "Failed to send kudos. Please try again."
PENDING_SETTLEMENT = (
    "Your kudo was saved but points could not be applied yet. "
    "Do not send it again; settle it with POST /kudos/{kudo_id}/settle."
)


def _error(status_code: int, detail: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": detail, "request_id": request_id_ctx.get(), **extra},
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(QuotaExceeded)
    async def quota_exceeded(request: Request, exc: QuotaExceeded):
        return _error(
            status.HTTP_429_TOO_MANY_REQUESTS,
            str(exc),
            count=exc.count,
            limit=exc.limit,
            resets_at=exc.resets_at.isoformat() if exc.resets_at else None,
        )

    @app.exception_handler(UnknownEmployee)
    async def unknown_employee(request: Request, exc: UnknownEmployee):
        return _error(status.HTTP_404_NOT_FOUND, str(exc), employee_id=exc.employee_id)

    @app.exception_handler(KudoNotFound)
    async def kudo_not_found(request: Request, exc: KudoNotFound):
        return _error(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(NotificationNotFound)
    async def notification_not_found(request: Request, exc: NotificationNotFound):
        return _error(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(DocumentExists)
    async def document_exists(request: Request, exc: DocumentExists):
        return _error(status.HTTP_409_CONFLICT, str(exc))

    @app.exception_handler(SelfRecognition)
    async def self_recognition(request: Request, exc: SelfRecognition):
        return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, str(exc))

    @app.exception_handler(SettlementFailed)
    async def settlement_pending(request: Request, exc: SettlementFailed):
        logger.error("settlement pending: %s", exc, extra={"kudo_id": exc.kudo_id})
        return _error(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            PENDING_SETTLEMENT.format(kudo_id=exc.kudo_id),
            kudo_id=exc.kudo_id,
        )

    @app.exception_handler(TransactionConflict)
    @app.exception_handler(StorageUnavailable)
    async def unavailable(request: Request, exc: Exception):
        logger.error("recognition processing failed: %s", exc)
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, TRY_AGAIN)

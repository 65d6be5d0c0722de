"""Kudos endpoints."""

from typing import List

from fastapi import APIRouter, Depends, Query, status

from ..domain.errors import KudoNotFound
from ..domain.schemas import (
    CommentCreate,
    KudoCreate,
    KudoOut,
    QuotaStatus,
    SendKudoResponse,
)
from ..ledger import RecognitionLedger
from .deps import current_user_id, get_ledger

router = APIRouter(prefix="/kudos", tags=["kudos"])


@router.post("", response_model=SendKudoResponse, status_code=status.HTTP_201_CREATED)
async def send_kudo(
    payload: KudoCreate,
    sender_id: str = Depends(current_user_id),
    ledger: RecognitionLedger = Depends(get_ledger),
) -> SendKudoResponse:
    """Send a kudo from the caller; rejected once the monthly limit is used."""
    outcome = await ledger.send_kudo(sender_id, payload)
    return SendKudoResponse(
        kudo_id=outcome.kudo_id,
        state=outcome.state,
        sender_credited=outcome.settlement.sender_credited,
        receiver_credited=outcome.settlement.receiver_updated,
        quota=QuotaStatus.from_domain(outcome.quota),
    )


@router.get("", response_model=List[KudoOut])
async def list_kudos(
    limit: int | None = Query(default=None, ge=1, le=500),
    ledger: RecognitionLedger = Depends(get_ledger),
) -> List[KudoOut]:
    """Settled kudos for the public feed, newest first."""
    return [KudoOut.from_domain(k) for k in await ledger.list_kudos(limit)]


@router.get("/quota", response_model=QuotaStatus)
async def quota_status(
    sender_id: str = Depends(current_user_id),
    ledger: RecognitionLedger = Depends(get_ledger),
) -> QuotaStatus:
    """Advisory view of the caller's allowance for the current month."""
    return QuotaStatus.from_domain(await ledger.quota_status(sender_id))


@router.get("/{kudo_id}", response_model=KudoOut)
async def get_kudo(
    kudo_id: str, ledger: RecognitionLedger = Depends(get_ledger)
) -> KudoOut:
    """Fetch one kudo by id."""
    return KudoOut.from_domain(await ledger.get_kudo(kudo_id))


@router.post("/{kudo_id}/likes", response_model=KudoOut)
async def like_kudo(
    kudo_id: str,
    _: str = Depends(current_user_id),
    ledger: RecognitionLedger = Depends(get_ledger),
) -> KudoOut:
    """Add one like to a kudo."""
    return KudoOut.from_domain(await ledger.like_kudo(kudo_id))


@router.post(
    "/{kudo_id}/comments", response_model=KudoOut, status_code=status.HTTP_201_CREATED
)
async def add_comment(
    kudo_id: str,
    payload: CommentCreate,
    commenter_id: str = Depends(current_user_id),
    ledger: RecognitionLedger = Depends(get_ledger),
) -> KudoOut:
    """Append the caller's comment to a kudo."""
    return KudoOut.from_domain(
        await ledger.add_comment(kudo_id, commenter_id, payload.text)
    )


@router.post("/{kudo_id}/settle", response_model=KudoOut)
async def settle_kudo(
    kudo_id: str,
    sender_id: str = Depends(current_user_id),
    ledger: RecognitionLedger = Depends(get_ledger),
) -> KudoOut:
    """Apply points for the caller's pending kudo; a settled kudo is left as is."""
    kudo = await ledger.get_kudo(kudo_id)
    if kudo.sender_id != sender_id:
        raise KudoNotFound(kudo_id)
    await ledger.retry_settlement(kudo_id)
    return KudoOut.from_domain(await ledger.get_kudo(kudo_id))

"""Health check endpoints."""

from typing import Any, Dict

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health(request: Request) -> Dict[str, Any]:
    """Return service health and the active quota window settings."""
    quota = request.app.state.ledger.quota
    return {
        "status": "ok",
        "monthly_kudos_limit": quota.limit,
        "quota_tz": quota.tz_name,
    }

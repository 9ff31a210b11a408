# app/routers/health.py
from datetime import datetime, timezone

from fastapi import APIRouter, Request

router = APIRouter(prefix="/health", tags=["health"])


def _iso_now() -> str:
    # e.g. 2024-05-01T12:00:00.123Z
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@router.get("")
async def health_root(request: Request):
    return {
        "status": "OK",
        "timestamp": _iso_now(),
        "service": request.app.state.settings.service_name,
    }

from fastapi import APIRouter, Depends
from datetime import datetime, timezone

from watchlist_core.schemas.watchlist import StorageStats
from watchlist_core.storage.gateway import StorageGateway
from watchlist_core.utils.dependencies import get_storage

router = APIRouter(prefix="/api/status", tags=["Status"])


@router.get("/ping")
async def ping():
    """Basic liveness check, never touches the database"""
    return {"status": "ok", "time": datetime.now(timezone.utc).isoformat()}


@router.get("/health")
async def health(storage: StorageGateway = Depends(get_storage)):
    """
    Run a fresh connection check and report the monitor state

    - **degraded_mode**: the last check failed
    - **emergency_tier**: whether the in-memory fallback may serve registrations
    """
    await storage.health.check_connection()
    return {
        **storage.health.status(),
        "environment": storage.environment,
        "emergency_tier": "enabled" if storage.emergency_permitted else "disabled",
    }


@router.get("/stats", response_model=StorageStats)
async def stats(storage: StorageGateway = Depends(get_storage)):
    """Row counts per table (each count falls back to 0 if it cannot be read)"""
    return await storage.get_stats()

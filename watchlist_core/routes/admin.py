"""
Admin Routes
Maintenance endpoints for operators. Authentication is handled upstream.
"""
from fastapi import APIRouter, Depends, Query
from typing import List

from watchlist_core.schemas.user import UserPublic
from watchlist_core.services.maintenance import backfill_user_environment
from watchlist_core.storage.gateway import StorageGateway
from watchlist_core.utils.dependencies import get_storage

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.get("/users", response_model=List[UserPublic])
async def list_users(storage: StorageGateway = Depends(get_storage)):
    """All users, without credentials"""
    return [user.to_public() for user in await storage.get_all_users()]


@router.post("/backfill-environment")
async def backfill_environment(
    environment: str = Query("production", min_length=1),
    storage: StorageGateway = Depends(get_storage),
):
    """Tag users created before environment tagging existed"""
    updated = await backfill_user_environment(storage, environment)
    return {"status": "success", "updated": updated, "environment": environment}

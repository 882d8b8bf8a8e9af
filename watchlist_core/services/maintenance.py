import logging

from watchlist_core.schemas.user import UserUpdate
from watchlist_core.storage.gateway import StorageGateway

logger = logging.getLogger(__name__)


async def backfill_user_environment(storage: StorageGateway, environment: str = "production") -> int:
    """
    Tag every user that has no environment value.

    Returns:
        Number of users updated
    """
    updated = 0
    for user in await storage.get_all_users():
        if user.environment:
            continue
        if await storage.update_user(user.id, UserUpdate(environment=environment)):
            updated += 1

    logger.info(f"Environment backfill tagged {updated} user(s) as {environment!r}")
    return updated

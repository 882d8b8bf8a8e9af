from datetime import datetime, timezone
from typing import Optional
import logging

from watchlist_core.storage.raw_sql import RawSqlExecutor

logger = logging.getLogger(__name__)


class ConnectionHealthMonitor:
    """
    On-demand reachability check for the relational backend.

    Only one check runs at a time: callers arriving while a check is in
    flight get False immediately instead of queuing behind it. The degraded
    flag is advisory; the gateway never refuses work because of it.
    """

    def __init__(self, executor: RawSqlExecutor):
        self._executor = executor
        self._check_in_progress = False
        self.consecutive_failures = 0
        self.degraded_mode = False
        self.last_checked_at: Optional[datetime] = None
        self.last_error: Optional[str] = None

    @property
    def check_in_progress(self) -> bool:
        return self._check_in_progress

    async def check_connection(self) -> bool:
        """Return True when the backend answered a trivial query."""
        if self._check_in_progress:
            logger.debug("Health check already in progress, reporting unhealthy")
            return False

        self._check_in_progress = True
        try:
            await self._executor.execute("SELECT 1", operation="health check")
        except Exception as e:
            self.consecutive_failures += 1
            self.degraded_mode = True
            self.last_error = str(e)
            logger.warning(
                f"Database health check failed ({self.consecutive_failures} in a row), "
                f"degraded mode on: {str(e)}"
            )
            return False
        else:
            if self.degraded_mode:
                logger.info("Database reachable again, leaving degraded mode")
            self.consecutive_failures = 0
            self.degraded_mode = False
            self.last_error = None
            return True
        finally:
            self.last_checked_at = datetime.now(timezone.utc)
            self._check_in_progress = False

    def status(self) -> dict:
        """Snapshot of the monitor state for the health endpoint"""
        return {
            "healthy": not self.degraded_mode,
            "degraded_mode": self.degraded_mode,
            "consecutive_failures": self.consecutive_failures,
            "last_checked_at": self.last_checked_at.isoformat() if self.last_checked_at else None,
            "last_error": self.last_error,
        }

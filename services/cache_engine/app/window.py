"""
Refresh window selection.

A cycle recomputes either the whole history (until the initialization
marker exists) or a rolling window of the trailing lookback months plus
the current partial month.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

from shared.schemas.models import (
    INITIALIZED_MARKER_ID,
    FullRebuildWindow,
    IncrementalWindow,
    RefreshWindow,
)
from shared.storage.couchdb import CouchDatabase
from shared.utils.errors import DocumentNotFoundError, StorageError

logger = structlog.get_logger(__name__)


def start_of_month(moment: datetime) -> datetime:
    """First instant of the calendar month containing ``moment``."""
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def subtract_months(moment: datetime, months: int) -> datetime:
    """Shift a first-of-month datetime back by whole months."""
    index = moment.year * 12 + (moment.month - 1) - months
    return moment.replace(year=index // 12, month=index % 12 + 1)


class WindowCalculator:
    """Chooses the recompute range for each cycle."""

    def __init__(
        self,
        marker_db: CouchDatabase,
        lookback_months: int = 3,
        marker_read_error_policy: str = "rebuild",
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self._marker_db = marker_db
        self._lookback_months = lookback_months
        self._policy = marker_read_error_policy
        self._clock = clock or time.time

    async def marker_exists(self) -> bool:
        """Look up the initialization marker; read errors other than 404 propagate."""
        try:
            await self._marker_db.get(INITIALIZED_MARKER_ID)
        except DocumentNotFoundError:
            return False
        return True

    async def compute(self) -> RefreshWindow:
        """Return this cycle's window; ``end`` is the wall clock at cycle start."""
        now = self._clock()
        end = now

        try:
            initialized = await self.marker_exists()
        except StorageError as e:
            if self._policy == "raise":
                logger.error("Failed to read initialization marker", error=str(e))
                raise
            logger.warning(
                "Initialization marker unreadable, falling back to full rebuild",
                error=str(e),
            )
            initialized = False

        if not initialized:
            return FullRebuildWindow(end=end)

        current = datetime.fromtimestamp(now, tz=timezone.utc)
        window_start = subtract_months(start_of_month(current), self._lookback_months)
        return IncrementalWindow(start=int(window_start.timestamp()), end=end)

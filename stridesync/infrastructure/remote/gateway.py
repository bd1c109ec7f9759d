"""
Sync Gateway.
~~~~~~~~~~~~~

Moves activity state between the tracker and the remote store:
- today's baseline at startup
- stats upserts
- finished routes

Failures are logged and returned as ``SyncResult``; nothing is retried
and local state is never rolled back.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from ...domain.models import ActivityStats, SyncedRoute, SyncResult
from ...errors import RemoteSyncError
from .client import ActivityApiClient

logger = logging.getLogger(__name__)


class SyncGateway:
    """
    Serializes tracker state for the activity API.

    Example:
        >>> gateway = SyncGateway(ActivityApiClient(ApiConfig(...)), clock=utc_now)
        >>> baseline = await gateway.fetch_baseline()
        >>> result = await gateway.sync_stats(tracker.stats)
    """

    def __init__(self, client: ActivityApiClient, clock: Callable[[], datetime]):
        self.client = client
        self._clock = clock
        self._cached_baseline: ActivityStats | None = None
        self._invalidation_hooks: list[Callable[[], None]] = []

    @property
    def cached_baseline(self) -> ActivityStats | None:
        """Last fetched baseline; cleared whenever stats are synced."""
        return self._cached_baseline

    def on_invalidate(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Register a hook run after each stats sync so readers refetch."""
        self._invalidation_hooks.append(callback)

        def remove() -> None:
            if callback in self._invalidation_hooks:
                self._invalidation_hooks.remove(callback)

        return remove

    def invalidate_baseline(self) -> None:
        self._cached_baseline = None
        for hook in list(self._invalidation_hooks):
            try:
                hook()
            except Exception as e:
                logger.error("Baseline invalidation hook failed: %s", e)

    # ==================== Baseline ====================

    async def fetch_baseline(self) -> ActivityStats:
        """
        Fetch today's persisted stats.

        Returns:
            The remote baseline, or all-zero stats on failure or no record
        """
        try:
            data = await self.client.get_today_activity()
        except RemoteSyncError as e:
            logger.warning("Failed to load initial stats: %s", e)
            return ActivityStats.zero()

        try:
            baseline = ActivityStats.from_remote(data.get("activity"))
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning("Ignoring malformed baseline %r: %s", data, e)
            return ActivityStats.zero()

        self._cached_baseline = baseline
        logger.info(
            "Loaded baseline: %d steps, %.0fm, %.0f kcal, %.0f min",
            baseline.steps,
            baseline.distance_meters,
            baseline.calories,
            baseline.active_minutes,
        )
        return baseline

    # ==================== Sync ====================

    async def sync_stats(self, stats: ActivityStats) -> SyncResult:
        """
        Upsert current totals for today's date.

        Args:
            stats: Snapshot to send

        Returns:
            SyncResult with the server response on success
        """
        day = self._clock().date().isoformat()
        payload = stats.to_sync_payload(day)

        try:
            data = await self.client.post_activity_sync(payload)
        except RemoteSyncError as e:
            logger.warning("Sync failed: %s", e)
            return SyncResult.failed(str(e))

        self.invalidate_baseline()
        self._log_badges(data)
        logger.info(
            "Synced %s: %d steps, %dm",
            day,
            payload["steps"],
            payload["distance"],
        )
        return SyncResult.ok(data)

    @staticmethod
    def _log_badges(data: dict) -> None:
        # Informational only; an odd response shape must not fail the sync
        badges = data.get("earnedBadges")
        if not badges:
            return
        if not isinstance(badges, list):
            logger.warning("Ignoring malformed earnedBadges: %r", badges)
            return
        logger.info("Earned badges: %s", ", ".join(str(b) for b in badges))

    async def save_route(self, route: SyncedRoute) -> SyncResult:
        """Store a finished route."""
        try:
            data = await self.client.post_route(route.to_payload())
        except RemoteSyncError as e:
            logger.warning("Failed to save route: %s", e)
            return SyncResult.failed(str(e))

        logger.info(
            "Route saved: %d points, %dm in %ds",
            len(route.points),
            route.distance_meters,
            route.duration_seconds,
        )
        return SyncResult.ok(data)

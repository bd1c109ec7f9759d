"""
Activity Tracker
================

The public face of the tracking engine. Composes the filter, accumulator,
route recorder, state machine, broadcast hub and sync gateway.

One instance per process, created by the application and passed to
whatever needs it.

Usage:
    tracker = ActivityTracker.from_config(cfg)
    await tracker.initialize()

    unsubscribe = tracker.subscribe_stats(render)
    tracker.enable_tracking()
    ...
    tracker.disable_tracking()   # route + stats flushed in the background
    await tracker.aclose()
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any, Callable, Coroutine

from .config import GPSConfig, StrideSyncConfig, TrackingConfig
from .core.accumulator import StatsAccumulator
from .core.events import BroadcastHub, SampleListener, StatsListener, Unsubscribe
from .core.filtering import SampleFilter
from .core.route import RouteRecorder
from .core.session import ErrorCallback, TrackingStateMachine
from .domain.models import (
    ActivityStats,
    SyncedRoute,
    SyncResult,
    TrackingSession,
    TrackingState,
)
from .errors import RemoteSyncError
from .infrastructure.gps.sources import (
    GpsdConfig,
    GpsdLocationSource,
    LocationSource,
    SimulatedLocationSource,
)
from .infrastructure.remote.client import ActivityApiClient, ApiConfig
from .infrastructure.remote.gateway import SyncGateway

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


def build_location_source(cfg: GPSConfig, simulate: bool | None = None) -> LocationSource:
    """gpsd by default; the simulated walker when mock mode is on."""
    use_mock = cfg.mock_mode if simulate is None else simulate
    if use_mock:
        return SimulatedLocationSource(
            start_lat=cfg.mock_lat,
            start_lon=cfg.mock_lon,
            speed_mps=cfg.mock_speed_mps,
            interval_secs=cfg.mock_interval_secs,
            accuracy_meters=cfg.mock_accuracy_m,
        )
    return GpsdLocationSource(
        GpsdConfig(
            host=cfg.host,
            port=cfg.port,
            reconnect_delay=cfg.reconnect_delay,
            timeout=cfg.timeout,
        )
    )


class ActivityTracker:
    """
    Real-time activity tracking service.

    Features:
    - Live stats and raw-sample subscriptions
    - Start/stop tracking sessions without blocking the caller
    - Background route and stats sync, optionally on an interval
    - Sensor and network faults never escape enable/disable
    """

    def __init__(
        self,
        source: LocationSource,
        client: ActivityApiClient,
        tracking: TrackingConfig | None = None,
        sync_interval_secs: float = 0.0,
        clock: Callable[[], datetime] = utc_now,
        on_error: ErrorCallback | None = None,
    ) -> None:
        cfg = tracking or TrackingConfig()
        self._on_error = on_error
        self.sync_interval_secs = sync_interval_secs

        self._hub = BroadcastHub()
        self._accumulator = StatsAccumulator(
            stride_length_m=cfg.stride_length_m,
            calories_per_step=cfg.calories_per_step,
            max_active_gap_minutes=cfg.max_active_gap_minutes,
        )
        self.gateway = SyncGateway(client, clock)
        self._machine = TrackingStateMachine(
            source=source,
            sample_filter=SampleFilter(
                accuracy_threshold_m=cfg.accuracy_threshold_m,
                min_movement_m=cfg.min_movement_m,
            ),
            accumulator=self._accumulator,
            recorder=RouteRecorder(),
            hub=self._hub,
            clock=clock,
            on_error=self._report,
            min_route_points=cfg.min_route_points,
        )

        self._pending: set[asyncio.Task[Any]] = set()
        self._sync_task: asyncio.Task[None] | None = None

    @classmethod
    def from_config(
        cls,
        cfg: StrideSyncConfig,
        on_error: ErrorCallback | None = None,
        simulate: bool | None = None,
    ) -> ActivityTracker:
        client = ActivityApiClient(
            ApiConfig.with_token_env(
                cfg.remote.token_env,
                base_url=cfg.remote.base_url,
                timeout=cfg.remote.timeout,
                today_path=cfg.remote.today_path,
                sync_path=cfg.remote.sync_path,
                routes_path=cfg.remote.routes_path,
            )
        )
        return cls(
            source=build_location_source(cfg.gps, simulate),
            client=client,
            tracking=cfg.tracking,
            sync_interval_secs=cfg.sync.interval_secs,
            on_error=on_error,
        )

    # ==================== State ====================

    @property
    def stats(self) -> ActivityStats:
        """Current totals (immutable snapshot)."""
        return self._accumulator.snapshot()

    @property
    def state(self) -> TrackingState:
        return self._machine.state

    @property
    def is_tracking(self) -> bool:
        return self._machine.is_tracking

    @property
    def session(self) -> TrackingSession | None:
        return self._machine.session

    def get_stats(self) -> dict[str, Any]:
        """Diagnostics for the hub and state machine."""
        return {
            "state": self.state.value,
            "pending_syncs": len(self._pending),
            "hub": self._hub.get_stats(),
            "samples": self._machine.get_stats(),
        }

    # ==================== Lifecycle ====================

    async def initialize(self) -> ActivityStats:
        """Seed totals from today's remote baseline and broadcast them."""
        baseline = await self.gateway.fetch_baseline()
        self._accumulator.seed(baseline)
        self._hub.publish_stats(self._accumulator.snapshot())
        return baseline

    async def aclose(self) -> None:
        """Stop tracking, flush pending syncs and release the HTTP session."""
        self.disable_tracking()
        self._cancel_periodic_sync()
        await self.drain()
        await self.gateway.client.close()

    # ==================== Subscriptions ====================

    def subscribe_stats(self, listener: StatsListener) -> Unsubscribe:
        return self._hub.subscribe_stats(listener, self.stats)

    def subscribe_raw_samples(self, listener: SampleListener) -> Unsubscribe:
        return self._hub.subscribe_samples(listener)

    # ==================== Tracking ====================

    def enable_tracking(self) -> bool:
        """
        Start a tracking session.

        Returns:
            True if a session started; False if already tracking or the
            location source could not be opened
        """
        started = self._machine.start()
        if started and self.sync_interval_secs > 0:
            self._start_periodic_sync()
        return started

    def disable_tracking(self) -> bool:
        """
        End the session and flush in the background.

        The route (if long enough) is saved first, then stats are synced.
        Calling this while idle does nothing.

        Returns:
            True if a session was stopped
        """
        outcome = self._machine.stop()
        if outcome is None:
            logger.debug("Tracking not active, nothing to disable")
            return False

        self._cancel_periodic_sync()
        self._spawn(self._flush(outcome.route, self.stats))
        return True

    async def sync_now(self) -> SyncResult:
        """Push current totals now. Never raises for remote failures."""
        result = await self.gateway.sync_stats(self.stats)
        if not result.success:
            self._report("sync", RemoteSyncError(result.error or "sync failed"))
        return result

    async def drain(self) -> None:
        """Wait for every background sync scheduled so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ==================== Internals ====================

    async def _flush(self, route: SyncedRoute | None, snapshot: ActivityStats) -> None:
        try:
            if route is not None:
                result = await self.gateway.save_route(route)
                if not result.success:
                    self._report("route", RemoteSyncError(result.error or "route save failed"))

            result = await self.gateway.sync_stats(snapshot)
            if not result.success:
                self._report("sync", RemoteSyncError(result.error or "sync failed"))
        except Exception as e:
            logger.error("Final flush failed: %s", e)
            self._report("sync", e)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error("No running event loop, dropping background sync")
            coro.close()
            return

        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _start_periodic_sync(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, periodic sync disabled")
            return
        self._sync_task = loop.create_task(self._periodic_sync_loop())

    def _cancel_periodic_sync(self) -> None:
        if self._sync_task is not None and not self._sync_task.done():
            self._sync_task.cancel()
        self._sync_task = None

    async def _periodic_sync_loop(self) -> None:
        logger.info("Periodic sync every %.0fs", self.sync_interval_secs)
        while self.is_tracking:
            try:
                await asyncio.sleep(self.sync_interval_secs)
                if not self.is_tracking:
                    return
                await self.sync_now()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Periodic sync error: %s", e)
                self._report("sync", e)

    def _report(self, origin: str, exc: BaseException) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(origin, exc)
        except Exception as e:
            logger.error("Error callback failed: %s", e)

"""
Tracking Session State Machine
==============================

Idle <-> Tracking. Owns the location subscription for the active session
and routes each sample through the filter into the accumulator, the route
recorder and the broadcast hub.

Every session gets a new token. Callbacks carry the token they were
registered with and are dropped once it no longer matches, so a sample
delivered after teardown can never touch a later session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..domain.models import PositionSample, SyncedRoute, TrackingSession, TrackingState
from ..infrastructure.gps.sources import Disposer, LocationSource
from .accumulator import StatsAccumulator
from .events import BroadcastHub
from .filtering import RejectReason, SampleFilter
from .route import RouteRecorder

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[str, BaseException], None]

# A route needs more than two points to be worth saving
MIN_ROUTE_POINTS = 3


@dataclass(frozen=True)
class SessionOutcome:
    """What a finished session leaves behind."""

    session_id: int
    point_count: int
    distance_meters: float
    route: Optional[SyncedRoute] = None


class TrackingStateMachine:
    def __init__(
        self,
        source: LocationSource,
        sample_filter: SampleFilter,
        accumulator: StatsAccumulator,
        recorder: RouteRecorder,
        hub: BroadcastHub,
        clock: Callable[[], datetime],
        on_error: ErrorCallback | None = None,
        min_route_points: int = MIN_ROUTE_POINTS,
    ) -> None:
        self._source = source
        self._filter = sample_filter
        self._accumulator = accumulator
        self._recorder = recorder
        self._hub = hub
        self._clock = clock
        self._on_error = on_error
        self.min_route_points = min_route_points

        self._state = TrackingState.IDLE
        self._session: TrackingSession | None = None
        self._token = 0
        self._dispose: Disposer | None = None
        self._stats = {
            "samples": 0,
            "accepted": 0,
            "rejected_inaccurate": 0,
            "rejected_jitter": 0,
            "stale": 0,
            "sensor_errors": 0,
        }

    @property
    def state(self) -> TrackingState:
        return self._state

    @property
    def is_tracking(self) -> bool:
        return self._state is TrackingState.TRACKING

    @property
    def session(self) -> TrackingSession | None:
        return self._session

    def get_stats(self) -> dict[str, int]:
        return dict(self._stats)

    # ==================== Transitions ====================

    def start(self) -> bool:
        """
        Idle -> Tracking.

        Returns:
            True if a new session started, False if already tracking or the
            source could not be subscribed
        """
        if self._state is TrackingState.TRACKING:
            logger.warning(
                "Tracking already active (session %d), ignoring enable",
                self._token,
            )
            return False

        self._token += 1
        token = self._token
        session = TrackingSession(session_id=token, start_time=self._clock())
        self._session = session
        self._recorder.start(session)
        self._state = TrackingState.TRACKING

        try:
            self._dispose = self._source.subscribe(
                lambda sample: self._handle_sample(token, sample),
                lambda exc: self._handle_error(token, exc),
            )
        except Exception as e:
            logger.error("Failed to subscribe to location source: %s", e)
            self._report("sensor", e)
            self._token += 1
            self._recorder.discard()
            self._session = None
            self._state = TrackingState.IDLE
            return False

        logger.info("Tracking started (session %d)", token)
        return True

    def stop(self) -> SessionOutcome | None:
        """
        Tracking -> Idle.

        Cancels the subscription and builds the route if the session has
        enough points. The session buffer is gone once this returns.

        Returns:
            SessionOutcome, or None if already idle
        """
        if self._state is TrackingState.IDLE:
            return None

        dispose, self._dispose = self._dispose, None
        self._token += 1
        self._state = TrackingState.IDLE

        if dispose is not None:
            try:
                dispose()
            except Exception as e:
                logger.warning("Location source disposer failed: %s", e)

        session = self._session
        self._session = None
        if session is None:
            return None

        point_count = session.point_count
        route: SyncedRoute | None = None
        if point_count >= self.min_route_points:
            # Reported distance is the accumulated total, baseline included
            route = self._recorder.finish(
                self._clock(), self._accumulator.snapshot().distance_meters
            )
        else:
            self._recorder.discard()

        logger.info(
            "Tracking stopped (session %d): %d points, %.1fm",
            session.session_id,
            point_count,
            session.distance_meters,
        )
        return SessionOutcome(
            session_id=session.session_id,
            point_count=point_count,
            distance_meters=session.distance_meters,
            route=route,
        )

    # ==================== Callbacks ====================

    def _handle_sample(self, token: int, sample: PositionSample) -> None:
        session = self._session
        if token != self._token or session is None:
            self._stats["stale"] += 1
            logger.debug("Ignoring sample from stale subscription %d", token)
            return

        self._stats["samples"] += 1
        decision = self._filter.evaluate(sample, session.last_accepted)

        if decision.accepted:
            self._stats["accepted"] += 1
            session.last_accepted = self._recorder.record(sample)
            if not decision.is_seed:
                self._accumulator.apply(decision.delta_meters, decision.elapsed_ms)
                session.distance_meters += decision.delta_meters
                self._hub.publish_stats(self._accumulator.snapshot())
        elif decision.reason is RejectReason.INACCURATE:
            self._stats["rejected_inaccurate"] += 1
            logger.debug(
                "Sample rejected: accuracy %.1fm > %.1fm",
                sample.accuracy_meters,
                self._filter.accuracy_threshold_m,
            )
        else:
            self._stats["rejected_jitter"] += 1
            logger.debug("Sample rejected: moved %.1fm", decision.delta_meters)

        # Raw listeners see every sample, accepted or not
        self._hub.publish_sample(sample)

    def _handle_error(self, token: int, exc: BaseException) -> None:
        if token != self._token:
            return
        self._stats["sensor_errors"] += 1
        logger.warning("GPS error: %s", exc)
        self._report("sensor", exc)

    def _report(self, origin: str, exc: BaseException) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(origin, exc)
        except Exception as e:
            logger.error("Error callback failed: %s", e)

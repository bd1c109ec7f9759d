"""Route Recorder - buffers accepted points into the current session."""

from __future__ import annotations

import math
from datetime import datetime

from ..domain.models import PositionSample, RoutePoint, SyncedRoute, TrackingSession


class RouteRecorder:
    """Append-only point buffer bound to one tracking session at a time."""

    def __init__(self) -> None:
        self._session: TrackingSession | None = None

    @property
    def is_recording(self) -> bool:
        return self._session is not None

    @property
    def points(self) -> tuple[RoutePoint, ...]:
        if self._session is None:
            return ()
        return tuple(self._session.points)

    def __len__(self) -> int:
        return 0 if self._session is None else len(self._session.points)

    def start(self, session: TrackingSession) -> None:
        session.points.clear()
        self._session = session

    def record(self, sample: PositionSample) -> RoutePoint | None:
        if self._session is None:
            return None
        point = RoutePoint.from_sample(sample)
        self._session.points.append(point)
        return point

    def finish(self, end_time: datetime, distance_meters: float) -> SyncedRoute | None:
        """
        Build the persisted route from the bound session and clear its buffer.

        Args:
            end_time: When tracking stopped
            distance_meters: Accumulated distance to report, floored

        Returns:
            The route, or None when nothing was being recorded
        """
        session = self._session
        if session is None:
            return None

        duration = max(0.0, session.elapsed_seconds(end_time))
        route = SyncedRoute(
            start_time=session.start_time,
            end_time=end_time,
            distance_meters=max(0, math.floor(distance_meters)),
            duration_seconds=math.floor(duration),
            points=tuple(session.points),
        )
        self.discard()
        return route

    def discard(self) -> None:
        """Drop the buffer without building a route."""
        if self._session is not None:
            self._session.points.clear()
        self._session = None

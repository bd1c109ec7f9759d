"""StrideSync Domain Models - Pydantic snapshots and session state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TrackingState(str, Enum):
    """Tracking state machine states."""

    IDLE = "idle"
    TRACKING = "tracking"


class PositionSample(BaseModel):
    """Single reading from a location source."""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    timestamp_ms: int
    accuracy_meters: float = Field(..., ge=0)  # horizontal accuracy radius

    @classmethod
    def now(
        cls, latitude: float, longitude: float, accuracy_meters: float
    ) -> PositionSample:
        """Build a sample stamped with the current wall clock."""
        ts = int(datetime.now(UTC).timestamp() * 1000)
        return cls(
            latitude=latitude,
            longitude=longitude,
            timestamp_ms=ts,
            accuracy_meters=accuracy_meters,
        )


class ActivityStats(BaseModel):
    """Immutable snapshot of cumulative activity totals."""

    model_config = ConfigDict(frozen=True)

    steps: int = Field(0, ge=0)
    distance_meters: float = Field(0.0, ge=0)
    calories: float = Field(0.0, ge=0)
    active_minutes: float = Field(0.0, ge=0)

    @classmethod
    def zero(cls) -> ActivityStats:
        return cls()

    @classmethod
    def from_remote(cls, data: dict[str, Any] | None) -> ActivityStats:
        """Parse the remote ``activity`` record; missing or null fields count as 0."""
        if not data:
            return cls.zero()
        return cls(
            steps=max(0, int(data.get("steps") or 0)),
            distance_meters=max(0.0, float(data.get("distance") or 0)),
            calories=max(0.0, float(data.get("calories") or 0)),
            active_minutes=max(0.0, float(data.get("activeTime") or 0)),
        )

    @property
    def distance_km(self) -> float:
        """Total distance in kilometers."""
        return self.distance_meters / 1000.0

    def to_sync_payload(self, day: str) -> dict[str, Any]:
        """Remote sync body; every numeric field is floored to an int."""
        return {
            "date": day,
            "steps": int(self.steps),
            "distance": int(self.distance_meters),
            "calories": int(self.calories),
            "activeTime": int(self.active_minutes),
        }


class RoutePoint(BaseModel):
    """Accepted point in a session's path."""

    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    timestamp_ms: int

    @classmethod
    def from_sample(cls, sample: PositionSample) -> RoutePoint:
        return cls(
            latitude=sample.latitude,
            longitude=sample.longitude,
            timestamp_ms=sample.timestamp_ms,
        )

    def to_payload(self) -> dict[str, Any]:
        return {"lat": self.latitude, "lng": self.longitude, "timestamp": self.timestamp_ms}


class SyncedRoute(BaseModel):
    """Persisted form of a finished session."""

    model_config = ConfigDict(frozen=True)

    start_time: datetime
    end_time: datetime
    distance_meters: int = Field(..., ge=0)
    duration_seconds: int = Field(..., ge=0)
    points: tuple[RoutePoint, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return {
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat(),
            "distance": self.distance_meters,
            "duration": self.duration_seconds,
            "routePoints": [p.to_payload() for p in self.points],
        }


class SyncResult(BaseModel):
    """Outcome of a remote sync call."""

    model_config = ConfigDict(frozen=True)

    success: bool
    error: str | None = None
    data: dict[str, Any] | None = None

    @classmethod
    def ok(cls, data: dict[str, Any] | None = None) -> SyncResult:
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, error: str) -> SyncResult:
        return cls(success=False, error=error)


@dataclass
class TrackingSession:
    """Mutable state of one enable/disable interval."""

    session_id: int
    start_time: datetime
    points: list[RoutePoint] = field(default_factory=list)
    last_accepted: RoutePoint | None = None
    distance_meters: float = 0.0

    @property
    def point_count(self) -> int:
        return len(self.points)

    def elapsed_seconds(self, now: datetime) -> float:
        return (now - self.start_time).total_seconds()

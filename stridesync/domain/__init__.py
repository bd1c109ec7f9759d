"""StrideSync Domain Layer - Core models and enums."""

from .models import (
    ActivityStats,
    PositionSample,
    RoutePoint,
    SyncedRoute,
    SyncResult,
    TrackingSession,
    TrackingState,
)

__all__ = [
    "ActivityStats",
    "PositionSample",
    "RoutePoint",
    "SyncResult",
    "SyncedRoute",
    "TrackingSession",
    "TrackingState",
]

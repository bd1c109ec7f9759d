"""StrideSync Core - filtering, accumulation, route recording and the tracking state machine."""

from .accumulator import StatsAccumulator
from .events import BroadcastHub, SampleListener, StatsListener, Unsubscribe
from .filtering import FilterDecision, RejectReason, SampleFilter
from .route import RouteRecorder
from .session import SessionOutcome, TrackingStateMachine

__all__ = [
    "BroadcastHub",
    "FilterDecision",
    "RejectReason",
    "RouteRecorder",
    "SampleFilter",
    "SampleListener",
    "SessionOutcome",
    "StatsAccumulator",
    "StatsListener",
    "TrackingStateMachine",
    "Unsubscribe",
]

"""
Sample Filter
=============

Decides whether a position sample is trustworthy and whether the movement
since the last accepted point is large enough to count.

Two gates, both must pass:
- accuracy: ``accuracy_meters`` must not exceed the threshold
- movement: distance from the last accepted point must reach the minimum

The first sample of a session has nothing to compare against; it passes
the movement gate as the seed and contributes no distance.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..domain.models import PositionSample, RoutePoint
from ..infrastructure.gps.distance import calculate_distance


class RejectReason(str, Enum):
    INACCURATE = "inaccurate"
    BELOW_THRESHOLD = "below_threshold"


@dataclass(frozen=True)
class FilterDecision:
    """Result of running a sample through both gates."""

    accepted: bool
    delta_meters: float = 0.0
    elapsed_ms: int = 0
    is_seed: bool = False
    reason: RejectReason | None = None


@dataclass(frozen=True)
class SampleFilter:
    accuracy_threshold_m: float = 30.0
    min_movement_m: float = 5.0

    def passes_accuracy(self, sample: PositionSample) -> bool:
        return sample.accuracy_meters <= self.accuracy_threshold_m

    def evaluate(
        self, sample: PositionSample, last_accepted: RoutePoint | None
    ) -> FilterDecision:
        if not self.passes_accuracy(sample):
            return FilterDecision(accepted=False, reason=RejectReason.INACCURATE)

        if last_accepted is None:
            return FilterDecision(accepted=True, is_seed=True)

        delta = calculate_distance(
            last_accepted.latitude,
            last_accepted.longitude,
            sample.latitude,
            sample.longitude,
        )
        # Always measured from the last accepted point; jitter does not accumulate
        if delta < self.min_movement_m:
            return FilterDecision(
                accepted=False,
                delta_meters=delta,
                reason=RejectReason.BELOW_THRESHOLD,
            )

        return FilterDecision(
            accepted=True,
            delta_meters=delta,
            elapsed_ms=sample.timestamp_ms - last_accepted.timestamp_ms,
        )

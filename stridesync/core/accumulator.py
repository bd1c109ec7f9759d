"""
Stats Accumulator
=================

Owns the live activity totals and turns accepted movement deltas into
distance, steps, calories and active time.

Usage:
    acc = StatsAccumulator()
    acc.seed(baseline)
    acc.apply(delta_meters=12.4, elapsed_ms=9_000)
    snapshot = acc.snapshot()
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from ..domain.models import ActivityStats

logger = logging.getLogger(__name__)

AVG_STRIDE_LENGTH_M = 0.762
CALORIES_PER_STEP = 0.04
MAX_ACTIVE_GAP_MINUTES = 5.0


@dataclass
class _Totals:
    steps: int = 0
    distance_meters: float = 0.0
    calories: float = 0.0
    active_minutes: float = 0.0


class StatsAccumulator:
    """
    Cumulative activity totals.

    Totals only grow while a session runs; ``seed`` and ``reset`` are the
    only ways to lower them. Callers only ever see frozen snapshots.
    """

    def __init__(
        self,
        stride_length_m: float = AVG_STRIDE_LENGTH_M,
        calories_per_step: float = CALORIES_PER_STEP,
        max_active_gap_minutes: float = MAX_ACTIVE_GAP_MINUTES,
    ) -> None:
        if stride_length_m <= 0:
            raise ValueError("stride_length_m must be positive")
        self.stride_length_m = stride_length_m
        self.calories_per_step = calories_per_step
        self.max_active_gap_minutes = max_active_gap_minutes
        self._totals = _Totals()

    def apply(self, delta_meters: float, elapsed_ms: int) -> ActivityStats:
        """
        Apply one accepted movement.

        Args:
            delta_meters: Distance since the last accepted point
            elapsed_ms: Time since the last accepted point

        Returns:
            The increment that was added to the totals
        """
        distance = max(0.0, delta_meters)
        steps = math.floor(distance / self.stride_length_m)
        calories = steps * self.calories_per_step

        minutes = elapsed_ms / 60000
        # Gaps of max_active_gap_minutes or more count as a pause
        active = minutes if 0 < minutes < self.max_active_gap_minutes else 0.0

        # Commit all four together
        t = self._totals
        t.distance_meters += distance
        t.steps += steps
        t.calories += calories
        t.active_minutes += active

        return ActivityStats(
            steps=steps,
            distance_meters=distance,
            calories=calories,
            active_minutes=active,
        )

    def seed(self, stats: ActivityStats) -> None:
        """Replace totals with a previously persisted baseline."""
        self._totals = _Totals(
            steps=stats.steps,
            distance_meters=stats.distance_meters,
            calories=stats.calories,
            active_minutes=stats.active_minutes,
        )
        logger.debug("Accumulator seeded: %s", stats)

    def reset(self) -> None:
        self._totals = _Totals()

    def snapshot(self) -> ActivityStats:
        t = self._totals
        return ActivityStats(
            steps=t.steps,
            distance_meters=t.distance_meters,
            calories=t.calories,
            active_minutes=t.active_minutes,
        )

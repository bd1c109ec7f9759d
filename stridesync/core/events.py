"""
StrideSync Broadcast Hub - Synchronous Listener Registries
==========================================================

Fans out live stats snapshots and raw position samples to UI code.

Features:
- Two independent registries (stats, raw samples)
- Registration order delivery, synchronous
- New stats listeners get the current snapshot immediately
- Listener errors are isolated and counted

Usage:
    hub = BroadcastHub()

    unsubscribe = hub.subscribe_stats(render, tracker.stats)
    hub.publish_stats(snapshot)
    unsubscribe()
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Generic, TypeAlias, TypeVar

from ..domain.models import ActivityStats, PositionSample

logger = logging.getLogger(__name__)

T = TypeVar("T")

StatsListener: TypeAlias = Callable[[ActivityStats], None]
SampleListener: TypeAlias = Callable[[PositionSample], None]
Unsubscribe: TypeAlias = Callable[[], None]


class _Registry(Generic[T]):
    """Ordered listener list with per-listener error isolation."""

    def __init__(self, name: str, stats: dict[str, int]) -> None:
        self.name = name
        self._listeners: list[Callable[[T], None]] = []
        self._stats = stats

    def __len__(self) -> int:
        return len(self._listeners)

    def add(self, listener: Callable[[T], None]) -> Unsubscribe:
        self._listeners.append(listener)
        logger.debug(
            "Subscribed to %s: %s",
            self.name,
            getattr(listener, "__name__", repr(listener)),
        )

        removed = False

        def unsubscribe() -> None:
            nonlocal removed
            if removed:
                return
            removed = True
            # Identity match so a listener registered twice is removed once per handle
            for i, registered in enumerate(self._listeners):
                if registered is listener:
                    del self._listeners[i]
                    return

        return unsubscribe

    def call(self, listener: Callable[[T], None], payload: T) -> None:
        try:
            listener(payload)
            self._stats["deliveries"] += 1
        except Exception as e:
            logger.error(
                "Listener error for %s: %s - %s",
                self.name,
                getattr(listener, "__name__", repr(listener)),
                e,
            )
            self._stats["listener_errors"] += 1

    def notify(self, payload: T) -> None:
        # Copy so listeners may unsubscribe while being notified
        for listener in list(self._listeners):
            self.call(listener, payload)


class BroadcastHub:
    """
    Stats and raw-sample fan-out.

    Payloads are frozen snapshots, so listeners cannot mutate tracker state
    through the callback.
    """

    def __init__(self) -> None:
        self._stats = {
            "stats_published": 0,
            "samples_published": 0,
            "deliveries": 0,
            "listener_errors": 0,
        }
        self._stats_listeners: _Registry[ActivityStats] = _Registry("stats", self._stats)
        self._sample_listeners: _Registry[PositionSample] = _Registry("samples", self._stats)

    def subscribe_stats(
        self, listener: StatsListener, current: ActivityStats
    ) -> Unsubscribe:
        """
        Register a stats listener and call it once with ``current``.

        Returns:
            Handle that removes the listener; safe to call more than once
        """
        unsubscribe = self._stats_listeners.add(listener)
        self._stats_listeners.call(listener, current)
        return unsubscribe

    def subscribe_samples(self, listener: SampleListener) -> Unsubscribe:
        """Register a raw-sample listener. No initial call."""
        return self._sample_listeners.add(listener)

    def publish_stats(self, snapshot: ActivityStats) -> None:
        self._stats["stats_published"] += 1
        self._stats_listeners.notify(snapshot)

    def publish_sample(self, sample: PositionSample) -> None:
        self._stats["samples_published"] += 1
        self._sample_listeners.notify(sample)

    def get_stats(self) -> dict[str, Any]:
        """Get hub statistics."""
        return {
            **self._stats,
            "stats_listeners": len(self._stats_listeners),
            "sample_listeners": len(self._sample_listeners),
        }

"""Shared fakes for tracker tests."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from stridesync.domain.models import PositionSample
from stridesync.infrastructure.gps.distance import offset_position
from stridesync.infrastructure.remote.client import ActivityApiClient

START = datetime(2025, 6, 1, 7, 30, tzinfo=UTC)
START_MS = int(START.timestamp() * 1000)


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeLocationSource:
    """Records subscriptions and lets tests push samples by hand."""

    def __init__(self) -> None:
        self.subscriptions: list[dict[str, Any]] = []
        self.dispose_calls = 0
        self.fail_with: Exception | None = None

    def subscribe(
        self,
        on_sample: Callable[[PositionSample], None],
        on_error: Callable[[BaseException], None],
    ) -> Callable[[], None]:
        if self.fail_with is not None:
            raise self.fail_with

        sub = {"on_sample": on_sample, "on_error": on_error, "active": True}
        self.subscriptions.append(sub)

        def dispose() -> None:
            self.dispose_calls += 1
            sub["active"] = False

        return dispose

    @property
    def active(self) -> bool:
        return bool(self.subscriptions) and self.subscriptions[-1]["active"]

    def emit(self, sample: PositionSample) -> None:
        # Delivers even after dispose, like a callback already in flight
        self.subscriptions[-1]["on_sample"](sample)

    def emit_error(self, exc: BaseException) -> None:
        self.subscriptions[-1]["on_error"](exc)


def sample_at(
    meters_north: float,
    seconds: float = 0.0,
    accuracy: float = 5.0,
    origin: tuple[float, float] = (0.0, 0.0),
) -> PositionSample:
    """Sample ``meters_north`` of ``origin``, ``seconds`` after START."""
    lat, lon = offset_position(origin[0], origin[1], 0.0, meters_north)
    return PositionSample(
        latitude=lat,
        longitude=lon,
        timestamp_ms=START_MS + int(seconds * 1000),
        accuracy_meters=accuracy,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def source() -> FakeLocationSource:
    return FakeLocationSource()


@pytest.fixture
def api_client() -> MagicMock:
    client = MagicMock(spec=ActivityApiClient)
    client.get_today_activity = AsyncMock(return_value={"activity": None, "gamification": None})
    client.post_activity_sync = AsyncMock(
        return_value={"activity": {"steps": 0}, "gamification": {"xp": 10}, "earnedBadges": []}
    )
    client.post_route = AsyncMock(return_value={"id": 1})
    client.close = AsyncMock()
    return client


@pytest.fixture
def make_sample() -> Callable[..., PositionSample]:
    return sample_at

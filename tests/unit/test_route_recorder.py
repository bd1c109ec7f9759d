"""
Route Recorder Unit Tests
=========================
"""

from datetime import timedelta

from stridesync.core.route import RouteRecorder
from stridesync.domain.models import TrackingSession


def _session(clock):
    return TrackingSession(session_id=1, start_time=clock())


class TestRouteRecorder:
    def test_not_recording_by_default(self, make_sample):
        rec = RouteRecorder()
        assert rec.is_recording is False
        assert rec.record(make_sample(0)) is None
        assert len(rec) == 0

    def test_records_in_arrival_order(self, clock, make_sample):
        rec = RouteRecorder()
        session = _session(clock)
        rec.start(session)

        # Out-of-order timestamps are kept as delivered
        rec.record(make_sample(0, seconds=10))
        rec.record(make_sample(10, seconds=5))
        rec.record(make_sample(20, seconds=20))

        assert [p.timestamp_ms for p in rec.points] == [
            session.points[0].timestamp_ms,
            session.points[1].timestamp_ms,
            session.points[2].timestamp_ms,
        ]
        assert rec.points[0].timestamp_ms > rec.points[1].timestamp_ms

    def test_no_deduplication(self, clock, make_sample):
        rec = RouteRecorder()
        rec.start(_session(clock))
        s = make_sample(0)
        rec.record(s)
        rec.record(s)
        assert len(rec) == 2

    def test_finish_builds_route_and_clears(self, clock, make_sample):
        rec = RouteRecorder()
        session = _session(clock)
        rec.start(session)
        for i in range(4):
            rec.record(make_sample(i * 10, seconds=i * 5))

        route = rec.finish(clock.now + timedelta(seconds=95.7), distance_meters=123.9)

        assert route is not None
        assert route.distance_meters == 123
        assert route.duration_seconds == 95
        assert len(route.points) == 4
        assert route.start_time == session.start_time
        assert session.points == []
        assert rec.is_recording is False

    def test_finish_without_start(self, clock):
        assert RouteRecorder().finish(clock(), 0.0) is None

    def test_discard(self, clock, make_sample):
        rec = RouteRecorder()
        session = _session(clock)
        rec.start(session)
        rec.record(make_sample(0))
        rec.discard()
        assert session.points == []
        assert rec.points == ()

    def test_route_payload_shape(self, clock, make_sample):
        rec = RouteRecorder()
        rec.start(_session(clock))
        rec.record(make_sample(0))
        clock.advance(60)
        payload = rec.finish(clock(), 0.0).to_payload()

        assert set(payload) == {"startTime", "endTime", "distance", "duration", "routePoints"}
        assert payload["duration"] == 60
        assert set(payload["routePoints"][0]) == {"lat", "lng", "timestamp"}

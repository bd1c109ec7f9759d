"""
Broadcast Hub Unit Tests
========================
"""

from stridesync.core.events import BroadcastHub
from stridesync.domain.models import ActivityStats


class TestStatsListeners:
    def test_new_listener_gets_current_snapshot_once(self):
        hub = BroadcastHub()
        received = []

        hub.subscribe_stats(received.append, ActivityStats.zero())

        assert received == [ActivityStats.zero()]

    def test_publish_in_registration_order(self):
        hub = BroadcastHub()
        calls = []
        hub.subscribe_stats(lambda s: calls.append(("a", s.steps)), ActivityStats.zero())
        hub.subscribe_stats(lambda s: calls.append(("b", s.steps)), ActivityStats.zero())
        calls.clear()

        hub.publish_stats(ActivityStats(steps=12))

        assert calls == [("a", 12), ("b", 12)]

    def test_unsubscribe(self):
        hub = BroadcastHub()
        received = []
        unsubscribe = hub.subscribe_stats(received.append, ActivityStats.zero())

        unsubscribe()
        unsubscribe()  # second call is harmless
        hub.publish_stats(ActivityStats(steps=1))

        assert received == [ActivityStats.zero()]
        assert hub.get_stats()["stats_listeners"] == 0

    def test_unsubscribe_removes_only_its_registration(self):
        hub = BroadcastHub()
        received = []
        first = hub.subscribe_stats(received.append, ActivityStats.zero())
        hub.subscribe_stats(received.append, ActivityStats.zero())
        received.clear()

        first()
        hub.publish_stats(ActivityStats(steps=3))

        assert len(received) == 1

    def test_listener_error_is_isolated(self):
        hub = BroadcastHub()
        received = []

        def broken(_stats):
            raise RuntimeError("render failed")

        hub.subscribe_stats(broken, ActivityStats.zero())
        hub.subscribe_stats(received.append, ActivityStats.zero())
        hub.publish_stats(ActivityStats(steps=7))

        assert received[-1].steps == 7
        assert hub.get_stats()["listener_errors"] == 2

    def test_listener_may_unsubscribe_during_publish(self):
        hub = BroadcastHub()
        received = []
        handle = {}

        def once(stats):
            received.append(stats)
            if stats.steps:
                handle["unsub"]()

        handle["unsub"] = hub.subscribe_stats(once, ActivityStats.zero())
        hub.publish_stats(ActivityStats(steps=1))
        hub.publish_stats(ActivityStats(steps=2))

        assert [s.steps for s in received] == [0, 1]


class TestSampleListeners:
    def test_no_initial_call(self, make_sample):
        hub = BroadcastHub()
        received = []
        hub.subscribe_samples(received.append)
        assert received == []

        sample = make_sample(0)
        hub.publish_sample(sample)
        assert received == [sample]

    def test_registries_are_independent(self, make_sample):
        hub = BroadcastHub()
        stats_seen = []
        samples_seen = []
        hub.subscribe_stats(stats_seen.append, ActivityStats.zero())
        hub.subscribe_samples(samples_seen.append)

        hub.publish_sample(make_sample(0))

        assert len(stats_seen) == 1
        assert len(samples_seen) == 1
        stats = hub.get_stats()
        assert stats["samples_published"] == 1
        assert stats["stats_published"] == 0

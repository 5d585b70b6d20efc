"""
Tests for the consumer registry fan-out.
"""

from opsconsole.services.maintenance.registry import ConsumerRegistry


class TestSubscribe:
    """Tests for registering consumers."""

    def test_no_call_before_first_publish(self):
        registry = ConsumerRegistry()
        received = []

        registry.subscribe(received.append)

        assert received == []
        assert registry.current is None

    def test_late_subscriber_gets_current_value_immediately(self):
        registry = ConsumerRegistry()
        registry.publish("v1")
        received = []

        registry.subscribe(received.append)

        assert received == ["v1"]

    def test_late_subscriber_does_not_replay_history(self):
        """Only the latest value is delivered, not intermediate ones."""
        registry = ConsumerRegistry()
        registry.publish("v1")
        registry.publish("v2")
        received = []

        registry.subscribe(received.append)

        assert received == ["v2"]


class TestPublish:
    """Tests for publishing to consumers."""

    def test_all_consumers_receive_in_publish_order(self):
        registry = ConsumerRegistry()
        first, second = [], []
        registry.subscribe(first.append)
        registry.subscribe(second.append)

        registry.publish(1)
        registry.publish(2)

        assert first == [1, 2]
        assert second == [1, 2]

    def test_failing_consumer_does_not_block_others(self):
        registry = ConsumerRegistry()
        received = []

        def broken(value):
            raise RuntimeError("render failed")

        registry.subscribe(broken)
        registry.subscribe(received.append)

        registry.publish("v1")

        assert received == ["v1"]
        assert registry.current == "v1"

    def test_reset_forgets_value_but_keeps_consumers(self):
        registry = ConsumerRegistry()
        received = []
        registry.subscribe(received.append)
        registry.publish("v1")

        registry.reset()

        assert registry.current is None
        assert len(registry) == 1


class TestUnsubscribe:
    """Tests for removing consumers."""

    def test_unsubscribed_consumer_not_called(self):
        registry = ConsumerRegistry()
        received = []
        unsubscribe = registry.subscribe(received.append)

        unsubscribe()
        registry.publish("v1")

        assert received == []
        assert len(registry) == 0

    def test_unsubscribe_is_idempotent(self):
        registry = ConsumerRegistry()
        other = []
        unsubscribe = registry.subscribe(lambda v: None)
        registry.subscribe(other.append)

        for _ in range(5):
            unsubscribe()

        registry.publish("v1")
        assert len(registry) == 1
        assert other == ["v1"]

    def test_unsubscribe_during_publish_stops_pending_delivery(self):
        """A consumer removed by an earlier consumer is skipped in the same publish."""
        registry = ConsumerRegistry()
        received = []
        handles = {}

        def first(value):
            handles["second"]()

        registry.subscribe(first)
        handles["second"] = registry.subscribe(received.append)

        registry.publish("v1")

        assert received == []

    def test_clear_deactivates_everyone(self):
        registry = ConsumerRegistry()
        received = []
        unsubscribe = registry.subscribe(received.append)

        registry.clear()
        registry.publish("v1")
        unsubscribe()

        assert received == []
        assert len(registry) == 0

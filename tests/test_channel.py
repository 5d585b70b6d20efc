"""
Tests for the ConfigChannel subscription lifecycle and fail-open policy.
"""

import pytest

from opsconsole.services.maintenance import ChannelPhase, ConfigChannel, InMemoryDocumentSource
from opsconsole.common.exceptions import SubscriptionError

from conftest import FIXED_NOW


def assert_default_state(snapshot):
    assert snapshot.global_maintenance is False
    assert snapshot.partial is False
    assert snapshot.planned is False
    assert snapshot.ai_disabled is False
    assert snapshot.license_maintenance is False
    assert snapshot.message == ""
    assert snapshot.planned_time is None
    assert snapshot.enabled_by is None


class TestAttach:
    """Tests for attaching consumers."""

    def test_first_attach_opens_one_subscription(self, channel, manual_source):
        attachment = channel.attach()

        assert manual_source.subscribe_count == 1
        assert manual_source.latest["document_id"] == "maintenance"
        assert channel.phase is ChannelPhase.OPENING
        assert attachment.loading is True
        assert attachment.snapshot is None

    def test_second_attach_reuses_subscription(self, channel, manual_source):
        channel.attach()
        channel.attach()

        assert manual_source.subscribe_count == 1
        assert channel.consumer_count == 2

    def test_attach_after_event_returns_current_snapshot(self, channel, manual_source):
        first = []
        channel.attach(first.append)
        manual_source.push({"global": True, "message": "outage"})

        second = []
        attachment = channel.attach(second.append)

        assert attachment.loading is False
        assert attachment.snapshot == first[-1]
        assert second == [first[-1]]

    def test_first_event_clears_loading(self, channel, manual_source):
        received = []
        channel.attach(received.append)

        manual_source.push({"partial": True})

        assert channel.loading is False
        assert channel.phase is ChannelPhase.LIVE
        assert received[-1].partial is True
        assert received[-1].updated_at == FIXED_NOW

    def test_synchronous_source_delivers_during_attach(self, clock):
        source = InMemoryDocumentSource({"maintenance": {"planned": True}})
        channel = ConfigChannel(source, clock=clock)

        attachment = channel.attach()

        assert attachment.loading is False
        assert attachment.snapshot.planned is True


class TestDetach:
    """Tests for detaching consumers and closing the subscription."""

    def test_last_detach_closes_subscription_once(self, channel, manual_source):
        a = channel.attach()
        b = channel.attach()

        channel.detach(a.handle)
        assert manual_source.unsubscribe_count == 0

        channel.detach(b.handle)
        assert manual_source.unsubscribe_count == 1
        assert channel.phase is ChannelPhase.CLOSED

    def test_repeated_detach_is_noop(self, channel, manual_source):
        a = channel.attach()
        b = channel.attach()

        for _ in range(5):
            channel.detach(a.handle)

        assert channel.consumer_count == 1
        assert manual_source.unsubscribe_count == 0

        channel.detach(b.handle)
        channel.detach(b.handle)
        assert manual_source.unsubscribe_count == 1

    def test_detached_consumer_gets_no_more_snapshots(self, channel, manual_source):
        received = []
        keep = channel.attach()
        attachment = channel.attach(received.append)
        manual_source.push({"global": True})

        channel.detach(attachment.handle)
        manual_source.push({"partial": True})

        assert len(received) == 1
        assert channel.snapshot.partial is True
        channel.detach(keep.handle)

    def test_events_after_close_are_ignored(self, channel, manual_source):
        received = []
        attachment = channel.attach(received.append)
        channel.detach(attachment.handle)

        # In-flight event from the closed subscription
        manual_source.push({"global": True})
        manual_source.error(RuntimeError("late"))

        assert received == []
        assert channel.snapshot is None

    def test_reattach_after_close_starts_loading_again(self, channel, manual_source):
        attachment = channel.attach()
        manual_source.push({"global": True})
        channel.detach(attachment.handle)

        again = channel.attach()

        assert manual_source.subscribe_count == 2
        assert again.loading is True
        assert again.snapshot is None

    def test_detach_from_inside_callback(self, clock):
        source = InMemoryDocumentSource({"maintenance": {"global": True}})
        channel = ConfigChannel(source, clock=clock)
        handles = {}
        received = []

        def once(snapshot):
            received.append(snapshot)
            if "self" in handles:
                channel.detach(handles["self"])

        handles["self"] = channel.attach(once).handle
        source.update_document("maintenance", message="second")

        assert len(received) == 2
        assert channel.consumer_count == 0
        assert source.listener_count("maintenance") == 0

    def test_close_detaches_everyone(self, channel, manual_source):
        a = channel.attach()
        channel.attach()

        channel.close()

        assert channel.consumer_count == 0
        assert manual_source.unsubscribe_count == 1
        channel.detach(a.handle)
        assert manual_source.unsubscribe_count == 1


class TestFailOpen:
    """Tests for transport failure handling."""

    def test_error_publishes_default_snapshot(self, channel, manual_source):
        received = []
        channel.attach(received.append)
        manual_source.push({"global": True, "partial": True, "message": "outage", "enabledBy": "ops"})

        manual_source.error(SubscriptionError("permission denied", "maintenance"))

        assert len(received) == 2
        assert_default_state(received[-1])
        assert received[-1].updated_at == FIXED_NOW
        assert channel.loading is False

    def test_error_before_first_event_clears_loading(self, channel, manual_source):
        received = []
        channel.attach(received.append)

        manual_source.error(ConnectionError("offline"))

        assert channel.loading is False
        assert channel.phase is ChannelPhase.LIVE
        assert_default_state(received[-1])

    def test_error_keeps_subscription_live(self, channel, manual_source):
        received = []
        channel.attach(received.append)
        manual_source.error(ConnectionError("offline"))

        manual_source.push({"global": True})

        assert manual_source.subscribe_count == 1
        assert received[-1].global_maintenance is True

    def test_subscribe_raising_is_absorbed(self, clock):
        class BrokenSource:
            def subscribe(self, document_id, on_event, on_error):
                raise ConnectionError("no route to host")

        channel = ConfigChannel(BrokenSource(), clock=clock)

        attachment = channel.attach()

        assert attachment.loading is False
        assert_default_state(attachment.snapshot)

    @pytest.mark.parametrize("error", [
        ConnectionError("reset"),
        PermissionError("denied"),
        SubscriptionError("channel timed_out"),
    ])
    def test_consumer_callback_never_sees_exception(self, channel, manual_source, error):
        received = []
        channel.attach(received.append)

        manual_source.error(error)

        assert all(not isinstance(item, Exception) for item in received)

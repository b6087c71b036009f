from __future__ import annotations

import json
import threading
import time

import pytest

from logbridge.config import PublisherConfig
from logbridge.errors import PublishFailure, PublishTimeout
from logbridge.publish import Ack, PublishReport, Publisher


def _ids(broker) -> list[str]:
    return [json.loads(value)["payload"]["id"] for _, value in broker.sent]


class TestOrderedPublish:
    """Tests for ordered, ack-gated publishing."""

    def test_publishes_in_order_with_increasing_keys(self, recording_broker, operations) -> None:
        with Publisher(recording_broker, PublisherConfig(key_start=100)) as publisher:
            report = publisher.publish(operations)

        assert [key for key, _ in recording_broker.sent] == [100, 101, 102, 103, 104]
        assert _ids(recording_broker) == ["0", "1", "2", "3", "4"]
        assert report.published == 5
        assert report.last_ack.key == 104

    def test_empty_batch_reports_no_ack(self, recording_broker) -> None:
        with Publisher(recording_broker) as publisher:
            report = publisher.publish([])

        assert report == PublishReport(published=0, last_ack=None)

    def test_report_carries_last_ack(self, recording_broker, operations) -> None:
        with Publisher(recording_broker, PublisherConfig(key_start=1)) as publisher:
            report = publisher.publish(operations[:2])

        assert report == PublishReport(published=2, last_ack=Ack(key=2, location="0-2"))

    def test_next_send_waits_for_previous_ack(self, manual_broker, operations) -> None:
        result = {}

        def run() -> None:
            with Publisher(manual_broker, PublisherConfig(key_start=1)) as publisher:
                result["report"] = publisher.publish(operations)

        thread = threading.Thread(target=run, daemon=True)
        thread.start()

        for index in range(len(operations)):
            assert manual_broker.wait_for_sends(index + 1)
            # Give the publisher a chance to misbehave before the ack arrives.
            time.sleep(0.05)
            assert len(manual_broker.sent) == index + 1
            manual_broker.ack(index)

        thread.join(timeout=2.0)
        assert not thread.is_alive()
        assert result["report"].published == 5
        assert [key for key, _ in manual_broker.sent] == [1, 2, 3, 4, 5]

    def test_default_keys_start_at_current_epoch_ms(self, recording_broker, operations) -> None:
        before = int(time.time() * 1000)
        with Publisher(recording_broker) as publisher:
            publisher.publish(operations[:2])

        first, second = (key for key, _ in recording_broker.sent)
        assert first >= before
        assert second == first + 1

    def test_keys_keep_increasing_across_batches(self, recording_broker, operations) -> None:
        with Publisher(recording_broker, PublisherConfig(key_start=10)) as publisher:
            publisher.publish(operations[:2])
            publisher.publish(operations[2:4])

        assert [key for key, _ in recording_broker.sent] == [10, 11, 12, 13]


class TestFailures:
    """Tests for failure propagation and resource release."""

    def test_delivery_failure_aborts_remaining_batch(self, broker_factory, operations) -> None:
        broker = broker_factory(fail_on=(3,))

        with pytest.raises(PublishFailure, match="broker went away"):
            with Publisher(broker, PublisherConfig(key_start=1)) as publisher:
                publisher.publish(operations)

        assert len(broker.sent) == 3
        assert broker.calls[-2:] == ["flush", "close"]

    def test_synchronous_send_error_is_a_publish_failure(self, recording_broker, operations) -> None:
        def boom(key, value):
            raise OSError("connection refused")

        recording_broker.send = boom

        with pytest.raises(PublishFailure, match="connection refused"):
            with Publisher(recording_broker) as publisher:
                publisher.publish(operations)

        assert recording_broker.calls == ["flush", "close"]

    def test_missing_ack_times_out(self, manual_broker, operations) -> None:
        with pytest.raises(PublishTimeout):
            with Publisher(manual_broker, PublisherConfig(ack_timeout_s=0.05)) as publisher:
                publisher.publish(operations)

        assert len(manual_broker.sent) == 1
        assert manual_broker.calls == ["flush", "close"]

    def test_timeout_is_a_publish_failure(self) -> None:
        assert issubclass(PublishTimeout, PublishFailure)

    def test_retry_resends_same_key_before_moving_on(self, broker_factory, operations) -> None:
        broker = broker_factory(fail_on=(2,))
        config = PublisherConfig(key_start=1, max_retries=1, retry_backoff_s=0)

        with Publisher(broker, config) as publisher:
            report = publisher.publish(operations)

        assert [key for key, _ in broker.sent] == [1, 2, 2, 3, 4, 5]
        assert _ids(broker) == ["0", "1", "1", "2", "3", "4"]
        assert report.published == 5

    def test_retries_are_bounded(self, broker_factory, operations) -> None:
        broker = broker_factory(fail_on=(1, 2, 3))
        config = PublisherConfig(key_start=1, max_retries=2, retry_backoff_s=0)

        with pytest.raises(PublishFailure):
            with Publisher(broker, config) as publisher:
                publisher.publish(operations)

        assert [key for key, _ in broker.sent] == [1, 1, 1]

    def test_flush_error_does_not_mask_publish_error(self, broker_factory, operations) -> None:
        broker = broker_factory(fail_on=(1,))

        def bad_flush():
            broker.calls.append("flush")
            raise RuntimeError("flush failed")

        broker.flush = bad_flush

        with pytest.raises(PublishFailure):
            with Publisher(broker) as publisher:
                publisher.publish(operations)

        assert broker.calls[-1] == "close"

    def test_flush_error_on_success_propagates(self, recording_broker, operations) -> None:
        def bad_flush():
            raise RuntimeError("flush failed")

        recording_broker.flush = bad_flush

        with pytest.raises(RuntimeError, match="flush failed"):
            with Publisher(recording_broker) as publisher:
                publisher.publish(operations)

        assert recording_broker.calls[-1] == "close"

    def test_close_error_does_not_mask_publish_error(self, broker_factory, operations) -> None:
        broker = broker_factory(fail_on=(2,))

        def bad_close():
            broker.calls.append("close")
            raise RuntimeError("close failed")

        broker.close = bad_close

        with pytest.raises(PublishFailure, match="broker went away"):
            with Publisher(broker) as publisher:
                publisher.publish(operations)

        assert broker.calls[-2:] == ["flush", "close"]

    def test_close_error_does_not_mask_flush_error(self, recording_broker, operations) -> None:
        def bad_flush():
            raise RuntimeError("flush failed")

        def bad_close():
            raise RuntimeError("close failed")

        recording_broker.flush = bad_flush
        recording_broker.close = bad_close

        with pytest.raises(RuntimeError, match="flush failed"):
            with Publisher(recording_broker) as publisher:
                publisher.publish(operations)

    def test_close_error_on_success_propagates(self, recording_broker, operations) -> None:
        def bad_close():
            raise RuntimeError("close failed")

        recording_broker.close = bad_close

        with pytest.raises(RuntimeError, match="close failed"):
            with Publisher(recording_broker) as publisher:
                publisher.publish(operations)


class TestLifecycle:
    """Tests for scoped use and shutdown."""

    def test_closes_broker_after_success(self, recording_broker, operations) -> None:
        with Publisher(recording_broker) as publisher:
            publisher.publish(operations)

        assert recording_broker.calls[-2:] == ["flush", "close"]
        assert recording_broker.calls.count("close") == 1

    def test_publish_outside_context_is_rejected(self, recording_broker, operations) -> None:
        publisher = Publisher(recording_broker)

        with pytest.raises(RuntimeError, match="not active"):
            publisher.publish(operations)

        assert recording_broker.sent == []

    def test_stop_prevents_further_sends(self, recording_broker, operations) -> None:
        with Publisher(recording_broker) as publisher:

            def feed():
                for index, operation in enumerate(operations):
                    if index == 2:
                        publisher.stop()
                    yield operation

            report = publisher.publish(feed())

        assert report.published == 2
        assert len(recording_broker.sent) == 2

from __future__ import annotations

import threading
from concurrent.futures import Future

import pytest

from logbridge.models import Member, Operation, OperationType, EntityType
from logbridge.publish import Ack


class RecordingBroker:
    """Broker double that records sends and acknowledges immediately."""

    destination = "test_stream"

    def __init__(self, fail_on: tuple[int, ...] = ()) -> None:
        self.sent: list[tuple[int, bytes]] = []
        self.calls: list[str] = []
        self.fail_on = set(fail_on)

    def send(self, key: int, value: bytes) -> Future:
        self.sent.append((key, value))
        self.calls.append("send")
        future: Future = Future()
        if len(self.sent) in self.fail_on:
            future.set_exception(ConnectionError("broker went away"))
        else:
            future.set_result(Ack(key=key, location=f"0-{len(self.sent)}"))
        return future

    def flush(self) -> None:
        self.calls.append("flush")

    def close(self) -> None:
        self.calls.append("close")


class ManualAckBroker(RecordingBroker):
    """Broker double whose acknowledgments are released explicitly by the test."""

    def __init__(self) -> None:
        super().__init__()
        self.futures: list[Future] = []
        self.sent_event = threading.Condition()

    def send(self, key: int, value: bytes) -> Future:
        future: Future = Future()
        with self.sent_event:
            self.sent.append((key, value))
            self.futures.append(future)
            self.sent_event.notify_all()
        return future

    def wait_for_sends(self, count: int, timeout: float = 2.0) -> bool:
        with self.sent_event:
            return self.sent_event.wait_for(lambda: len(self.sent) >= count, timeout=timeout)

    def ack(self, index: int) -> None:
        key = self.sent[index][0]
        self.futures[index].set_result(Ack(key=key, location=f"0-{index}"))


@pytest.fixture
def recording_broker() -> RecordingBroker:
    return RecordingBroker()


@pytest.fixture
def manual_broker() -> ManualAckBroker:
    return ManualAckBroker()


@pytest.fixture
def operations() -> list[Operation]:
    return [
        Operation(
            timestamp=1000 + i,
            operation_type=OperationType.DELETE,
            entity_type=EntityType.MEMBER,
            payload=Member(id=str(i)),
        )
        for i in range(5)
    ]


@pytest.fixture
def broker_factory():
    """
    Factory fixture for RecordingBroker instances.

    Usage:
        broker = broker_factory(fail_on=(2,))  # the 2nd send fails
    """
    return RecordingBroker

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class Ack:
    """Broker confirmation that the message with ``key`` was accepted."""

    key: int
    # Broker-specific position: a Redis entry id or "partition:offset".
    location: str


@runtime_checkable
class Broker(Protocol):
    """
    Output collaborator of the Publisher.

    ``send`` hands one message to the broker and returns a future that
    resolves to an Ack once the broker has durably accepted it, or to the
    delivery exception. Messages are delivered in call order.
    """

    @property
    def destination(self) -> str:
        """Stream or topic name, used for logging and metric labels."""
        ...

    def send(self, key: int, value: bytes) -> Future[Ack]:
        """Send one message; the returned future carries the acknowledgment."""
        ...

    def flush(self) -> None:
        """Push out any buffered messages."""
        ...

    def close(self) -> None:
        """Release the broker connection."""
        ...

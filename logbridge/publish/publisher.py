from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Optional

from ..config import MAX_KEY, PublisherConfig
from ..errors import PublishError, PublishFailure, PublishTimeout
from ..metrics import observe_publish, observe_publish_failure
from ..models import Operation
from .broker import Ack, Broker
from .codec import encode_operation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishReport:
    published: int
    last_ack: Optional[Ack] = None


class Publisher:
    """
    Ack-gated, strictly ordered Operation publisher.

    For each Operation, in order:
    1) assign the next key
    2) broker.send(key, value)
    3) block until the acknowledgment arrives (or ack_timeout_s expires)

    Only one Operation is ever in flight, so the broker sees Operations in
    exactly the order they were produced. Retries re-send the same Operation
    with the same key before anything after it is sent.

    Any failure that survives the retries aborts the remaining batch and
    propagates. The broker is flushed then closed on every exit path.

    Usage:
        with Publisher(broker, PublisherConfig()) as publisher:
            report = publisher.publish(operations)
    """

    def __init__(self, broker: Broker, config: Optional[PublisherConfig] = None) -> None:
        self.broker = broker
        self.config = config or PublisherConfig()
        start = self.config.key_start
        if start is None:
            start = int(time.time() * 1000)
        self._next_key = start
        self._active = False
        self._stopping = threading.Event()

    def __enter__(self) -> "Publisher":
        if self._active:
            raise RuntimeError("Publisher is already active; nested use is not allowed")
        self._active = True
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._active = False
        flush_error: Optional[Exception] = None
        try:
            self.broker.flush()
        except Exception as err:
            if exc_type is None:
                flush_error = err
            else:
                # Keep the original publish error; the flush error is secondary.
                logger.exception("Broker flush failed while handling %s", exc_type.__name__)

        try:
            self.broker.close()
        except Exception:
            if exc_type is None and flush_error is None:
                raise
            logger.exception("Broker close failed after an earlier error")

        if flush_error is not None:
            raise flush_error

        # propagate exceptions (if any)
        return False

    def stop(self) -> None:
        """
        Signal graceful shutdown.

        The Operation currently awaiting its acknowledgment completes; no
        further Operations are pulled from the input.
        """
        self._stopping.set()

    def publish(self, operations: Iterable[Operation]) -> PublishReport:
        """
        Publish Operations in order, one at a time.

        ``operations`` is consumed lazily, so a generator of converted lines
        is parsed and published line by line.

        Raises:
            PublishFailure: If a send fails after all retries
            PublishTimeout: If an acknowledgment does not arrive in time
        """
        published = 0
        last_ack: Optional[Ack] = None
        for operation in operations:
            if self._stopping.is_set():
                logger.info("Publisher stopping; %d operations published", published)
                break
            last_ack = self.publish_one(operation)
            published += 1
        return PublishReport(published=published, last_ack=last_ack)

    def publish_one(self, operation: Operation) -> Ack:
        """Send one Operation and wait for its acknowledgment."""
        if not self._active:
            raise RuntimeError("Publisher is not active; use within a context manager")

        key = self._take_key()
        value = encode_operation(operation)
        attempt = 0
        while True:
            try:
                ack, latency_s = self._send_and_wait(key, value)
            except PublishFailure as exc:
                if attempt >= self.config.max_retries:
                    logger.error(
                        "Publishing key=%d to %s failed after %d attempt(s): %s",
                        key,
                        self.broker.destination,
                        attempt + 1,
                        exc,
                    )
                    raise
                delay = self.config.retry_backoff_s * (2 ** attempt)
                attempt += 1
                logger.warning(
                    "Publishing key=%d to %s failed (%s); retry %d/%d in %.2fs",
                    key,
                    self.broker.destination,
                    exc,
                    attempt,
                    self.config.max_retries,
                    delay,
                )
                time.sleep(delay)
                continue

            observe_publish(self.broker.destination, operation.entity_type.value, latency_s)
            logger.debug("Published key=%d to %s at %s", key, self.broker.destination, ack.location)
            return ack

    def _take_key(self) -> int:
        key = self._next_key
        if key > MAX_KEY:
            raise PublishError("message key space exhausted")
        self._next_key = key + 1
        return key

    def _send_and_wait(self, key: int, value: bytes) -> tuple[Ack, float]:
        destination = self.broker.destination
        start_time = time.monotonic()
        try:
            future = self.broker.send(key, value)
        except Exception as exc:
            observe_publish_failure(destination, "failure")
            raise PublishFailure(f"send of key={key} failed: {exc}") from exc

        try:
            ack = future.result(timeout=self.config.ack_timeout_s)
        except PublishTimeout:
            # The broker client gave up waiting before we did.
            observe_publish_failure(destination, "timeout")
            raise
        except FutureTimeoutError as exc:
            observe_publish_failure(destination, "timeout")
            raise PublishTimeout(
                f"no acknowledgment for key={key} within {self.config.ack_timeout_s}s"
            ) from exc
        except Exception as exc:
            observe_publish_failure(destination, "failure")
            raise PublishFailure(f"delivery of key={key} failed: {exc}") from exc

        return ack, time.monotonic() - start_time

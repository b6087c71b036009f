from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Any, Optional

from kafka import KafkaProducer
from kafka.errors import KafkaError, KafkaTimeoutError

from ..config import KafkaBrokerConfig
from ..errors import PublishFailure, PublishTimeout
from .broker import Ack
from .codec import encode_key

logger = logging.getLogger(__name__)


def _as_publish_error(key: int, exc: BaseException) -> BaseException:
    if isinstance(exc, KafkaTimeoutError):
        timeout = PublishTimeout(f"delivery of key={key} timed out: {exc!r}")
        timeout.__cause__ = exc
        return timeout
    return exc


class KafkaBroker:
    """
    Broker backed by a kafka-python ``KafkaProducer``.

    Keys are serialized as 8-byte big-endian longs so Java consumers using
    LongDeserializer read them unchanged. The producer future is bridged to
    a ``concurrent.futures.Future`` so the Publisher can wait on it with a
    timeout.
    """

    def __init__(self, producer: KafkaProducer, config: KafkaBrokerConfig) -> None:
        self.config = config
        self._producer: Optional[KafkaProducer] = producer

    @classmethod
    def from_config(cls, config: KafkaBrokerConfig) -> "KafkaBroker":
        """
        Connect a producer to the configured cluster.

        Raises:
            PublishFailure: If no bootstrap server is reachable
        """
        try:
            producer = KafkaProducer(
                bootstrap_servers=config.bootstrap_servers.split(","),
                client_id=config.client_id,
                key_serializer=encode_key,
                acks="all",
                # One in-flight request keeps retried batches from overtaking.
                max_in_flight_requests_per_connection=1,
            )
        except KafkaError as exc:
            raise PublishFailure(
                f"cannot connect to Kafka at {config.bootstrap_servers}: {exc!r}"
            ) from exc
        return cls(producer, config)

    @property
    def destination(self) -> str:
        return self.config.topic

    def _client(self) -> KafkaProducer:
        if self._producer is None:
            raise RuntimeError("KafkaBroker is closed")
        return self._producer

    def send(self, key: int, value: bytes) -> Future[Ack]:
        future: Future[Ack] = Future()

        def on_success(metadata: Any) -> None:
            future.set_result(Ack(key=key, location=f"{metadata.partition}:{metadata.offset}"))

        def on_error(exc: BaseException) -> None:
            future.set_exception(_as_publish_error(key, exc))

        try:
            record_future = self._client().send(self.config.topic, key=key, value=value)
        except Exception as exc:
            # kafka-python raises synchronously on metadata or buffer timeouts.
            future.set_exception(_as_publish_error(key, exc))
            return future

        record_future.add_callback(on_success)
        record_future.add_errback(on_error)
        return future

    def flush(self) -> None:
        self._client().flush()

    def close(self) -> None:
        if self._producer is None:
            return
        try:
            self._producer.close()
        finally:
            self._producer = None
            logger.debug("Closed Kafka producer for topic %s", self.config.topic)

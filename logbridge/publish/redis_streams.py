from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Optional

from redis import Redis
from redis.exceptions import RedisError, TimeoutError as RedisTimeoutError

from ..config import RedisBrokerConfig
from ..errors import PublishTimeout
from .broker import Ack

logger = logging.getLogger(__name__)


class RedisStreamsBroker:
    """
    Broker backed by a single Redis stream.

    Each message becomes one ``XADD <stream> * key <key> value <json>``
    entry. XADD is a synchronous round trip, so the returned future is
    already resolved: the entry id Redis assigns is the acknowledgment.

    The broker owns the Redis client and closes it on ``close()``.
    """

    def __init__(self, redis: Redis, config: RedisBrokerConfig) -> None:
        self.config = config
        self._redis: Optional[Redis] = redis

    @classmethod
    def from_config(cls, config: RedisBrokerConfig) -> "RedisStreamsBroker":
        redis = Redis.from_url(
            config.url,
            socket_timeout=config.socket_timeout_s,
            decode_responses=False,
        )
        return cls(redis, config)

    @property
    def destination(self) -> str:
        return self.config.stream_key

    def _client(self) -> Redis:
        if self._redis is None:
            raise RuntimeError("RedisStreamsBroker is closed")
        return self._redis

    def send(self, key: int, value: bytes) -> Future[Ack]:
        """
        Append one entry to the stream.

        Redis failures are carried by the returned future, not raised. A
        socket timeout is carried as ``PublishTimeout``.
        """
        future: Future[Ack] = Future()
        fields = {b"key": str(key).encode("ascii"), b"value": value}
        try:
            if self.config.maxlen is not None:
                entry_id = self._client().xadd(
                    self.config.stream_key,
                    fields,
                    maxlen=self.config.maxlen,
                    approximate=True,
                )
            else:
                entry_id = self._client().xadd(self.config.stream_key, fields)
        except RedisTimeoutError as exc:
            timeout = PublishTimeout(f"XADD of key={key} to {self.config.stream_key} timed out: {exc}")
            timeout.__cause__ = exc
            future.set_exception(timeout)
            return future
        except RedisError as exc:
            future.set_exception(exc)
            return future

        if isinstance(entry_id, bytes):
            entry_id = entry_id.decode("ascii")
        future.set_result(Ack(key=key, location=entry_id))
        return future

    def flush(self) -> None:
        # XADD is unbuffered; nothing is pending client-side.
        return None

    def close(self) -> None:
        if self._redis is None:
            return
        try:
            self._redis.close()
        finally:
            self._redis = None
            logger.debug("Closed Redis connection for stream %s", self.config.stream_key)

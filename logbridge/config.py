from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timezone, tzinfo
from typing import Optional

DEFAULT_MARKER = "jdbc.sqlonly - "
DEFAULT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S,%f"

# Keys are sent as signed 64-bit integers.
MAX_KEY = 2**63 - 1


@dataclass(frozen=True)
class ConverterConfig:
    marker: str = DEFAULT_MARKER
    timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT
    timezone: tzinfo = field(default=timezone.utc)
    # strict=True aborts the batch on malformed lines instead of skipping them
    strict: bool = False

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not self.marker:
            raise ValueError("marker cannot be empty")
        if not self.timestamp_format:
            raise ValueError("timestamp_format cannot be empty")


@dataclass
class PublisherConfig:
    ack_timeout_s: Optional[float] = 30.0
    max_retries: int = 0
    retry_backoff_s: float = 0.5
    key_start: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.ack_timeout_s is not None and self.ack_timeout_s <= 0:
            raise ValueError(
                "ack_timeout_s must be > 0; use None to wait for acknowledgments indefinitely"
            )
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.retry_backoff_s < 0:
            raise ValueError("retry_backoff_s must be >= 0")
        if self.key_start is not None and not 0 <= self.key_start <= MAX_KEY:
            raise ValueError("key_start must fit in a signed 64-bit integer")


@dataclass
class RedisBrokerConfig:
    url: str
    stream_key: str
    # Approximate stream cap passed to XADD MAXLEN ~; None keeps every entry.
    maxlen: Optional[int] = None
    socket_timeout_s: Optional[float] = 30.0

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not self.stream_key:
            raise ValueError("stream_key cannot be empty")
        if self.maxlen is not None and self.maxlen <= 0:
            raise ValueError("maxlen must be > 0 when set")


@dataclass
class KafkaBrokerConfig:
    bootstrap_servers: str
    topic: str
    client_id: str = "logbridge"

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not self.bootstrap_servers:
            raise ValueError("bootstrap_servers cannot be empty")
        if not self.topic:
            raise ValueError("topic cannot be empty")

from __future__ import annotations

from .broker import Ack, Broker
from .codec import encode_key, encode_operation
from .publisher import PublishReport, Publisher

__all__ = [
    "Ack",
    "Broker",
    "PublishReport",
    "Publisher",
    "encode_key",
    "encode_operation",
]

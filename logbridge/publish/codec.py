from __future__ import annotations

import json

from ..errors import PublishFailure
from ..models import Operation


def encode_operation(operation: Operation) -> bytes:
    """
    Encode an Operation as compact, self-describing JSON.

    Unset payload fields are kept as ``null`` so consumers can tell
    "not provided" apart from an empty value.
    """
    try:
        return json.dumps(operation.to_dict(), separators=(",", ":"), sort_keys=True).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise PublishFailure(f"Operation is not JSON-serializable: {exc}") from exc


def encode_key(key: int) -> bytes:
    """8-byte big-endian signed integer, as written by Kafka's LongSerializer."""
    return key.to_bytes(8, "big", signed=True)

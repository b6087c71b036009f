from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Optional

from ..config import ConverterConfig
from ..errors import MalformedLogLine

# Separates the leading timestamp from the bracketed thread/context token.
CONTEXT_OPENER = " ["


@dataclass(frozen=True)
class ParsedLine:
    statement: str
    timestamp: Optional[int]


def parse_timestamp(text: str, fmt: str, tz: tzinfo = timezone.utc) -> Optional[int]:
    """
    Parse ``text`` with ``fmt`` into epoch milliseconds.

    Naive results are interpreted in ``tz``. Returns None on format mismatch
    instead of raising, so a bad timestamp never costs the whole line.
    """
    try:
        parsed = datetime.strptime(text.strip(), fmt)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    # Whole seconds first, to keep float rounding out of the millisecond part.
    seconds = int(parsed.replace(microsecond=0).timestamp())
    return seconds * 1000 + parsed.microsecond // 1000


def parse_line(line: str, config: ConverterConfig) -> ParsedLine:
    """
    Split a raw log line into its SQL statement and optional timestamp.

    Raises:
        MalformedLogLine: If the marker token is absent
    """
    head, marker, statement = line.partition(config.marker)
    if not marker:
        raise MalformedLogLine(f"marker {config.marker!r} not found")

    timestamp_text = head.split(CONTEXT_OPENER, 1)[0]
    timestamp = parse_timestamp(timestamp_text, config.timestamp_format, config.timezone)
    return ParsedLine(statement=statement.strip(), timestamp=timestamp)

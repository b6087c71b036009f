"""
Convert a jdbc.sqlonly audit log into ordered change operations and publish them.

Usage:
    logbridge --file audit.log --redis-url redis://localhost:6379/0 --stream library_ops
    logbridge --file audit.log --kafka-bootstrap localhost:9092 --topic library_ops
    logbridge --file audit.log --dry-run
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Optional, Sequence

from .config import (
    DEFAULT_MARKER,
    DEFAULT_TIMESTAMP_FORMAT,
    ConverterConfig,
    KafkaBrokerConfig,
    PublisherConfig,
    RedisBrokerConfig,
)
from .errors import LogBridgeError
from .parsing.assembler import OperationAssembler
from .pipeline import Pipeline
from .publish.broker import Broker
from .sources import iter_log_lines

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logbridge",
        description="Publish database audit-log statements as ordered change operations",
    )
    parser.add_argument("--file", required=True, help="Audit log file to convert")
    parser.add_argument(
        "--redis-url",
        default=os.environ.get("LOGBRIDGE_REDIS_URL"),
        help="Redis URL of the destination stream (env LOGBRIDGE_REDIS_URL)",
    )
    parser.add_argument(
        "--stream",
        default=os.environ.get("LOGBRIDGE_STREAM", "logbridge_operations"),
        help="Redis stream key (env LOGBRIDGE_STREAM)",
    )
    parser.add_argument(
        "--stream-maxlen",
        type=int,
        default=None,
        help="Approximate cap on the Redis stream length",
    )
    parser.add_argument(
        "--kafka-bootstrap",
        default=os.environ.get("LOGBRIDGE_KAFKA_BOOTSTRAP"),
        help="Comma separated Kafka bootstrap servers (env LOGBRIDGE_KAFKA_BOOTSTRAP)",
    )
    parser.add_argument(
        "--topic",
        default=os.environ.get("LOGBRIDGE_TOPIC", "logbridge_operations"),
        help="Kafka topic (env LOGBRIDGE_TOPIC)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print operations as JSON lines instead of publishing",
    )
    parser.add_argument("--marker", default=DEFAULT_MARKER, help="Token preceding the SQL statement")
    parser.add_argument(
        "--timestamp-format",
        default=DEFAULT_TIMESTAMP_FORMAT,
        help="strptime format of the leading log timestamp",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Abort on malformed lines instead of skipping them",
    )
    parser.add_argument(
        "--ack-timeout",
        type=float,
        default=30.0,
        help="Seconds to wait for each delivery acknowledgment (0 waits forever)",
    )
    parser.add_argument("--retries", type=int, default=0, help="Retries per failed publish")
    parser.add_argument(
        "--retry-backoff",
        type=float,
        default=0.5,
        help="Initial retry backoff in seconds, doubled per attempt",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOGBRIDGE_LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    return parser


def make_broker(args: argparse.Namespace) -> Broker:
    if args.kafka_bootstrap:
        from .publish.kafka import KafkaBroker

        return KafkaBroker.from_config(
            KafkaBrokerConfig(bootstrap_servers=args.kafka_bootstrap, topic=args.topic)
        )

    if args.redis_url:
        from .publish.redis_streams import RedisStreamsBroker

        return RedisStreamsBroker.from_config(
            RedisBrokerConfig(
                url=args.redis_url,
                stream_key=args.stream,
                maxlen=args.stream_maxlen,
                socket_timeout_s=args.ack_timeout or None,
            )
        )

    raise ValueError("one of --redis-url, --kafka-bootstrap or --dry-run is required")


def run_dry(lines, converter_config: ConverterConfig) -> int:
    count = 0
    for operation in OperationAssembler(converter_config).convert(lines):
        sys.stdout.write(json.dumps(operation.to_dict(), sort_keys=True) + "\n")
        count += 1
    logger.info("Converted %d operations", count)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        converter_config = ConverterConfig(
            marker=args.marker,
            timestamp_format=args.timestamp_format,
            strict=args.strict,
        )
        publisher_config = PublisherConfig(
            ack_timeout_s=args.ack_timeout or None,
            max_retries=args.retries,
            retry_backoff_s=args.retry_backoff,
        )
    except ValueError as exc:
        parser.error(str(exc))

    if not os.path.isfile(args.file):
        parser.error(f"log file not found: {args.file}")
    lines = iter_log_lines(args.file)

    if args.dry_run:
        try:
            return run_dry(lines, converter_config)
        except LogBridgeError as exc:
            logger.error("Conversion aborted: %s", exc)
            return 1

    try:
        broker = make_broker(args)
    except ValueError as exc:
        parser.error(str(exc))
    except LogBridgeError as exc:
        logger.error("Cannot open broker: %s", exc)
        return 1

    try:
        Pipeline(broker, converter_config, publisher_config).run(lines)
    except LogBridgeError as exc:
        logger.error("Publishing aborted: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Optional

from .config import ConverterConfig, PublisherConfig
from .parsing.assembler import OperationAssembler, SkippedLine
from .publish.broker import Broker
from .publish.publisher import PublishReport, Publisher

logger = logging.getLogger(__name__)


class Pipeline:
    """
    Single-threaded log-line -> Operation -> broker pipeline.

    Each line is parsed, classified, built, assembled and published (with
    its acknowledgment awaited) before the next line is read. The pipeline
    is the sole owner of the broker and releases it when ``run`` returns or
    raises.
    """

    def __init__(
        self,
        broker: Broker,
        converter_config: Optional[ConverterConfig] = None,
        publisher_config: Optional[PublisherConfig] = None,
        on_skip: Optional[Callable[[SkippedLine], None]] = None,
    ) -> None:
        self.assembler = OperationAssembler(converter_config, on_skip=on_skip)
        self.publisher = Publisher(broker, publisher_config)

    def run(self, lines: Iterable[str]) -> PublishReport:
        with self.publisher as publisher:
            report = publisher.publish(self.assembler.convert(lines))
        logger.info(
            "Published %d operations to %s",
            report.published,
            self.publisher.broker.destination,
        )
        return report

    def stop(self) -> None:
        """Stop feeding lines; the in-flight publish completes before close."""
        self.publisher.stop()

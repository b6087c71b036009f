from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Optional

from ..config import ConverterConfig
from ..errors import LineRejected, SkipReason
from ..metrics import observe_line_converted, observe_line_skipped
from ..models import Operation
from .builders import build_payload
from .classifier import classify
from .line import parse_line

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkippedLine:
    """Diagnostic for a line that produced no Operation."""

    line_number: int
    line: str
    reason: SkipReason
    detail: str


class OperationAssembler:
    """
    Turns raw log lines into Operations, one line at a time.

    Stages run strictly left to right: parse_line -> classify ->
    build_payload -> Operation. Rejected lines leave no trace in the output;
    malformed ones are logged at WARNING and reported to ``on_skip``.

    With ``config.strict`` set, malformed lines propagate instead of being
    skipped, aborting the batch.

    Usage:
        assembler = OperationAssembler(ConverterConfig())
        for op in assembler.convert(lines):
            ...
    """

    def __init__(
        self,
        config: Optional[ConverterConfig] = None,
        on_skip: Optional[Callable[[SkippedLine], None]] = None,
    ) -> None:
        self.config = config or ConverterConfig()
        self.on_skip = on_skip

    def assemble(self, line: str) -> Operation:
        """
        Convert exactly one line.

        Raises:
            LineRejected: Any subclass, when the line yields no Operation
        """
        parsed = parse_line(line, self.config)
        kinds = classify(parsed.statement)
        payload = build_payload(kinds.operation_type, kinds.entity_type, parsed.statement, parsed.timestamp)
        return Operation(
            timestamp=parsed.timestamp if parsed.timestamp is not None else 0,
            operation_type=kinds.operation_type,
            entity_type=kinds.entity_type,
            payload=payload,
        )

    def try_assemble(self, line: str, line_number: int = 0) -> Optional[Operation]:
        """Convert one line, returning None for skipped lines."""
        try:
            operation = self.assemble(line)
        except LineRejected as exc:
            if self.config.strict and not exc.silent:
                raise
            self._skip(line, line_number, exc)
            return None

        observe_line_converted()
        return operation

    def convert(self, lines: Iterable[str]) -> Iterator[Operation]:
        """
        Lazily convert lines in order.

        Output order equals the order of the source lines that produced an
        Operation. Lines are pulled one at a time, never buffered.
        """
        for line_number, line in enumerate(lines, start=1):
            operation = self.try_assemble(line, line_number)
            if operation is not None:
                yield operation

    def _skip(self, line: str, line_number: int, exc: LineRejected) -> None:
        observe_line_skipped(exc.reason.value)
        if exc.silent:
            logger.debug("Skipping line %d (%s): %s", line_number, exc.reason.value, exc)
        else:
            logger.warning("Skipping line %d (%s): %s", line_number, exc.reason.value, exc)

        if self.on_skip is not None:
            self.on_skip(
                SkippedLine(
                    line_number=line_number,
                    line=line,
                    reason=exc.reason,
                    detail=str(exc),
                )
            )


def convert_lines(lines: Iterable[str], config: Optional[ConverterConfig] = None) -> list[Operation]:
    """Convert a finite batch of lines into an ordered list of Operations."""
    return list(OperationAssembler(config).convert(lines))

from __future__ import annotations

from .assembler import OperationAssembler, SkippedLine, convert_lines
from .builders import build_payload, extract_field, split_values
from .classifier import Classification, classify
from .line import ParsedLine, parse_line, parse_timestamp

__all__ = [
    "Classification",
    "OperationAssembler",
    "ParsedLine",
    "SkippedLine",
    "build_payload",
    "classify",
    "convert_lines",
    "extract_field",
    "parse_line",
    "parse_timestamp",
    "split_values",
]

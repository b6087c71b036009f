from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Union


def iter_log_lines(path: Union[str, Path], encoding: str = "utf-8") -> Iterator[str]:
    """
    Yield the lines of an audit log file in file order.

    Trailing newlines are removed and blank lines are skipped. The file is
    read lazily and closed once the iterator is exhausted or discarded.
    """
    with open(path, "r", encoding=encoding, errors="replace") as handle:
        for raw in handle:
            line = raw.rstrip("\r\n")
            if line.strip():
                yield line

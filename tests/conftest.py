from __future__ import annotations

from collections.abc import Callable

import pytest

from logbridge.config import ConverterConfig

DEFAULT_LOG_TIMESTAMP = "2018-03-14 10:22:01,123"


@pytest.fixture
def converter_config() -> ConverterConfig:
    return ConverterConfig()


@pytest.fixture
def make_line() -> Callable[..., str]:
    """
    Factory fixture rendering a jdbc.sqlonly audit log line.

    Usage:
        line = make_line("DELETE FROM MEMBER WHERE ID='42'")
    """

    def _create(statement: str, timestamp: str = DEFAULT_LOG_TIMESTAMP) -> str:
        return f"{timestamp} [http-nio-8080-exec-3] INFO  jdbc.sqlonly - {statement}"

    return _create

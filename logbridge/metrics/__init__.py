from .registry import (
    observe_line_converted,
    observe_line_skipped,
    observe_publish,
    observe_publish_failure,
)

__all__ = [
    "observe_line_converted",
    "observe_line_skipped",
    "observe_publish",
    "observe_publish_failure",
]

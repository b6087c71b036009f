from __future__ import annotations

from enum import Enum


class SkipReason(str, Enum):
    MALFORMED_LOG_LINE = "malformed_log_line"
    UNRECOGNIZED_OPERATION = "unrecognized_operation"
    UNRECOGNIZED_ENTITY = "unrecognized_entity"
    UNSUPPORTED_ENTITY_OPERATION = "unsupported_entity_operation"
    MALFORMED_PARAMETER_LIST = "malformed_parameter_list"


class LogBridgeError(Exception):
    """Base exception for logbridge errors."""


class LineRejected(LogBridgeError):
    """A single log line cannot be turned into an Operation."""

    reason: SkipReason
    # Silent rejections are documented no-ops, not faults.
    silent: bool = True


class MalformedLogLine(LineRejected):
    """The marker token is absent; there is no statement to parse."""

    reason = SkipReason.MALFORMED_LOG_LINE
    silent = False


class UnrecognizedOperationToken(LineRejected):
    """First statement token is not INSERT, UPDATE or DELETE."""

    reason = SkipReason.UNRECOGNIZED_OPERATION


class UnrecognizedEntityType(LineRejected):
    """Statement targets a table that is not a known entity."""

    reason = SkipReason.UNRECOGNIZED_ENTITY


class UnsupportedEntityOperation(LineRejected):
    """Known operation against a known entity that is never converted."""

    reason = SkipReason.UNSUPPORTED_ENTITY_OPERATION


class MalformedParameterList(LineRejected):
    """Wrong field count in a values list, or a required key is missing."""

    reason = SkipReason.MALFORMED_PARAMETER_LIST
    silent = False


class PublishError(LogBridgeError):
    """General publish-related issues."""


class PublishFailure(PublishError):
    """The broker rejected a message or the connection dropped."""


class PublishTimeout(PublishFailure):
    """No delivery acknowledgment arrived within the configured bound."""

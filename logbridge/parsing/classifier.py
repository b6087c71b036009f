from __future__ import annotations

import re
from dataclasses import dataclass

from ..errors import UnrecognizedEntityType, UnrecognizedOperationToken
from ..models import EntityType, OperationType

# Entity token position per statement form:
#   INSERT INTO <ENTITY>(<cols>) VALUES(...)
#   UPDATE <ENTITY> SET ...
#   DELETE FROM <ENTITY> WHERE ...
_ENTITY_PATTERNS = {
    OperationType.INSERT: re.compile(r"^INSERT\s+\S+?\s+(?P<entity>[^\s(]+)"),
    OperationType.UPDATE: re.compile(r"^UPDATE\s+(?P<entity>\S+)"),
    OperationType.DELETE: re.compile(r"^DELETE\s+\S+\s+(?P<entity>\S+)"),
}


@dataclass(frozen=True)
class Classification:
    operation_type: OperationType
    entity_type: EntityType


def classify(statement: str) -> Classification:
    """
    Determine operation and entity kind from the statement shape.

    Raises:
        UnrecognizedOperationToken: If the first token is not INSERT/UPDATE/DELETE
        UnrecognizedEntityType: If the entity token is missing or unknown
    """
    tokens = statement.split(None, 1)
    first = tokens[0] if tokens else ""
    try:
        operation_type = OperationType(first)
    except ValueError:
        raise UnrecognizedOperationToken(f"unrecognized operation token {first!r}") from None

    match = _ENTITY_PATTERNS[operation_type].match(statement)
    if match is None:
        raise UnrecognizedEntityType(f"no entity token in {operation_type.value} statement")

    entity = match.group("entity")
    try:
        entity_type = EntityType(entity)
    except ValueError:
        raise UnrecognizedEntityType(f"unrecognized entity {entity!r}") from None

    return Classification(operation_type=operation_type, entity_type=entity_type)

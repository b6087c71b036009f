from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, ClassVar, Optional, Union


class OperationType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class EntityType(str, Enum):
    BOOK = "BOOK"
    MEMBER = "MEMBER"
    ISSUE = "ISSUE"
    MAIL_SERVER_INFO = "MAIL_SERVER_INFO"


@dataclass(frozen=True)
class Book:
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.BOOK

    id: str
    title: Optional[str] = None
    author: Optional[str] = None
    publisher: Optional[str] = None
    is_available: Optional[bool] = None


@dataclass(frozen=True)
class Member:
    """Delete operations carry only ``id``."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.MEMBER

    id: str
    name: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class Issue:
    """Delete operations carry only ``book_id``."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.ISSUE

    book_id: str
    member_id: Optional[str] = None
    renew_count: Optional[str] = None
    issued_at: Optional[int] = None


@dataclass(frozen=True)
class MailServerInfo:
    """Never updated; delete operations carry no fields."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.MAIL_SERVER_INFO

    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None
    use_tls: Optional[bool] = None


Payload = Union[Book, Member, Issue, MailServerInfo]


@dataclass(frozen=True)
class Operation:
    """
    One parsed change event against a specific entity.

    ``timestamp`` is epoch milliseconds, or 0 when the log line carried no
    parseable timestamp. The payload variant always matches ``entity_type``.
    """

    timestamp: int
    operation_type: OperationType
    entity_type: EntityType
    payload: Payload

    def __post_init__(self) -> None:
        if getattr(self.payload, "ENTITY_TYPE", None) is not self.entity_type:
            raise ValueError(
                f"payload {type(self.payload).__name__} does not match entity type {self.entity_type.value}"
            )
        if self.entity_type is EntityType.MAIL_SERVER_INFO:
            return
        identity = self.payload.book_id if self.entity_type is EntityType.ISSUE else self.payload.id
        if not identity:
            raise ValueError(f"{self.entity_type.value} payload requires a non-empty identifier")

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "operation_type": self.operation_type.value,
            "entity_type": self.entity_type.value,
            "payload": asdict(self.payload),
        }

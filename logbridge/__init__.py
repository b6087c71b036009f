from .config import ConverterConfig, KafkaBrokerConfig, PublisherConfig, RedisBrokerConfig
from .models import Book, EntityType, Issue, MailServerInfo, Member, Operation, OperationType
from .parsing import OperationAssembler, convert_lines
from .pipeline import Pipeline
from .publish import Ack, Broker, Publisher

__all__ = [
    "Ack",
    "Book",
    "Broker",
    "ConverterConfig",
    "EntityType",
    "Issue",
    "KafkaBrokerConfig",
    "MailServerInfo",
    "Member",
    "Operation",
    "OperationAssembler",
    "OperationType",
    "Pipeline",
    "Publisher",
    "PublisherConfig",
    "RedisBrokerConfig",
    "convert_lines",
]

from semindex.core.exceptions import NotFoundError

from ._models import (
    MessageItem,
    MessageKey,
    MessageProperties,
    MessagePullConfig,
    MessagePutConfig,
    MessageValueType,
    QueueInfo,
)
from .component import Queue

__all__ = [
    "MessageItem",
    "MessageKey",
    "MessageProperties",
    "MessagePullConfig",
    "MessagePutConfig",
    "MessageValueType",
    "NotFoundError",
    "Queue",
    "QueueInfo",
]

from __future__ import annotations

from typing import Any, Union

from semindex.core import DataModel

MessageValueType = Union[str, dict[str, Any]]


class MessageKey(DataModel):
    """Message key."""

    id: str
    """Message id."""

    nref: Any = None
    """Reference to the underlying native message handle."""


class MessageProperties(DataModel):
    """Message properties."""

    enqueued_time: float | None = None
    """Enqueued time in utc."""

    available_time: float | None = None
    """Time in utc at which the message becomes visible."""

    delivery_count: int | None = None
    """Delivery count."""


class MessageItem(DataModel):
    """Message item."""

    key: MessageKey | None = None
    """Message key."""

    value: MessageValueType | None = None
    """Message value."""

    metadata: dict | None = None
    """Message metadata."""

    properties: MessageProperties | None = None
    """Message properties."""


class MessagePutConfig(DataModel):
    """Message put config."""

    delay: float | None = None
    """Delay in seconds before the message becomes visible."""


class MessagePullConfig(DataModel):
    """Message pull config."""

    max_count: int | None = 1
    """Maximum number of messages in batch. Defaults to 1."""

    visibility_timeout: float | None = None
    """Visibility timeout in seconds. Defaults to the queue setting."""


class QueueInfo(DataModel):
    """Queue info."""

    name: str | None = None
    """Queue name."""

    active_message_count: int | None = None
    """Number of messages ready to be pulled."""

    inflight_message_count: int | None = None
    """Number of pulled messages not yet acked."""

    scheduled_message_count: int | None = None
    """Number of delayed messages."""

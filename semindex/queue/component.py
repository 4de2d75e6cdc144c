from __future__ import annotations

from typing import Any

from semindex.core import Component, Response, operation

from ._models import (
    MessageItem,
    MessageKey,
    MessagePullConfig,
    MessagePutConfig,
    MessageValueType,
    QueueInfo,
)


class Queue(Component):
    """Delayed work queue used for deferred replication."""

    queue: str
    visibility_timeout: float

    def __init__(
        self,
        queue: str = "semindex-jobs",
        visibility_timeout: float = 300,
        **kwargs,
    ):
        """Initialize.

        Args:
            queue:
                Queue name.
            visibility_timeout:
                Seconds a pulled message stays invisible
                before it is delivered again.
        """
        self.queue = queue
        self.visibility_timeout = visibility_timeout
        super().__init__(**kwargs)

    @operation()
    def put(
        self,
        value: MessageValueType,
        metadata: dict | None = None,
        config: dict | MessagePutConfig | None = None,
        **kwargs: Any,
    ) -> Response[MessageItem]:
        """Put message in the queue.

        Args:
            value:
                Message value.
            metadata:
                Message metadata.
            config:
                Put config.

        Returns:
            Message item with key.
        """
        raise NotImplementedError

    @operation()
    def pull(
        self,
        config: dict | MessagePullConfig | None = None,
        **kwargs: Any,
    ) -> Response[list[MessageItem]]:
        """Pull visible messages.

        Args:
            config:
                Pull config.

        Returns:
            List of message items, possibly empty.
        """
        raise NotImplementedError

    @operation()
    def ack(
        self,
        key: str | MessageKey,
        **kwargs: Any,
    ) -> Response[None]:
        """Acknowledge a pulled message.

        Args:
            key:
                Message key.

        Raises:
            NotFoundError: Message is not in flight.
        """
        raise NotImplementedError

    @operation()
    def get_queue(self, **kwargs: Any) -> Response[QueueInfo]:
        """Get queue info.

        Returns:
            Queue depth counters.
        """
        raise NotImplementedError

    @operation()
    def purge(self, **kwargs: Any) -> Response[None]:
        """Remove all messages."""
        raise NotImplementedError

    @operation()
    def close(self, **kwargs: Any) -> Response[None]:
        """Close the client."""
        raise NotImplementedError

    @operation()
    async def aput(
        self,
        value: MessageValueType,
        metadata: dict | None = None,
        config: dict | MessagePutConfig | None = None,
        **kwargs: Any,
    ) -> Response[MessageItem]:
        raise NotImplementedError

    @operation()
    async def apull(
        self,
        config: dict | MessagePullConfig | None = None,
        **kwargs: Any,
    ) -> Response[list[MessageItem]]:
        raise NotImplementedError

    @operation()
    async def aack(
        self,
        key: str | MessageKey,
        **kwargs: Any,
    ) -> Response[None]:
        raise NotImplementedError

    @operation()
    async def aget_queue(self, **kwargs: Any) -> Response[QueueInfo]:
        raise NotImplementedError

    @operation()
    async def apurge(self, **kwargs: Any) -> Response[None]:
        raise NotImplementedError

    @operation()
    async def aclose(self, **kwargs: Any) -> Response[None]:
        raise NotImplementedError

"""
In Memory Queue.
"""

from __future__ import annotations

__all__ = ["Memory"]

import copy
import uuid
from threading import Lock
from typing import Any

from semindex.core import Context, Provider, Response
from semindex.core.exceptions import NotFoundError

from .._models import (
    MessageItem,
    MessageKey,
    MessageProperties,
    MessagePullConfig,
    MessagePutConfig,
    MessageValueType,
    QueueInfo,
)
from ._helper import get_key_id, get_pull_config, get_put_config, now


class Memory(Provider):
    # id -> message record
    _ready: dict[str, dict]
    # id -> (message record, visible again at)
    _inflight: dict[str, tuple[dict, float]]
    _lock: Lock

    def __init__(self, **kwargs):
        """Initialize."""
        self._ready = dict()
        self._inflight = dict()
        self._lock = Lock()
        super().__init__(**kwargs)

    def __setup__(self, context: Context | None = None) -> None:
        pass

    def _release_expired(self, current: float) -> None:
        for id, (record, visible_at) in list(self._inflight.items()):
            if visible_at <= current:
                self._inflight.pop(id)
                self._ready[id] = record

    def _to_item(self, record: dict) -> MessageItem:
        return MessageItem(
            key=MessageKey(id=record["id"]),
            value=copy.deepcopy(record["value"]),
            metadata=copy.deepcopy(record["metadata"]),
            properties=MessageProperties(
                enqueued_time=record["enqueued_time"],
                available_time=record["available_time"],
                delivery_count=record["delivery_count"],
            ),
        )

    def put(
        self,
        value: MessageValueType,
        metadata: dict | None = None,
        config: MessagePutConfig | None = None,
        **kwargs: Any,
    ) -> Response[MessageItem]:
        put_config = get_put_config(config)
        current = now()
        record = {
            "id": str(uuid.uuid4()),
            "value": copy.deepcopy(value),
            "metadata": copy.deepcopy(metadata),
            "enqueued_time": current,
            "available_time": current + (put_config.delay or 0),
            "delivery_count": 0,
        }
        with self._lock:
            self._ready[record["id"]] = record
        return Response(result=self._to_item(record))

    def pull(
        self,
        config: MessagePullConfig | None = None,
        **kwargs: Any,
    ) -> Response[list[MessageItem]]:
        pull_config = get_pull_config(config)
        visibility_timeout = (
            pull_config.visibility_timeout
            or self.__component__.visibility_timeout
        )
        max_count = pull_config.max_count or 1
        current = now()
        items: list[MessageItem] = []
        with self._lock:
            self._release_expired(current)
            due = sorted(
                (
                    r
                    for r in self._ready.values()
                    if r["available_time"] <= current
                ),
                key=lambda r: r["available_time"],
            )
            for record in due[:max_count]:
                self._ready.pop(record["id"])
                record["delivery_count"] += 1
                self._inflight[record["id"]] = (
                    record,
                    current + visibility_timeout,
                )
                items.append(self._to_item(record))
        return Response(result=items)

    def ack(self, key: str | MessageKey, **kwargs: Any) -> Response[None]:
        id = get_key_id(key)
        with self._lock:
            if self._inflight.pop(id, None) is None:
                raise NotFoundError(f"Message {id} is not in flight")
        return Response(result=None)

    def get_queue(self, **kwargs: Any) -> Response[QueueInfo]:
        current = now()
        with self._lock:
            self._release_expired(current)
            active = sum(
                1
                for r in self._ready.values()
                if r["available_time"] <= current
            )
            info = QueueInfo(
                name=self.__component__.queue,
                active_message_count=active,
                inflight_message_count=len(self._inflight),
                scheduled_message_count=len(self._ready) - active,
            )
        return Response(result=info)

    def purge(self, **kwargs: Any) -> Response[None]:
        with self._lock:
            self._ready.clear()
            self._inflight.clear()
        return Response(result=None)

    def close(self, **kwargs: Any) -> Response[None]:
        return Response(result=None)

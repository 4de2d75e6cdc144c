"""
Queue on Redis.

Ready and in flight messages are kept in two sorted sets scored
by the time they become visible, payloads in a hash.
"""

from __future__ import annotations

__all__ = ["Redis"]

import json
import uuid
from typing import Any

from semindex._common import RedisProvider
from semindex.core import Response
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


class Redis(RedisProvider):
    def __init__(
        self,
        url: str | None = None,
        host: str | None = None,
        port: int | None = None,
        db: int = 0,
        username: str | None = None,
        password: str | None = None,
        options: dict | None = None,
        **kwargs,
    ):
        """Initialize.

        Args:
            url:
                Redis endpoint url.
            host:
                Redis endpoint host name.
            port:
                Redis endpoint port.
            db:
                Redis database number.
            username:
                Username for auth.
            password:
                Password for auth.
            options:
                Redis client options.
        """
        super().__init__(
            url=url,
            host=host,
            port=port,
            db=db,
            username=username,
            password=password,
            options=options,
            **kwargs,
        )

    def _keys(self) -> tuple[str, str, str]:
        name = self.__component__.queue
        return tuple(
            self._scoped(name, part) for part in ("ready", "inflight", "data")
        )

    def _visibility_timeout(self, config: MessagePullConfig) -> float:
        return (
            config.visibility_timeout or self.__component__.visibility_timeout
        )

    def _new_record(
        self,
        value: MessageValueType,
        metadata: dict | None,
        config: MessagePutConfig,
    ) -> dict:
        current = now()
        return {
            "id": str(uuid.uuid4()),
            "value": value,
            "metadata": metadata,
            "enqueued_time": current,
            "available_time": current + (config.delay or 0),
            "delivery_count": 0,
        }

    def _to_item(self, record: dict) -> MessageItem:
        return MessageItem(
            key=MessageKey(id=record["id"]),
            value=record["value"],
            metadata=record["metadata"],
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
        ready, _, data = self._keys()
        record = self._new_record(value, metadata, get_put_config(config))
        pipe = self._client.pipeline()
        pipe.hset(data, record["id"], json.dumps(record))
        pipe.zadd(ready, {record["id"]: record["available_time"]})
        pipe.execute()
        return Response(result=self._to_item(record))

    def pull(
        self,
        config: MessagePullConfig | None = None,
        **kwargs: Any,
    ) -> Response[list[MessageItem]]:
        ready, inflight, data = self._keys()
        pull_config = get_pull_config(config)
        current = now()
        for id in self._client.zrangebyscore(inflight, "-inf", current):
            if self._client.zrem(inflight, id):
                self._client.zadd(ready, {id: current})
        ids = self._client.zrangebyscore(
            ready, "-inf", current, start=0, num=pull_config.max_count or 1
        )
        items: list[MessageItem] = []
        for id in ids:
            # zrem is the claim, a concurrent puller gets 0
            if not self._client.zrem(ready, id):
                continue
            self._client.zadd(
                inflight, {id: current + self._visibility_timeout(pull_config)}
            )
            raw = self._client.hget(data, id)
            if raw is None:
                self._client.zrem(inflight, id)
                continue
            record = json.loads(raw)
            record["delivery_count"] += 1
            self._client.hset(data, id, json.dumps(record))
            items.append(self._to_item(record))
        return Response(result=items)

    def ack(self, key: str | MessageKey, **kwargs: Any) -> Response[None]:
        _, inflight, data = self._keys()
        id = get_key_id(key)
        if not self._client.zrem(inflight, id):
            raise NotFoundError(f"Message {id} is not in flight")
        self._client.hdel(data, id)
        return Response(result=None)

    def get_queue(self, **kwargs: Any) -> Response[QueueInfo]:
        ready, inflight, _ = self._keys()
        current = now()
        active = self._client.zcount(ready, "-inf", current)
        total = self._client.zcard(ready)
        info = QueueInfo(
            name=self.__component__.queue,
            active_message_count=active,
            inflight_message_count=self._client.zcard(inflight),
            scheduled_message_count=total - active,
        )
        return Response(result=info)

    def purge(self, **kwargs: Any) -> Response[None]:
        self._client.delete(*self._keys())
        return Response(result=None)

    def close(self, **kwargs: Any) -> Response[None]:
        self._close_client()
        return Response(result=None)

    async def aput(
        self,
        value: MessageValueType,
        metadata: dict | None = None,
        config: MessagePutConfig | None = None,
        **kwargs: Any,
    ) -> Response[MessageItem]:
        ready, _, data = self._keys()
        record = self._new_record(value, metadata, get_put_config(config))
        pipe = self._aclient.pipeline()
        pipe.hset(data, record["id"], json.dumps(record))
        pipe.zadd(ready, {record["id"]: record["available_time"]})
        await pipe.execute()
        return Response(result=self._to_item(record))

    async def aack(
        self, key: str | MessageKey, **kwargs: Any
    ) -> Response[None]:
        _, inflight, data = self._keys()
        id = get_key_id(key)
        if not await self._aclient.zrem(inflight, id):
            raise NotFoundError(f"Message {id} is not in flight")
        await self._aclient.hdel(data, id)
        return Response(result=None)

    async def aclose(self, **kwargs: Any) -> Response[None]:
        await self._aclose_client()
        return Response(result=None)

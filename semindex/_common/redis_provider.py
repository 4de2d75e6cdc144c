from __future__ import annotations

from typing import Any

import redis
import redis.asyncio

from semindex.core import Context, Provider
from semindex.core.exceptions import BadRequestError


class RedisProvider(Provider):
    """Connection handling shared by the Redis cache and queue.

    Clients are created on first use and decode responses to str.
    Keys are prefixed with the name the component scopes them under.
    """

    url: str | None
    host: str | None
    port: int | None
    db: int
    username: str | None
    password: str | None
    options: dict | None

    _client: Any
    _aclient: Any

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
        self.url = url
        self.host = host
        self.port = port
        self.db = db
        self.username = username
        self.password = password
        self.options = options
        self._client = None
        self._aclient = None
        super().__init__(**kwargs)

    def __setup__(self, context: Context | None = None) -> None:
        if self._client is None:
            self._client = self._connect(redis)

    async def __asetup__(self, context: Context | None = None) -> None:
        if self._aclient is None:
            self._aclient = self._connect(redis.asyncio)

    def _close_client(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    async def _aclose_client(self) -> None:
        if self._aclient is not None:
            await self._aclient.aclose()
            self._aclient = None

    def _scoped(self, scope: str | None, key: str) -> str:
        return f"{scope}:{key}" if scope else key

    def _connect(self, lib: Any) -> Any:
        options = self.options or {}
        if self.url is not None:
            return lib.from_url(self.url, decode_responses=True, **options)
        if self.host is None or self.port is None:
            raise BadRequestError(
                "Redis connection needs a url or a host and port"
            )
        return lib.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            username=self.username,
            password=self.password,
            decode_responses=True,
            **options,
        )

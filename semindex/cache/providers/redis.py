"""
Cache on Redis.
"""

from __future__ import annotations

__all__ = ["Redis"]

import json
from typing import Any

from semindex._common import RedisProvider
from semindex.core import Response
from semindex.core.exceptions import NotFoundError


class Redis(RedisProvider):
    nparams: dict[str, Any]

    def __init__(
        self,
        url: str | None = None,
        host: str | None = None,
        port: int | None = None,
        db: int = 0,
        username: str | None = None,
        password: str | None = None,
        options: dict | None = None,
        nparams: dict[str, Any] = dict(),
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
            nparams:
                Native parameters to the redis client.
        """
        self.nparams = nparams
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

    def _db_key(self, key: str) -> str:
        namespace = getattr(self.__component__, "namespace", None)
        return self._scoped(namespace, key)

    def _px(self, ttl: float | None) -> int | None:
        return int(ttl * 1000) if ttl else None

    def exists(self, key: str, **kwargs: Any) -> Response[bool]:
        nresult = self._client.exists(self._db_key(key))
        return Response(result=bool(nresult))

    def get(self, key: str, **kwargs: Any) -> Response[Any]:
        nresult = self._client.get(self._db_key(key))
        if nresult is None:
            raise NotFoundError(f"Key {key!r} not found")
        return Response(result=json.loads(nresult))

    def put(
        self,
        key: str,
        value: Any,
        ttl: float | None = None,
        **kwargs: Any,
    ) -> Response[None]:
        self._client.set(
            self._db_key(key),
            json.dumps(value),
            px=self._px(ttl),
            **self.nparams,
        )
        return Response(result=None)

    def delete(self, key: str, **kwargs: Any) -> Response[None]:
        if not self._client.delete(self._db_key(key)):
            raise NotFoundError(f"Key {key!r} not found")
        return Response(result=None)

    def close(self, **kwargs: Any) -> Response[None]:
        self._close_client()
        return Response(result=None)

    async def aexists(self, key: str, **kwargs: Any) -> Response[bool]:
        nresult = await self._aclient.exists(self._db_key(key))
        return Response(result=bool(nresult))

    async def aget(self, key: str, **kwargs: Any) -> Response[Any]:
        nresult = await self._aclient.get(self._db_key(key))
        if nresult is None:
            raise NotFoundError(f"Key {key!r} not found")
        return Response(result=json.loads(nresult))

    async def aput(
        self,
        key: str,
        value: Any,
        ttl: float | None = None,
        **kwargs: Any,
    ) -> Response[None]:
        await self._aclient.set(
            self._db_key(key),
            json.dumps(value),
            px=self._px(ttl),
            **self.nparams,
        )
        return Response(result=None)

    async def adelete(self, key: str, **kwargs: Any) -> Response[None]:
        if not await self._aclient.delete(self._db_key(key)):
            raise NotFoundError(f"Key {key!r} not found")
        return Response(result=None)

    async def aclose(self, **kwargs: Any) -> Response[None]:
        await self._aclose_client()
        return Response(result=None)

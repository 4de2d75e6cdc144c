from __future__ import annotations

from typing import Any

from semindex.core import Component, Response, operation


class Cache(Component):
    """Shared TTL cache.

    Holds terms lookup results, replication locks and change
    diffs waiting for a recovery job. Values must be JSON
    serializable.
    """

    namespace: str | None

    def __init__(
        self,
        namespace: str | None = None,
        **kwargs,
    ):
        """Initialize.

        Args:
            namespace:
                Prefix applied to every key.
        """
        self.namespace = namespace
        super().__init__(**kwargs)

    @operation()
    def exists(self, key: str, **kwargs: Any) -> Response[bool]:
        """Check if key exists.

        Args:
            key: Cache key.

        Returns:
            A value indicating whether the key exists.
        """
        raise NotImplementedError

    @operation()
    def get(self, key: str, **kwargs: Any) -> Response[Any]:
        """Get value.

        Args:
            key: Cache key.

        Returns:
            Cached value.

        Raises:
            NotFoundError: Key not found or expired.
        """
        raise NotImplementedError

    @operation()
    def put(
        self,
        key: str,
        value: Any,
        ttl: float | None = None,
        **kwargs: Any,
    ) -> Response[None]:
        """Put value.

        Args:
            key: Cache key.
            value: JSON serializable value.
            ttl: Time to live in seconds, None keeps the value.
        """
        raise NotImplementedError

    @operation()
    def delete(self, key: str, **kwargs: Any) -> Response[None]:
        """Delete value.

        Args:
            key: Cache key.

        Raises:
            NotFoundError: Key not found.
        """
        raise NotImplementedError

    @operation()
    def close(self, **kwargs: Any) -> Response[None]:
        """Close the client."""
        raise NotImplementedError

    @operation()
    async def aexists(self, key: str, **kwargs: Any) -> Response[bool]:
        raise NotImplementedError

    @operation()
    async def aget(self, key: str, **kwargs: Any) -> Response[Any]:
        raise NotImplementedError

    @operation()
    async def aput(
        self,
        key: str,
        value: Any,
        ttl: float | None = None,
        **kwargs: Any,
    ) -> Response[None]:
        raise NotImplementedError

    @operation()
    async def adelete(self, key: str, **kwargs: Any) -> Response[None]:
        raise NotImplementedError

    @operation()
    async def aclose(self, **kwargs: Any) -> Response[None]:
        raise NotImplementedError

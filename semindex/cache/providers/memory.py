"""
In Memory Cache.
"""

from __future__ import annotations

__all__ = ["Memory"]

import copy
from datetime import datetime, timezone
from threading import Lock
from typing import Any

from semindex.core import Context, Provider, Response
from semindex.core.exceptions import NotFoundError


class Memory(Provider):
    # key -> {"value": ..., "expiry": timestamp | None}
    _db: dict[str, dict]
    _lock: Lock

    def __init__(self, **kwargs):
        """Initialize."""
        self._db = dict()
        self._lock = Lock()
        super().__init__(**kwargs)

    def __setup__(self, context: Context | None = None) -> None:
        pass

    def _db_key(self, key: str) -> str:
        namespace = getattr(self.__component__, "namespace", None)
        return f"{namespace}:{key}" if namespace else key

    def _now(self) -> float:
        return datetime.now(timezone.utc).timestamp()

    def _has_expired(self, item: dict) -> bool:
        expiry: float | None = item["expiry"]
        return expiry is not None and self._now() > expiry

    def _lookup(self, db_key: str) -> dict | None:
        item = self._db.get(db_key)
        if item is None:
            return None
        if self._has_expired(item):
            with self._lock:
                current = self._db.get(db_key)
                if current is not None and self._has_expired(current):
                    self._db.pop(db_key)
            return None
        return item

    def exists(self, key: str, **kwargs: Any) -> Response[bool]:
        return Response(result=self._lookup(self._db_key(key)) is not None)

    def get(self, key: str, **kwargs: Any) -> Response[Any]:
        item = self._lookup(self._db_key(key))
        if item is None:
            raise NotFoundError(f"Key {key!r} not found")
        return Response(result=copy.deepcopy(item["value"]))

    def put(
        self,
        key: str,
        value: Any,
        ttl: float | None = None,
        **kwargs: Any,
    ) -> Response[None]:
        expiry = self._now() + ttl if ttl else None
        with self._lock:
            self._db[self._db_key(key)] = {
                "value": copy.deepcopy(value),
                "expiry": expiry,
            }
        return Response(result=None)

    def delete(self, key: str, **kwargs: Any) -> Response[None]:
        db_key = self._db_key(key)
        if self._lookup(db_key) is None:
            raise NotFoundError(f"Key {key!r} not found")
        with self._lock:
            self._db.pop(db_key, None)
        return Response(result=None)

    def close(self, **kwargs: Any) -> Response[None]:
        return Response(result=None)
